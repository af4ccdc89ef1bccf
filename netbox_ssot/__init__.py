"""NetBox SSoT: sync infrastructure inventories into NetBox."""

from importlib import metadata

__version__ = metadata.version("netbox-ssot")
