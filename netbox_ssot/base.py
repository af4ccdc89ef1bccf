"""Base types for the NetBox SSoT."""

from os import PathLike
from typing import Any, Iterable, List, MutableMapping, Union

import structlog

logger = structlog.get_logger("netbox-ssot")

Uid = int
ContentTypeStr = str
FieldName = str
RecordData = MutableMapping[FieldName, Any]
Pathable = Union[str, PathLike]

SSOT_TAG_NAME = "netbox-ssot"
SSOT_TAG_SLUG = "netbox-ssot"
SSOT_TAG_COLOR = "00add8"
SSOT_TAG_DESCRIPTION = "Tag used by netbox-ssot to mark devices that are managed by it"

DEFAULT_VLAN_GROUP_NAME = "netbox-ssot default VLAN group"
DEFAULT_VLAN_GROUP_DESCRIPTION = "Default netbox-ssot VLAN group for all VLANs that are not part of any other VLAN group"
DEFAULT_VLAN_MIN_VID = 1
DEFAULT_VLAN_MAX_VID = 4094

SERVER_DEVICE_ROLE_NAME = "Server"
ADMIN_CONTACT_ROLE_NAME = "Admin"

GENERATOR_SETUP_MODULES: List[str] = []

# Entity types are loaded and synced in this order, and swept in the reverse one.
# A type must come after every type it references.
SYNC_ORDER: Iterable[ContentTypeStr] = (
    "extras.tag",
    "extras.customfield",
    "tenancy.tenant",
    "tenancy.contactgroup",
    "tenancy.contactrole",
    "tenancy.contact",
    "dcim.site",
    "dcim.manufacturer",
    "dcim.platform",
    "dcim.devicerole",
    "dcim.devicetype",
    "virtualization.clustertype",
    "virtualization.clustergroup",
    "virtualization.cluster",
    "dcim.device",
    "virtualization.virtualmachine",
    "ipam.vlangroup",
    "ipam.vlan",
    "dcim.interface",
    "virtualization.vminterface",
    "ipam.prefix",
    "ipam.ipaddress",
    "tenancy.contactassignment",
)


def register_generator_setup(module: str) -> None:
    """Register adapter setup function.

    Registered modules must provide `setup(adapter)` and are imported by the adapter in the registration order.
    """
    if module not in GENERATOR_SETUP_MODULES:
        GENERATOR_SETUP_MODULES.append(module)
