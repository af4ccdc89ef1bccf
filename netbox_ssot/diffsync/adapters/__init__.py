"""Adapter classes for loading DiffSync models from the CMDB and from sources."""

from .netbox import NetBoxAdapter
from .source import FileSourceAdapter, SourceAdapter, SourceRecord, get_source_adapter

__all__ = (
    "FileSourceAdapter",
    "NetBoxAdapter",
    "SourceAdapter",
    "SourceRecord",
    "get_source_adapter",
)
