"""Generic CMDB Inventory Library using DiffSync."""

from . import fields
from .base import EMPTY_VALUES, FieldKind, is_empty, slugify
from .exceptions import (
    CmdbRequestError,
    ConfigurationError,
    CreateConflict,
    DanglingReference,
    IndexLoadError,
    NetBoxSsotException,
    PartialDeleteFailure,
    TransientIOError,
    UnresolvedRelation,
)
from .inventory import (
    DiffSyncBaseModel,
    EntityField,
    EntityWrapper,
    InventoryAdapter,
    PreIndexResult,
)
from .orphans import OrphanTracker
from .relations import RelationMatcher, match_relation, parse_relations

__all__ = (
    "CmdbRequestError",
    "ConfigurationError",
    "CreateConflict",
    "DanglingReference",
    "DiffSyncBaseModel",
    "EMPTY_VALUES",
    "EntityField",
    "EntityWrapper",
    "FieldKind",
    "IndexLoadError",
    "InventoryAdapter",
    "NetBoxSsotException",
    "OrphanTracker",
    "PartialDeleteFailure",
    "PreIndexResult",
    "RelationMatcher",
    "TransientIOError",
    "UnresolvedRelation",
    "fields",
    "is_empty",
    "match_relation",
    "parse_relations",
    "slugify",
)
