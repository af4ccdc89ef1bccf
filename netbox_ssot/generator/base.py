"""Generic DiffSync Inventory base module."""

import re
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from diffsync import Adapter
from diffsync.store.local import LocalStore
from pydantic import Field as _PydanticField

PydanticField = _PydanticField


class FieldKind(Enum):
    """Internal field kinds."""

    PLAIN = "Plain"
    CHOICE = "Choice"
    RELATION = "Relation"
    MANY_RELATION = "ManyRelation"
    TAGS = "Tags"
    CUSTOM_FIELDS = "CustomFields"


FIELD_KIND_TO_ANNOTATION: Mapping[FieldKind, Any] = {
    FieldKind.PLAIN: Any,
    FieldKind.CHOICE: Any,
    FieldKind.RELATION: Optional[int],
    FieldKind.MANY_RELATION: Optional[List[int]],
    FieldKind.TAGS: Optional[List[int]],
    FieldKind.CUSTOM_FIELDS: Optional[Dict[str, Any]],
}

EMPTY_VALUES = (
    "",
    None,
    [],
    set(),
    tuple(),
    {},
)

_SLUG_INVALID_CHARS = re.compile(r"[^a-z0-9_]+")


def is_empty(value: Any) -> bool:
    """Check if the value is considered empty in the CMDB."""
    return any(value is empty or (type(value) is type(empty) and value == empty) for empty in EMPTY_VALUES)


def slugify(value: str) -> str:
    """Create NetBox compatible slug from the value."""
    return _SLUG_INVALID_CHARS.sub("-", str(value).lower()).strip("-")


class BaseAdapter(Adapter):
    """Base class for Inventory Adapters."""

    def __init__(self, *args, **kwargs):
        """Initialize the adapter."""
        super().__init__(*args, **kwargs)

        self.cleanup()

    def cleanup(self):
        """Clean up the adapter."""
        # Allows running multiple syncs in a single process.
        self.top_level.clear()
        if isinstance(self.store, LocalStore):
            # pylint: disable=protected-access
            self.store._data.clear()
