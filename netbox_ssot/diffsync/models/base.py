"""Shared helpers for NetBox entity types definitions."""

from typing import TYPE_CHECKING

from netbox_ssot.base import FieldName, RecordData
from netbox_ssot.generator import DanglingReference, is_empty
from netbox_ssot.generator.inventory import PreUpsert

if TYPE_CHECKING:
    from netbox_ssot.diffsync.adapters.netbox import NetBoxAdapter


def generic_relation(adapter: "NetBoxAdapter", content_type: str, type_field: FieldName, id_field: FieldName) -> PreUpsert:
    """Create a pre-upsert hook resolving generic relations, e.g. `assigned_object_type` + `assigned_object_id`.

    The id field can reference the related entity by CMDB id or by a mapping of natural key fields.
    """

    def resolve_generic_relation(data: RecordData) -> None:
        object_type = data.get(type_field, None)
        value = data.get(id_field, None)
        if not object_type or is_empty(value):
            return

        if object_type not in adapter.wrappers:
            if isinstance(value, int):
                return
            raise ValueError(f"Can't resolve `{value}`, unsupported {type_field} `{object_type}`")

        try:
            data[id_field] = adapter.get_wrapper(object_type).resolve_reference(value)
        except DanglingReference as error:
            raise DanglingReference(content_type, id_field, value) from error

    return resolve_generic_relation
