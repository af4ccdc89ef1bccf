"""Generic Field definitions for the CMDB Inventory."""

from typing import Any, Callable, Optional

import netaddr

from .base import FieldKind, slugify
from .inventory import ContentTypeStr, EntityField, EntityFieldDefinition, FieldName, RecordData


def relation(related_content_type: ContentTypeStr, api_name: FieldName = "") -> EntityFieldDefinition:
    """Create a relation field definition.

    Relation values are stored as CMDB ids of the related content type.
    Candidates can reference related entities by id or by a mapping of natural key fields.
    """

    def define_relation(field: EntityField) -> None:
        field.set_relation(related_content_type)
        if api_name:
            field.api_name = api_name

    return define_relation


def many_relation(related_content_type: ContentTypeStr, api_name: FieldName = "") -> EntityFieldDefinition:
    """Create a many-to-many relation field definition, stored as a sorted list of CMDB ids."""

    def define_many_relation(field: EntityField) -> None:
        field.set_relation(related_content_type, many=True)
        if api_name:
            field.api_name = api_name

    return define_many_relation


def tags() -> EntityFieldDefinition:
    """Create a tags field definition.

    Tags are merged with the CMDB tags on update, never removed.
    The ownership marker is handled separately from the field value.
    """

    def define_tags(field: EntityField) -> None:
        field.set_relation("extras.tag", many=True)
        field.kind = FieldKind.TAGS

    return define_tags


def custom_fields() -> EntityFieldDefinition:
    """Create a custom fields definition, compared and patched key by key."""

    def define_custom_fields(field: EntityField) -> None:
        field.kind = FieldKind.CUSTOM_FIELDS

    return define_custom_fields


def choice(api_name: FieldName = "", default: Any = None) -> EntityFieldDefinition:
    """Create a choice field definition.

    The API returns choices as `{"value": ..., "label": ...}`, only the value is kept.
    """

    def define_choice(field: EntityField) -> None:
        field.kind = FieldKind.CHOICE
        if api_name:
            field.api_name = api_name
        if default is not None:
            field.create_default = lambda _: default

    return define_choice


def normalized(normalize: Callable[[Any], Any], api_name: FieldName = "") -> EntityFieldDefinition:
    """Create a field definition normalizing both CMDB and candidate values before comparison."""

    def define_normalized(field: EntityField) -> None:
        field.normalize = normalize
        if api_name:
            field.api_name = api_name

    return define_normalized


def default(value: Any, api_name: FieldName = "") -> EntityFieldDefinition:
    """Create a default field definition.

    Use to set a value when creating an entity, if the candidate doesn't provide any.
    """

    def define_default(field: EntityField) -> None:
        field.create_default = lambda _: value
        if api_name:
            field.api_name = api_name

    return define_default


def slug(from_field: FieldName = "name") -> EntityFieldDefinition:
    """Create a slug field definition, generated from another field when creating an entity."""

    def create_slug(data: RecordData) -> Optional[str]:
        value = data.get(from_field, None)
        return slugify(value) if value else None

    def define_slug(field: EntityField) -> None:
        field.create_default = create_slug

    return define_slug


def integer(api_name: FieldName = "") -> EntityFieldDefinition:
    """Create an integer field definition."""
    return normalized(int, api_name)


def sorted_list(api_name: FieldName = "") -> EntityFieldDefinition:
    """Create a field definition for unordered lists of primitives."""

    def normalize(value: Any) -> list:
        if isinstance(value, str):
            return [value]
        return sorted(value)

    return normalized(normalize, api_name)


def normalize_ip_address(value: Any) -> str:
    """Normalize IP address with the prefix length, host bits are kept, e.g. `10.0.0.5/24`."""
    return str(netaddr.IPNetwork(str(value)))


def normalize_ip_network(value: Any) -> str:
    """Normalize IP prefix to the network CIDR, e.g. `10.0.0.0/24`."""
    return str(netaddr.IPNetwork(str(value)).cidr)


def normalize_mac_address(value: Any) -> str:
    """Normalize MAC address to the upper case colon separated format returned by the CMDB."""
    return str(netaddr.EUI(str(value), dialect=netaddr.mac_unix_expanded)).upper()


def ip_address(api_name: FieldName = "") -> EntityFieldDefinition:
    """Create an IP address field definition."""
    return normalized(normalize_ip_address, api_name)


def ip_network(api_name: FieldName = "") -> EntityFieldDefinition:
    """Create an IP prefix field definition."""
    return normalized(normalize_ip_network, api_name)


def mac_address(api_name: FieldName = "") -> EntityFieldDefinition:
    """Create a MAC address field definition."""
    return normalized(normalize_mac_address, api_name)
