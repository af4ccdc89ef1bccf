"""Regex based resolution of soft relations from source entity names."""

import re
from typing import TYPE_CHECKING, Iterable, List, Mapping, Optional, Pattern, Sequence, Tuple, Union

from netbox_ssot.base import ContentTypeStr, FieldName, RecordData, logger

from .exceptions import ConfigurationError, DanglingReference, UnresolvedRelation

if TYPE_CHECKING:
    from .inventory import InventoryAdapter

RelationRule = Tuple[Pattern[str], str]
RelationRuleDefinition = Union[str, Sequence[str]]

# Relation kinds, as named in the configuration, applied to source records.
# content type => ((field name, related content type, relation kind), ...)
RELATION_FIELDS: Mapping[ContentTypeStr, Tuple[Tuple[FieldName, ContentTypeStr, str], ...]] = {
    "dcim.device": (
        ("site", "dcim.site", "host_site"),
        ("tenant", "tenancy.tenant", "host_tenant"),
    ),
    "virtualization.cluster": (
        ("site", "dcim.site", "cluster_site"),
        ("tenant", "tenancy.tenant", "cluster_tenant"),
    ),
    "virtualization.virtualmachine": (("tenant", "tenancy.tenant", "vm_tenant"),),
}

RELATION_KINDS = tuple(sorted({kind for relations in RELATION_FIELDS.values() for _, _, kind in relations}))


def parse_relation(definition: RelationRuleDefinition) -> RelationRule:
    """Parse a single relation rule.

    Rule can be defined as `"<regex> = <label>"` string or as `[regex, label]` pair.
    """
    if isinstance(definition, str):
        pattern, separator, label = definition.rpartition("=")
        if not separator:
            raise ConfigurationError(f"Invalid relation `{definition}`, expected `<regex> = <label>`")
    elif len(definition) == 2:
        pattern, label = definition
    else:
        raise ConfigurationError(f"Invalid relation `{definition}`, expected `[regex, label]`")

    pattern = str(pattern).strip()
    label = str(label).strip()
    if not pattern or not label:
        raise ConfigurationError(f"Invalid relation `{definition}`, both regex and label are required")

    try:
        return re.compile(pattern), label
    except re.error as error:
        raise ConfigurationError(f"Invalid regex in relation `{definition}`: {error}") from error


def parse_relations(definitions: Optional[Iterable[RelationRuleDefinition]]) -> List[RelationRule]:
    """Parse relation rules, keeping the configured order."""
    return [parse_relation(definition) for definition in definitions or ()]


def match_relation(name: str, rules: Iterable[RelationRule]) -> str:
    """Get the label of the first rule matching the name, empty string if no rule matches."""
    for pattern, label in rules:
        if pattern.search(name):
            return label

    return ""


class RelationMatcher:
    """Resolves relations using configured rules and validates the results against the index."""

    def __init__(self, adapter: "InventoryAdapter", relations: Optional[Mapping[str, Sequence[RelationRule]]] = None):
        """Initialize the matcher.

        Args:
            adapter (InventoryAdapter): Index to validate matched labels against.
            relations (Mapping): Relation kind to rules mapping, kinds are listed in `RELATION_KINDS`.
        """
        self.adapter = adapter
        self.relations = dict(relations or {})

    def resolve(self, name: str, rules: Sequence[RelationRule], content_type: ContentTypeStr) -> str:
        """Resolve the name to a label of the related content type.

        Raises:
            UnresolvedRelation: When the matched label is not present in the index.
        """
        label = match_relation(name, rules)
        if not label:
            return ""

        wrapper = self.adapter.get_wrapper(content_type)
        try:
            wrapper.find({"name": label})
        except DanglingReference as error:
            raise UnresolvedRelation(name, label, content_type) from error

        return label

    def apply(self, content_type: ContentTypeStr, record: RecordData) -> RecordData:
        """Fill missing relation fields in the record based on the record name."""
        relations = RELATION_FIELDS.get(content_type, ())
        name = record.get("name", "")
        if not relations or not name:
            return record

        result = dict(record)
        for field_name, related_content_type, kind in relations:
            rules = self.relations.get(kind, None)
            if not rules or result.get(field_name, None):
                continue

            label = self.resolve(name, rules, related_content_type)
            if label:
                logger.debug("Matched relation", content_type=content_type, name=name, field=field_name, label=label)
                result[field_name] = {"name": label}

        return result
