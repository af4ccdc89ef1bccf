# pylint: disable=too-many-lines
"""Generic DiffSync Inventory of CMDB entities."""

from enum import Enum
from threading import RLock
from typing import Any, Callable, ClassVar, Dict, Iterable, List, Mapping, Optional, OrderedDict, Type, Union

from diffsync import DiffSyncModel
from diffsync.exceptions import ObjectAlreadyExists, ObjectNotFound

from netbox_ssot.base import SSOT_TAG_SLUG, SYNC_ORDER, ContentTypeStr, FieldName, RecordData, Uid, logger
from netbox_ssot.summary import EntityStats, EntitySummary, SyncIssue

from .base import FIELD_KIND_TO_ANNOTATION, BaseAdapter, FieldKind, PydanticField, is_empty
from .exceptions import DanglingReference, NetBoxSsotException
from .orphans import OrphanTracker


class PreIndexResult(Enum):
    """Pre Index Response."""

    DEFER_RECORD = False
    USE_RECORD = True


PreIndex = Callable[[RecordData], PreIndexResult]
PreUpsert = Callable[[RecordData], None]
Normalizer = Callable[[Any], Any]
CreateDefault = Callable[[RecordData], Any]
EntityFieldFactory = Callable[["EntityField"], None]
EntityFieldDefinition = Union[
    None,  # Plain field
    FieldName,  # Plain field, with a different API name
    EntityFieldFactory,  # Field factory, see `fields` module
]


class InventoryAdapter(BaseAdapter):
    """In-memory index of CMDB entities, keyed by natural keys."""

    def __init__(self, client, *args, adopt_unowned: bool = False, **kwargs):
        """Initialize the adapter.

        Args:
            client (NetBoxClient): CMDB API client.
            adopt_unowned (bool): Add the ownership tag to matched entities created by someone else.
        """
        super().__init__(*args, **kwargs)

        self.client = client
        self.adopt_unowned = adopt_unowned
        self.wrappers: OrderedDict[ContentTypeStr, EntityWrapper] = OrderedDict()
        self.orphans = OrphanTracker()
        self.ssot_tag_id: Optional[Uid] = None
        self.trace_issues = False

    # pylint: disable=too-many-arguments
    def configure_model(  # noqa: PLR0913
        self,
        content_type: ContentTypeStr,
        api_path: str = "",
        identifiers: Optional[Iterable[FieldName]] = None,
        fields: Optional[Mapping[FieldName, EntityFieldDefinition]] = None,
        pre_upsert: Optional[PreUpsert] = None,
        pre_index: Optional[PreIndex] = None,
    ) -> "EntityWrapper":
        """Create if not exist and configure a wrapper for a given content type."""
        content_type = content_type.lower()

        if content_type in self.wrappers:
            wrapper = self.wrappers[content_type]
            if api_path and wrapper.api_path != api_path:
                raise ValueError(f"Content type {content_type} already mapped to {wrapper.api_path}")
        else:
            if not api_path:
                raise ValueError(f"Missing API path for {content_type}")
            wrapper = EntityWrapper(self, content_type, api_path)

        if identifiers:
            wrapper.set_identifiers(identifiers)
        for field_name, definition in (fields or {}).items():
            wrapper.add_field(field_name).set_definition(definition)
        if pre_upsert:
            wrapper.pre_upsert = pre_upsert
        if pre_index:
            wrapper.pre_index = pre_index

        return wrapper

    def get_wrapper(self, content_type: ContentTypeStr) -> "EntityWrapper":
        """Get a wrapper for a given content type."""
        try:
            return self.wrappers[content_type.lower()]
        except KeyError as error:
            raise ValueError(f"Unknown content type {content_type}") from error

    def get_ordered_wrappers(self) -> List["EntityWrapper"]:
        """Get wrappers in the dependency order."""
        order = {content_type: index for index, content_type in enumerate(SYNC_ORDER)}
        wrappers = list(self.wrappers.values())
        return sorted(wrappers, key=lambda item: order.get(item.content_type, len(order)))

    def is_ownership_tag(self, value: Any) -> bool:
        """Check if the tag, as returned by the API, is the ownership marker."""
        if isinstance(value, Mapping):
            if value.get("slug", None) == SSOT_TAG_SLUG:
                return True
            value = value.get("id", None)

        return self.ssot_tag_id is not None and value == self.ssot_tag_id

    def load(self) -> None:
        """Load all configured entity types from the CMDB."""
        for wrapper in self.get_ordered_wrappers():
            wrapper.load()

    def summarize(self) -> List[EntitySummary]:
        """Get summaries of all wrappers."""
        return [wrapper.get_summary() for wrapper in self.get_ordered_wrappers()]


class EntityField:
    """Wrapper for a CMDB entity field."""

    def __init__(self, wrapper: "EntityWrapper", name: FieldName):
        """Initialize the field."""
        self.wrapper = wrapper
        self.name = name
        self.api_name = name
        self.kind = FieldKind.PLAIN
        self.related_content_type: ContentTypeStr = ""
        self.normalize: Optional[Normalizer] = None
        self.create_default: Optional[CreateDefault] = None
        self.definition: EntityFieldDefinition = None

    def __str__(self) -> str:
        """Return a string representation of the field."""
        return f"{self.__class__.__name__}<{self.wrapper.content_type}.{self.name} {self.kind.value}>"

    @property
    def related_wrapper(self) -> "EntityWrapper":
        """Get the wrapper of the related content type."""
        if not self.related_content_type:
            raise ValueError(f"{self} is not a relation")

        return self.wrapper.adapter.get_wrapper(self.related_content_type)

    def set_definition(self, definition: EntityFieldDefinition) -> None:
        """Customize the field."""
        self.definition = definition

        if definition is None:
            return
        if isinstance(definition, str):
            self.api_name = definition
        elif callable(definition):
            definition(self)
        else:
            raise NotImplementedError(f"Unsupported field definition {definition}")

    def set_relation(self, related_content_type: ContentTypeStr, many=False) -> None:
        """Mark the field as a relation to another content type."""
        self.kind = FieldKind.MANY_RELATION if many else FieldKind.RELATION
        self.related_content_type = related_content_type

    def from_api(self, value: Any) -> Any:
        """Convert a value returned by the API to the internal representation."""
        if is_empty(value):
            if self.kind in (FieldKind.MANY_RELATION, FieldKind.TAGS):
                return []
            if self.kind == FieldKind.CUSTOM_FIELDS:
                return {}
            return None

        if self.kind == FieldKind.RELATION:
            return _get_id(value)
        if self.kind in (FieldKind.MANY_RELATION, FieldKind.TAGS):
            return sorted({_get_id(item) for item in value})
        if self.kind == FieldKind.CHOICE:
            value = value.get("value", None) if isinstance(value, Mapping) else value
        elif self.kind == FieldKind.CUSTOM_FIELDS:
            return dict(value)

        return self.normalize(value) if self.normalize and value is not None else value

    def resolve(self, value: Any) -> Any:
        """Convert a candidate value to the internal representation, resolving relations to CMDB ids.

        Raises:
            DanglingReference: When a related entity is not indexed.
        """
        if self.kind == FieldKind.RELATION:
            if is_empty(value):
                return None
            return self._resolve_relation(value)

        if self.kind in (FieldKind.MANY_RELATION, FieldKind.TAGS):
            if is_empty(value):
                return []
            if isinstance(value, (str, Mapping)) or not isinstance(value, Iterable):
                value = [value]
            result = {self._resolve_relation(item) for item in value}
            if self.kind == FieldKind.TAGS:
                # Ownership marker is never part of the tags value
                result.discard(self.wrapper.adapter.ssot_tag_id)
            return sorted(result)

        if self.kind == FieldKind.CUSTOM_FIELDS:
            return dict(value or {})

        if self.kind == FieldKind.CHOICE and isinstance(value, Mapping):
            value = value.get("value", None)

        if self.normalize and not is_empty(value):
            return self.normalize(value)

        return value

    def _resolve_relation(self, value: Any) -> Uid:
        related = self.related_wrapper
        if self.kind == FieldKind.TAGS and isinstance(value, str):
            value = {"name": value}

        try:
            return related.resolve_reference(value)
        except DanglingReference as error:
            raise DanglingReference(self.wrapper.content_type, self.name, value) from error


def _get_id(value: Any) -> Uid:
    if isinstance(value, Mapping):
        value = value["id"]
    return int(value)


EntityFields = OrderedDict[FieldName, EntityField]


# pylint: disable=too-many-instance-attributes,too-many-public-methods
class EntityWrapper:
    """Wrapper for a CMDB entity type, holding its index, upsert logic and statistics."""

    def __init__(self, adapter: InventoryAdapter, content_type: ContentTypeStr, api_path: str):
        """Initialize the wrapper."""
        self._diffsync_class: Optional[Type[DiffSyncBaseModel]] = None
        self._issues: List[SyncIssue] = []
        self._by_id: Dict[Uid, DiffSyncBaseModel] = {}

        self.adapter = adapter
        adapter.wrappers[content_type] = self
        self.content_type = content_type
        self.api_path = api_path.strip("/")
        self.identifiers: List[FieldName] = []
        self.fields: EntityFields = OrderedDict()
        self.pre_upsert: Optional[PreUpsert] = None
        self.pre_index: Optional[PreIndex] = None
        self.deferred: List[RecordData] = []
        self.sweep_blocked_reason = ""
        self.lock = RLock()
        self.stats = EntityStats()

        logger.debug("Created wrapper", content_type=content_type)

    def __str__(self) -> str:
        """Return a string representation of the wrapper."""
        return f"{self.__class__.__name__}<{self.content_type}>"

    def __len__(self) -> int:
        """Return count of indexed entities."""
        return len(self._by_id)

    @property
    def has_tags(self) -> bool:
        """Check if the entity type carries tags, and therefore can be owned by the tool."""
        return any(field.kind == FieldKind.TAGS for field in self.fields.values())

    @property
    def diffsync_class(self) -> Type["DiffSyncBaseModel"]:
        """Get `DiffSyncModel` class for this wrapper."""
        if self._diffsync_class:
            return self._diffsync_class

        if not self.identifiers:
            raise ValueError(f"Missing identifiers for {self.content_type}")

        annotations: Dict[str, Any] = {
            "id": Optional[int],
            "owned": bool,
        }
        attributes = []
        identifiers = list(self.identifiers)

        class_definition = {
            "__annotations__": annotations,
            "_attributes": attributes,
            "_identifiers": identifiers,
            "_modelname": self.content_type.replace(".", "_"),
            "_wrapper": self,
            "id": PydanticField(default=None),
            "owned": PydanticField(default=False),
        }

        for field in self.fields.values():
            if field.name in identifiers:
                annotations[field.name] = Any
                class_definition[field.name] = PydanticField()
                continue

            attributes.append(field.name)
            annotations[field.name] = FIELD_KIND_TO_ANNOTATION[field.kind]
            class_definition[field.name] = PydanticField(default=None)

        try:
            result = type(class_definition["_modelname"], (DiffSyncBaseModel,), class_definition)
            self._diffsync_class = result
        except Exception:
            logger.error("Failed to create DiffSync Model", content_type=self.content_type, exc_info=True)
            raise

        logger.debug("Created DiffSync Model", content_type=self.content_type, identifiers=identifiers)

        return result

    def set_identifiers(self, identifiers: Iterable[FieldName]) -> None:
        """Set the natural key fields."""
        if self._diffsync_class:
            raise RuntimeError("Cannot change identifiers after the DiffSync Model has been created")

        self.identifiers = list(identifiers)
        for identifier in self.identifiers:
            self.add_field(identifier)

    def add_field(self, field_name: FieldName) -> EntityField:
        """Add a field to the entity type."""
        if field_name in self.fields:
            return self.fields[field_name]

        if self._diffsync_class:
            raise RuntimeError("Cannot add fields after the DiffSync Model has been created")

        field = EntityField(self, field_name)
        self.fields[field_name] = field
        return field

    def get_by_id(self, uid: Uid) -> Optional["DiffSyncBaseModel"]:
        """Get indexed entity by CMDB id."""
        return self._by_id.get(uid, None)

    def get_key(self, data: Mapping[FieldName, Any]) -> str:
        """Get the index key of already resolved natural key values."""
        return self.diffsync_class.create_unique_id(**{name: data.get(name, None) for name in self.identifiers})

    def resolve_key(self, data: Mapping[FieldName, Any]) -> Dict[FieldName, Any]:
        """Resolve natural key fields of candidate data."""
        return {name: self.fields[name].resolve(data.get(name, None)) for name in self.identifiers}

    def find(self, data: Mapping[FieldName, Any]) -> "DiffSyncBaseModel":
        """Find an indexed entity by natural key values.

        Raises:
            DanglingReference: When no entity matches.
        """
        if "id" in data:
            instance = self.get_by_id(_get_id(data))
            if instance:
                return instance
            raise DanglingReference(self.content_type, "id", data["id"])

        values = dict(data)
        if self.pre_upsert:
            self.pre_upsert(values)

        uid = self.get_key(self.resolve_key(values))
        try:
            return self.adapter.get(self.diffsync_class, uid)
        except ObjectNotFound as error:
            raise DanglingReference(self.content_type, "__".join(self.identifiers), uid) from error

    def resolve_reference(self, value: Any) -> Uid:
        """Resolve a reference to an indexed entity id.

        Reference can be CMDB id, DiffSync instance, mapping of natural key fields,
        or a string for single field natural keys.
        """
        if isinstance(value, DiffSyncBaseModel):
            value = value.id

        if isinstance(value, int) and not isinstance(value, bool):
            if value in self._by_id:
                return value
            raise DanglingReference(self.content_type, "id", value)

        if isinstance(value, str) and len(self.identifiers) == 1:
            value = {self.identifiers[0]: value}

        if isinstance(value, Mapping):
            return self.find(value).id  # type: ignore

        raise DanglingReference(self.content_type, "", value)

    def from_api(self, record: Mapping[str, Any]) -> RecordData:
        """Convert API record to the internal representation."""
        result: RecordData = {
            "id": _get_id(record),
            "owned": False,
        }

        for field in self.fields.values():
            value = record.get(field.api_name, None)
            if field.kind == FieldKind.TAGS:
                tags = []
                for tag in value or ():
                    if self.adapter.is_ownership_tag(tag):
                        result["owned"] = True
                    else:
                        tags.append(tag)
                value = tags
            result[field.name] = field.from_api(value)

        return result

    def to_api(self, values: Mapping[FieldName, Any], owned: bool) -> RecordData:
        """Convert internal values to the API payload."""
        result = {}
        for name, value in values.items():
            field = self.fields[name]
            if field.kind == FieldKind.TAGS:
                value = sorted(value or [])
                if owned and self.adapter.ssot_tag_id is not None:
                    value.append(self.adapter.ssot_tag_id)
            result[field.api_name] = value
        return result

    def load(self) -> None:
        """Load all entities of this type from the CMDB into the index."""
        logger.info("Loading", content_type=self.content_type)

        seen = set()
        for record in self.adapter.client.get_all(self.api_path):
            uid = _get_id(record)
            if uid in seen:
                self.stats.duplicates += 1
                logger.warning("Skipping duplicate record", content_type=self.content_type, uid=uid)
                continue
            seen.add(uid)

            data = self.from_api(record)
            self.stats.loaded += 1
            if self.pre_index and self.pre_index(data) == PreIndexResult.DEFER_RECORD:
                logger.debug("Deferring record", content_type=self.content_type, uid=uid)
                self.deferred.append(data)
                continue

            self.index(data)

        logger.info("Loaded", content_type=self.content_type, count=len(self._by_id))

    def index(self, data: RecordData) -> Optional["DiffSyncBaseModel"]:
        """Add internal record data to the index.

        Owned entities are tracked as orphans until confirmed by a source.
        """
        diffsync_class = self.diffsync_class
        values = {key: value for key, value in data.items() if key in diffsync_class.model_fields}
        instance = diffsync_class(**values)

        with self.lock:
            try:
                self.adapter.add(instance)
            except ObjectAlreadyExists:
                self.stats.duplicates += 1
                self.add_issue(
                    "DuplicateKey",
                    f"Natural key `{instance.get_unique_id()}` already indexed, keeping the first entity",
                    uid=instance.id,
                    data=data,
                )
                return None

            self._by_id[instance.id] = instance  # type: ignore
            if instance.owned:
                self.adapter.orphans.add(self.content_type, instance.id)  # type: ignore

        return instance

    def add_or_update(self, candidate: Mapping[FieldName, Any]) -> "DiffSyncBaseModel":
        """Create the candidate in the CMDB, or update the matching entity.

        Only fields present in the candidate are compared and patched.
        In both cases the entity is confirmed present for the orphan sweep.

        Raises:
            DanglingReference: When any relation doesn't resolve.
            CreateConflict: When the CMDB rejects the create as a duplicate.
            CmdbRequestError: When the CMDB rejects the create or update.
            TransientIOError: When the create or update request fails after all retries.
        """
        with self.lock:
            data = dict(candidate)
            data.pop("id", None)
            if self.pre_upsert:
                self.pre_upsert(data)
            key = self.resolve_key(data)

            try:
                instance = self.adapter.get(self.diffsync_class, self.get_key(key))
            except ObjectNotFound:
                instance = None

            if instance:
                self.adapter.orphans.mark_seen(self.content_type, instance.id)

            values = {}
            for name, value in data.items():
                if name in self.identifiers:
                    continue
                if name not in self.fields:
                    logger.debug("Ignoring unknown field", content_type=self.content_type, field=name)
                    continue
                values[name] = self.fields[name].resolve(value)

            if instance:
                return self._update(instance, values)

            return self._create(key, values)

    def _create(self, key: Dict[FieldName, Any], values: Dict[FieldName, Any]) -> "DiffSyncBaseModel":
        data = {**key, **values}
        for field in self.fields.values():
            if field.create_default and is_empty(data.get(field.name, None)):
                data[field.name] = field.create_default(data)

        owned = self.has_tags
        payload = {name: value for name, value in data.items() if value is not None}
        if owned:
            payload.setdefault("tags", [])

        record = self.adapter.client.create(self.api_path, self.to_api(payload, owned))

        instance = self.index({**data, "id": _get_id(record), "owned": owned})
        if not instance:
            raise RuntimeError(f"Created {self.content_type} {key} can't be indexed")
        self.adapter.orphans.mark_seen(self.content_type, instance.id)  # type: ignore

        self.stats.created += 1
        logger.info("Created", content_type=self.content_type, uid=instance.id, key=instance.get_unique_id())

        return instance

    # pylint: disable=too-many-branches
    def _update(self, instance: "DiffSyncBaseModel", values: Dict[FieldName, Any]) -> "DiffSyncBaseModel":  # noqa: PLR0912
        changes = {}
        patch = {}

        for name, value in values.items():
            field = self.fields[name]
            current = getattr(instance, name, None)

            if field.kind == FieldKind.TAGS:
                current = sorted(current or [])
                merged = sorted(set(current) | set(value or []))
                if merged != current:
                    changes[name] = patch[name] = merged
                continue

            if field.kind == FieldKind.CUSTOM_FIELDS:
                current = dict(current or {})
                diff = {}
                for item_name, item_value in (value or {}).items():
                    item_current = current.get(item_name, None)
                    if _is_same(item_current, item_value):
                        continue
                    if not instance.owned and not is_empty(item_current):
                        self._add_ownership_conflict(instance, f"{name}.{item_name}", item_current, item_value)
                        continue
                    diff[item_name] = item_value
                if diff:
                    patch[name] = diff
                    changes[name] = {**current, **diff}
                continue

            if _is_same(current, value):
                continue

            if not instance.owned and not is_empty(current):
                self._add_ownership_conflict(instance, name, current, value)
                continue

            changes[name] = patch[name] = value

        adopt = self.adapter.adopt_unowned and not instance.owned and self.has_tags
        if adopt:
            tags = changes.get("tags", getattr(instance, "tags", None))
            changes["tags"] = patch["tags"] = sorted(tags or [])

        if not patch:
            self.stats.unchanged += 1
            return instance

        self.adapter.client.patch(self.api_path, instance.id, self.to_api(patch, instance.owned or adopt))

        for name, value in changes.items():
            setattr(instance, name, value)
        if adopt:
            instance.owned = True
            logger.info("Adopted", content_type=self.content_type, uid=instance.id)

        self.stats.updated += 1
        logger.info("Updated", content_type=self.content_type, uid=instance.id, fields=sorted(patch))

        return instance

    def _add_ownership_conflict(self, instance: "DiffSyncBaseModel", name: str, current: Any, value: Any) -> None:
        self.stats.conflicts += 1
        self.add_issue(
            "OwnershipConflict",
            f"Not overwriting `{name}` of not owned entity, CMDB: `{current}`, source: `{value}`",
            diffsync_instance=instance,
        )

    def delete(self, uid: Uid) -> None:
        """Delete the entity from the CMDB and the index."""
        try:
            if not self.adapter.client.delete(self.api_path, uid):
                logger.debug("Already deleted", content_type=self.content_type, uid=uid)
        except NetBoxSsotException:
            self.stats.delete_failed += 1
            raise

        instance = self._by_id.pop(uid, None)
        if instance:
            self.adapter.remove(instance)

        self.stats.deleted += 1
        logger.info("Deleted", content_type=self.content_type, uid=uid)

    def get_summary(self) -> EntitySummary:
        """Get the summary."""
        issues = sorted(self._issues, key=lambda issue: (issue.uid, issue.issue_type, issue.message))
        self.stats.issues = len(issues)

        return EntitySummary(
            content_type=self.content_type,
            api_path=self.api_path,
            identifiers=list(self.identifiers),
            stats=self.stats,
            issues=issues,
            sweep_blocked_reason=self.sweep_blocked_reason,
        )

    # pylint: disable=too-many-arguments
    def add_issue(  # noqa: PLR0913
        self,
        issue_type="",
        message="",
        uid: Optional[Uid] = None,
        data: Optional[Mapping] = None,
        diffsync_instance: Optional[DiffSyncModel] = None,
        error: Optional[Exception] = None,
    ) -> SyncIssue:
        """Add a new sync issue.

        All input arguments are optional, the issue is filled with as much information as possible.

        Args:
            issue_type (Optional[str]): The type of the issue, e.g. "CreateFailed". Can be determined from `error`.
            message (Optional[str]): A message to be included in the issue. Can be determined from `error`.
            uid (Optional[Uid]): CMDB id of the entity. Can be determined from `diffsync_instance`.
            data (Optional[Mapping]): The data that caused the issue.
            diffsync_instance (Optional[DiffSyncModel]): The indexed entity that caused the issue.
            error (Optional[Exception]): The error that caused the issue.
        """
        if not issue_type:
            if error:
                issue_type = getattr(error, "issue_type", None) or error.__class__.__name__
            else:
                issue_type = "Unknown"

        name = ""
        if diffsync_instance:
            name = diffsync_instance.get_unique_id()
            if uid is None:
                uid = getattr(diffsync_instance, "id", None)
            if not data:
                data = diffsync_instance.get_identifiers()

        def get_message():
            if message:
                yield message
            if error:
                yield str(error)

        issue = SyncIssue(
            uid="" if uid is None else str(uid),
            name=name,
            issue_type=issue_type,
            message=" ".join(get_message()),
            data={str(key): str(value) for key, value in (data or {}).items() if not str(key).startswith("_")},
        )
        self._issues.append(issue)

        logger.warning(issue.message, content_type=self.content_type, issue_type=issue_type, uid=issue.uid)
        if error and self.adapter.trace_issues:
            logger.error("Issue traceback", exc_info=error)

        return issue


def _is_same(current: Any, value: Any) -> bool:
    if is_empty(current) and is_empty(value):
        return True
    return current == value


class DiffSyncBaseModel(DiffSyncModel):
    """Base class for all indexed entities."""

    _wrapper: ClassVar[EntityWrapper]
