"""NetBox Inventory Adapter."""

from typing import Any, Iterable, List, Mapping, Optional

from diffsync.exceptions import ObjectNotFound
from packaging.version import Version

from netbox_ssot.base import (
    ADMIN_CONTACT_ROLE_NAME,
    DEFAULT_VLAN_GROUP_DESCRIPTION,
    DEFAULT_VLAN_GROUP_NAME,
    DEFAULT_VLAN_MAX_VID,
    DEFAULT_VLAN_MIN_VID,
    GENERATOR_SETUP_MODULES,
    SERVER_DEVICE_ROLE_NAME,
    SSOT_TAG_COLOR,
    SSOT_TAG_DESCRIPTION,
    SSOT_TAG_NAME,
    SSOT_TAG_SLUG,
    Uid,
    logger,
    register_generator_setup,
)
from netbox_ssot.generator import (
    CmdbRequestError,
    DiffSyncBaseModel,
    EntityWrapper,
    IndexLoadError,
    InventoryAdapter,
    NetBoxSsotException,
    slugify,
)

for _name in (
    "extras",
    "tenancy",
    "dcim",
    "virtualization",
    "ipam",
):
    register_generator_setup(f"netbox_ssot.diffsync.models.{_name}")

_CUSTOM_FIELD_DEFAULTS = {
    "type": "text",
    "filter_logic": "loose",
    "ui_visible": "always",
    "ui_editable": "yes",
    "ui_visibility": "read-write",
    "weight": 100,
    "search_weight": 1000,
}

CUSTOM_FIELDS: Iterable[Mapping[str, Any]] = (
    {
        "name": "host_cpu_cores",
        "label": "Host CPU cores",
        "description": "Number of CPU cores on the host",
        "object_types": ["dcim.device"],
    },
    {
        "name": "host_memory",
        "label": "Host memory",
        "description": "Amount of memory on the host",
        "object_types": ["dcim.device"],
    },
    {
        "name": "source_id",
        "label": "Source ID",
        "description": "ID of the object on the source API",
        "object_types": ["dcim.interface", "virtualization.vminterface"],
    },
)


class NetBoxAdapter(InventoryAdapter):
    """NetBox Inventory Adapter."""

    def __init__(self, client, *args, netbox_version: Optional[Version] = None, **kwargs):
        """Initialize NetBox Inventory Adapter.

        Args:
            client (NetBoxClient): NetBox API client.
            netbox_version (Version, optional): NetBox version, read from the API if not provided.
        """
        kwargs.setdefault("name", "NetBox")
        super().__init__(client, *args, **kwargs)

        self.netbox_version = netbox_version or client.get_version()
        self.default_vlan_group_id: Optional[Uid] = None

        logger.info("Connected", url=getattr(client, "url", ""), version=str(self.netbox_version))

        for name in GENERATOR_SETUP_MODULES:
            setup = __import__(name, fromlist=["setup"]).setup
            setup(self)

    def load(self) -> None:
        """Load the CMDB snapshot and ensure default entities exist.

        Tags are loaded first, to recognize the ownership marker in all other entities.

        Raises:
            IndexLoadError: When any entity type can't be loaded.
        """
        tags = self.get_wrapper("extras.tag")
        self._load_wrapper(tags)
        self._run_bootstrap_step("extras.tag", self.ensure_ssot_tag)

        for wrapper in self.get_ordered_wrappers():
            if wrapper is not tags:
                self._load_wrapper(wrapper)

        self._run_bootstrap_step("bootstrap", self.bootstrap)
        self._run_bootstrap_step("ipam.vlan", self.index_deferred_vlans)

    def _load_wrapper(self, wrapper: EntityWrapper) -> None:
        try:
            wrapper.load()
        except NetBoxSsotException as error:
            raise IndexLoadError(wrapper.content_type, error) from error

    @staticmethod
    def _run_bootstrap_step(name: str, step) -> None:
        try:
            step()
        except NetBoxSsotException as error:
            raise IndexLoadError(name, error) from error

    def ensure_tag(self, name: str, color: str = SSOT_TAG_COLOR, description: str = "") -> DiffSyncBaseModel:
        """Create the tag if it doesn't exist."""
        return self.get_wrapper("extras.tag").add_or_update(
            {
                "name": name,
                "slug": slugify(name),
                "color": color,
                "description": description,
            }
        )

    def ensure_ssot_tag(self) -> None:
        """Create the ownership marker tag."""
        tag = self.get_wrapper("extras.tag").add_or_update(
            {
                "name": SSOT_TAG_NAME,
                "slug": SSOT_TAG_SLUG,
                "color": SSOT_TAG_COLOR,
                "description": SSOT_TAG_DESCRIPTION,
            }
        )
        self.ssot_tag_id = tag.id

    def bootstrap(self) -> None:
        """Create default entities, required by the sync, if they don't exist."""
        vlan_group = self.get_wrapper("ipam.vlangroup").add_or_update(
            {
                "name": DEFAULT_VLAN_GROUP_NAME,
                "slug": slugify(DEFAULT_VLAN_GROUP_NAME),
                "min_vid": DEFAULT_VLAN_MIN_VID,
                "max_vid": DEFAULT_VLAN_MAX_VID,
                "description": DEFAULT_VLAN_GROUP_DESCRIPTION,
            }
        )
        self.default_vlan_group_id = vlan_group.id

        self.get_wrapper("dcim.devicerole").add_or_update(
            {
                "name": SERVER_DEVICE_ROLE_NAME,
                "slug": slugify(SERVER_DEVICE_ROLE_NAME),
                "color": SSOT_TAG_COLOR,
                "vm_role": True,
            }
        )
        self.get_wrapper("tenancy.contactrole").add_or_update(
            {
                "name": ADMIN_CONTACT_ROLE_NAME,
                "slug": slugify(ADMIN_CONTACT_ROLE_NAME),
                "description": "Auto generated contact role by netbox-ssot for admins of vms.",
            }
        )

        custom_fields = self.get_wrapper("extras.customfield")
        for definition in CUSTOM_FIELDS:
            custom_fields.add_or_update({**_CUSTOM_FIELD_DEFAULTS, **definition})

    def index_deferred_vlans(self) -> List[DiffSyncBaseModel]:
        """Move VLANs loaded without a group to the default VLAN group and index them."""
        wrapper = self.get_wrapper("ipam.vlan")
        deferred, wrapper.deferred = wrapper.deferred, []
        result = []

        for data in deferred:
            data["group"] = self.default_vlan_group_id
            key = wrapper.get_key(data)
            if self._is_indexed(wrapper, key):
                wrapper.add_issue(
                    "DuplicateKey",
                    f"Can't move ungrouped VLAN to the default group, `{key}` already exists",
                    uid=data["id"],
                    data=data,
                )
                continue

            try:
                self.client.patch(wrapper.api_path, data["id"], {"group": self.default_vlan_group_id})
            except CmdbRequestError as error:
                wrapper.add_issue(uid=data["id"], data=data, error=error)
                continue

            instance = wrapper.index(data)
            if instance:
                wrapper.stats.updated += 1
                logger.info("Moved VLAN to the default group", uid=instance.id, vid=data.get("vid", None))
                result.append(instance)

        return result

    def _is_indexed(self, wrapper: EntityWrapper, key: str) -> bool:
        try:
            self.get(wrapper.diffsync_class, key)
        except ObjectNotFound:
            return False
        return True
