"""NetBox IPAM entity types."""

from netbox_ssot.base import RecordData
from netbox_ssot.generator import InventoryAdapter, PreIndexResult, fields, is_empty

from .base import generic_relation


def setup(adapter: InventoryAdapter) -> None:
    """Configure NetBox IPAM entity types."""

    def pre_upsert_vlan(data: RecordData) -> None:
        # VLANs without a group belong to the default group
        if is_empty(data.get("group", None)):
            data["group"] = getattr(adapter, "default_vlan_group_id", None)

    def pre_index_vlan(data: RecordData) -> PreIndexResult:
        # Ungrouped VLANs are moved to the default group, once it exists
        if data.get("group", None) is None:
            return PreIndexResult.DEFER_RECORD
        return PreIndexResult.USE_RECORD

    adapter.configure_model(
        "ipam.vlangroup",
        api_path="ipam/vlan-groups",
        identifiers=["name"],
        fields={
            "slug": fields.slug(),
            "min_vid": None,
            "max_vid": None,
            "description": None,
            "tags": fields.tags(),
        },
    )
    adapter.configure_model(
        "ipam.vlan",
        api_path="ipam/vlans",
        identifiers=["group", "vid"],
        pre_upsert=pre_upsert_vlan,
        pre_index=pre_index_vlan,
        fields={
            "group": fields.relation("ipam.vlangroup"),
            "vid": fields.integer(),
            "name": None,
            "status": fields.choice(default="active"),
            "tenant": fields.relation("tenancy.tenant"),
            "description": None,
            "comments": None,
            "tags": fields.tags(),
            "custom_fields": fields.custom_fields(),
        },
    )
    adapter.configure_model(
        "ipam.prefix",
        api_path="ipam/prefixes",
        identifiers=["prefix"],
        fields={
            "prefix": fields.ip_network(),
            "status": fields.choice(default="active"),
            "site": fields.relation("dcim.site"),
            "vlan": fields.relation("ipam.vlan"),
            "tenant": fields.relation("tenancy.tenant"),
            "description": None,
            "comments": None,
            "tags": fields.tags(),
            "custom_fields": fields.custom_fields(),
        },
    )
    adapter.configure_model(
        "ipam.ipaddress",
        api_path="ipam/ip-addresses",
        identifiers=["address"],
        pre_upsert=generic_relation(adapter, "ipam.ipaddress", "assigned_object_type", "assigned_object_id"),
        fields={
            "address": fields.ip_address(),
            "status": fields.choice(default="active"),
            "role": fields.choice(),
            "dns_name": None,
            "tenant": fields.relation("tenancy.tenant"),
            "assigned_object_type": None,
            "assigned_object_id": None,
            "description": None,
            "comments": None,
            "tags": fields.tags(),
            "custom_fields": fields.custom_fields(),
        },
    )
