"""NetBox DCIM entity types."""

from packaging.version import Version

from netbox_ssot.generator import InventoryAdapter, fields


def setup(adapter: InventoryAdapter) -> None:
    """Configure NetBox DCIM entity types."""
    version = getattr(adapter, "netbox_version", Version("4.0"))

    adapter.configure_model(
        "dcim.site",
        api_path="dcim/sites",
        identifiers=["name"],
        fields={
            "slug": fields.slug(),
            "status": fields.choice(default="active"),
            "tenant": fields.relation("tenancy.tenant"),
            "description": None,
            "comments": None,
            "tags": fields.tags(),
            "custom_fields": fields.custom_fields(),
        },
    )
    adapter.configure_model(
        "dcim.manufacturer",
        api_path="dcim/manufacturers",
        identifiers=["name"],
        fields={
            "slug": fields.slug(),
            "description": None,
            "tags": fields.tags(),
        },
    )
    adapter.configure_model(
        "dcim.platform",
        api_path="dcim/platforms",
        identifiers=["name"],
        fields={
            "slug": fields.slug(),
            "manufacturer": fields.relation("dcim.manufacturer"),
            "description": None,
            "tags": fields.tags(),
        },
    )
    adapter.configure_model(
        "dcim.devicerole",
        api_path="dcim/device-roles",
        identifiers=["name"],
        fields={
            "slug": fields.slug(),
            "color": None,
            "vm_role": None,
            "description": None,
            "tags": fields.tags(),
        },
    )
    adapter.configure_model(
        "dcim.devicetype",
        api_path="dcim/device-types",
        identifiers=["manufacturer", "model"],
        fields={
            "manufacturer": fields.relation("dcim.manufacturer"),
            "slug": fields.slug("model"),
            "part_number": None,
            "u_height": None,
            "description": None,
            "tags": fields.tags(),
        },
    )
    adapter.configure_model(
        "dcim.device",
        api_path="dcim/devices",
        identifiers=["name", "site"],
        fields={
            "site": fields.relation("dcim.site"),
            # NetBox 3.6 renamed `device_role` to `role`
            "role": fields.relation("dcim.devicerole", "role" if version >= Version("3.6") else "device_role"),
            "device_type": fields.relation("dcim.devicetype"),
            "platform": fields.relation("dcim.platform"),
            "tenant": fields.relation("tenancy.tenant"),
            "cluster": fields.relation("virtualization.cluster"),
            "status": fields.choice(default="active"),
            "serial": None,
            "asset_tag": None,
            "airflow": fields.choice(),
            "description": None,
            "comments": None,
            "tags": fields.tags(),
            "custom_fields": fields.custom_fields(),
        },
    )
    adapter.configure_model(
        "dcim.interface",
        api_path="dcim/interfaces",
        identifiers=["device", "name"],
        fields={
            "device": fields.relation("dcim.device"),
            "type": fields.choice(default="other"),
            "enabled": None,
            "mtu": None,
            "speed": None,
            "duplex": fields.choice(),
            "mac_address": fields.mac_address(),
            "mgmt_only": None,
            "parent": fields.relation("dcim.interface"),
            "lag": fields.relation("dcim.interface"),
            "mode": fields.choice(),
            "untagged_vlan": fields.relation("ipam.vlan"),
            "tagged_vlans": fields.many_relation("ipam.vlan"),
            "description": None,
            "tags": fields.tags(),
            "custom_fields": fields.custom_fields(),
        },
    )
