"""NetBox Virtualization entity types."""

from netbox_ssot.generator import InventoryAdapter, fields


def setup(adapter: InventoryAdapter) -> None:
    """Configure NetBox virtualization entity types."""
    for content_type, api_path in (
        ("virtualization.clustertype", "virtualization/cluster-types"),
        ("virtualization.clustergroup", "virtualization/cluster-groups"),
    ):
        adapter.configure_model(
            content_type,
            api_path=api_path,
            identifiers=["name"],
            fields={
                "slug": fields.slug(),
                "description": None,
                "tags": fields.tags(),
            },
        )
    adapter.configure_model(
        "virtualization.cluster",
        api_path="virtualization/clusters",
        identifiers=["name"],
        fields={
            "type": fields.relation("virtualization.clustertype"),
            "group": fields.relation("virtualization.clustergroup"),
            "site": fields.relation("dcim.site"),
            "tenant": fields.relation("tenancy.tenant"),
            "status": fields.choice(default="active"),
            "description": None,
            "comments": None,
            "tags": fields.tags(),
            "custom_fields": fields.custom_fields(),
        },
    )
    adapter.configure_model(
        "virtualization.virtualmachine",
        api_path="virtualization/virtual-machines",
        identifiers=["name", "cluster"],
        fields={
            "cluster": fields.relation("virtualization.cluster"),
            "site": fields.relation("dcim.site"),
            "device": fields.relation("dcim.device"),
            "role": fields.relation("dcim.devicerole"),
            "tenant": fields.relation("tenancy.tenant"),
            "platform": fields.relation("dcim.platform"),
            "status": fields.choice(default="active"),
            "vcpus": None,
            "memory": None,
            "disk": None,
            "description": None,
            "comments": None,
            "tags": fields.tags(),
            "custom_fields": fields.custom_fields(),
        },
    )
    adapter.configure_model(
        "virtualization.vminterface",
        api_path="virtualization/interfaces",
        identifiers=["virtual_machine", "name"],
        fields={
            "virtual_machine": fields.relation("virtualization.virtualmachine"),
            "enabled": None,
            "mtu": None,
            "mac_address": fields.mac_address(),
            "parent": fields.relation("virtualization.vminterface"),
            "mode": fields.choice(),
            "untagged_vlan": fields.relation("ipam.vlan"),
            "tagged_vlans": fields.many_relation("ipam.vlan"),
            "description": None,
            "tags": fields.tags(),
            "custom_fields": fields.custom_fields(),
        },
    )
