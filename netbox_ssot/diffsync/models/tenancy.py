"""NetBox Tenancy entity types."""

from packaging.version import Version

from netbox_ssot.generator import InventoryAdapter, fields

from .base import generic_relation


def setup(adapter: InventoryAdapter) -> None:
    """Configure NetBox tenancy entity types."""
    version = getattr(adapter, "netbox_version", Version("4.0"))

    adapter.configure_model(
        "tenancy.tenant",
        api_path="tenancy/tenants",
        identifiers=["name"],
        fields={
            "slug": fields.slug(),
            "description": None,
            "comments": None,
            "tags": fields.tags(),
            "custom_fields": fields.custom_fields(),
        },
    )
    for content_type, api_path in (
        ("tenancy.contactgroup", "tenancy/contact-groups"),
        ("tenancy.contactrole", "tenancy/contact-roles"),
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
        "tenancy.contact",
        api_path="tenancy/contacts",
        identifiers=["name"],
        fields={
            "group": fields.relation("tenancy.contactgroup"),
            "title": None,
            "phone": None,
            "email": None,
            "address": None,
            "description": None,
            "comments": None,
            "tags": fields.tags(),
        },
    )
    adapter.configure_model(
        "tenancy.contactassignment",
        api_path="tenancy/contact-assignments",
        identifiers=["object_type", "object_id", "contact", "role"],
        pre_upsert=generic_relation(adapter, "tenancy.contactassignment", "object_type", "object_id"),
        fields={
            "object_type": "object_type" if version >= Version("4.0") else "content_type",
            "contact": fields.relation("tenancy.contact"),
            "role": fields.relation("tenancy.contactrole"),
            "priority": fields.choice(),
            "tags": fields.tags(),
        },
    )
