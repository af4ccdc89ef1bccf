"""NetBox Extras entity types."""

from packaging.version import Version

from netbox_ssot.generator import InventoryAdapter, fields


def setup(adapter: InventoryAdapter) -> None:
    """Configure NetBox extras entity types."""
    version = getattr(adapter, "netbox_version", Version("4.0"))

    adapter.configure_model(
        "extras.tag",
        api_path="extras/tags",
        identifiers=["name"],
        fields={
            "slug": fields.slug(),
            "color": None,
            "description": None,
        },
    )

    custom_field_fields = {
        "label": None,
        "type": fields.choice(),
        "object_types": fields.sorted_list("object_types" if version >= Version("4.0") else "content_types"),
        "description": None,
        "filter_logic": fields.choice(),
        "weight": None,
        "search_weight": None,
    }
    if version >= Version("4.0"):
        custom_field_fields["ui_visible"] = fields.choice()
        custom_field_fields["ui_editable"] = fields.choice()
    else:
        custom_field_fields["ui_visibility"] = fields.choice()

    adapter.configure_model(
        "extras.customfield",
        api_path="extras/custom-fields",
        identifiers=["name"],
        fields=custom_field_fields,
    )
