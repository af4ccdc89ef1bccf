"""NetBox entity types and adapters built on the generic inventory."""
