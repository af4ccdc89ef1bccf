"""NetBox entity types definitions, one module per NetBox app."""
