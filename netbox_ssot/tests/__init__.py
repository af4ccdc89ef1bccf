"""Unit tests for netbox_ssot."""
