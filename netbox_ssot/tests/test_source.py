"""Test cases for canonical record sources."""

import json
import os
from tempfile import NamedTemporaryFile
from unittest import TestCase, mock

from netbox_ssot.command_utils import enable_logging
from netbox_ssot.config import SourceOptions
from netbox_ssot.diffsync.adapters import FileSourceAdapter, get_source_adapter
from netbox_ssot.generator import ConfigurationError

_RECORDS = [
    {"model": "dcim.site", "fields": {"name": "Ljubljana", "description": "HQ"}},
    {"model": "DCIM.Site", "fields": {"name": "Maribor"}},
    {"model": "virtualization.virtualmachine", "fields": {"name": "vm1", "cluster": {"name": "prod-1"}, "vcpus": 2.5}},
]


class TestFileSource(TestCase):
    """Unittest for the file source."""

    def setUp(self):
        enable_logging()
        with NamedTemporaryFile("w", suffix=".json", delete=False) as file:
            json.dump(_RECORDS, file)
        self.addCleanup(os.unlink, file.name)
        self.path = file.name

    def test_list_entities(self):
        source = get_source_adapter(SourceOptions(name="lab", source_type="file", url=self.path))
        self.assertIsInstance(source, FileSourceAdapter)

        source.prefetch()

        self.assertEqual([item["name"] for item in source.list_entities("dcim.site")], ["Ljubljana", "Maribor"])
        self.assertEqual(
            source.list_entities("virtualization.virtualmachine"),
            [{"name": "vm1", "cluster": {"name": "prod-1"}, "vcpus": 2.5}],
        )
        self.assertEqual(source.list_entities("ipam.vlan"), [])

    def test_records_are_copies(self):
        source = FileSourceAdapter(SourceOptions(name="lab", source_type="file", url=self.path))

        source.list_entities("dcim.site")[0]["name"] = "Changed"

        self.assertEqual(source.list_entities("dcim.site")[0]["name"], "Ljubljana")

    def test_file_url(self):
        source = FileSourceAdapter(SourceOptions(name="lab", source_type="file", url=f"file://{self.path}"))
        self.assertEqual(len(source.list_entities("dcim.site")), 2)

    def test_missing_file(self):
        source = FileSourceAdapter(SourceOptions(name="lab", source_type="file", url="/nonexistent/lab.json"))
        with self.assertRaises(FileNotFoundError):
            source.prefetch()

    @mock.patch("netbox_ssot.diffsync.adapters.source.requests.get")
    def test_http_url(self, mock_get):
        with open(self.path, "rb") as file:
            response = mock_get.return_value.__enter__.return_value
            response.headers = {}
            response.raw = file

            source = FileSourceAdapter(SourceOptions(name="lab", source_type="file", url="https://example.com/lab.json"))
            source.prefetch()

        mock_get.assert_called_once_with("https://example.com/lab.json", stream=True, timeout=60)
        self.assertEqual(len(source.list_entities("dcim.site")), 2)

    def test_unsupported_type(self):
        with self.assertRaises(ConfigurationError):
            get_source_adapter(SourceOptions(name="lab", source_type="vmware"))
