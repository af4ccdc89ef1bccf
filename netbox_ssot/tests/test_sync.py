"""Test cases for the sync orchestration."""

from typing import Iterable, Mapping
from unittest import TestCase

from netbox_ssot.base import DEFAULT_VLAN_GROUP_NAME
from netbox_ssot.command_utils import enable_logging
from netbox_ssot.config import SourceOptions
from netbox_ssot.diffsync.adapters import NetBoxAdapter, SourceAdapter
from netbox_ssot.generator import CmdbRequestError, TransientIOError, parse_relations
from netbox_ssot.sync import SyncOrchestrator

from .fake_netbox import FakeNetBoxClient


class StaticSource(SourceAdapter):
    """Source returning fixed records."""

    source_type = "static"

    def __init__(self, records: Mapping[str, Iterable[dict]], name="lab", **options):
        """Initialize the source."""
        super().__init__(SourceOptions(name=name, source_type=self.source_type, **options))
        self.records = records
        self.prefetch_error = None
        self.list_error = None

    def prefetch(self):
        """Fail if configured to."""
        if self.prefetch_error:
            raise self.prefetch_error

    def list_entities(self, content_type):
        """Get records of the content type."""
        if self.list_error and content_type == "virtualization.cluster":
            raise self.list_error
        return [dict(item) for item in self.records.get(content_type, ())]


LAB_RECORDS = {
    "dcim.site": [{"name": "Ljubljana"}, {"name": "Maribor"}],
    "virtualization.clustertype": [{"name": "oVirt"}],
    "virtualization.cluster": [{"name": "prod-1", "type": {"name": "oVirt"}}],
    "dcim.device": [
        {
            "name": "h1",
            "site": {"name": "Ljubljana"},
            "serial": "SN1",
            "role": {"name": "Server"},
            "custom_fields": {"host_cpu_cores": 16},
        }
    ],
    "virtualization.virtualmachine": [
        {"name": "vm1", "cluster": {"name": "prod-1"}, "vcpus": 2, "memory": 2048},
    ],
    "ipam.vlan": [{"vid": 100, "name": "servers"}],
    "dcim.interface": [
        {
            "device": {"name": "h1", "site": {"name": "Ljubljana"}},
            "name": "eth0",
            "mac_address": "aa:bb:cc:00:11:22",
            "mode": "access",
            "untagged_vlan": {"vid": 100},
        }
    ],
    "ipam.ipaddress": [
        {
            "address": "10.0.0.10/24",
            "assigned_object_type": "dcim.interface",
            "assigned_object_id": {"device": {"name": "h1", "site": {"name": "Ljubljana"}}, "name": "eth0"},
        }
    ],
}


class TestSync(TestCase):
    """Unittest for full sync runs against the in-memory NetBox."""

    def setUp(self):
        enable_logging()
        self.client = FakeNetBoxClient()

    def _run(self, *sources, adopt_unowned=False):
        netbox = NetBoxAdapter(self.client, adopt_unowned=adopt_unowned)
        summary = SyncOrchestrator(netbox, sources, max_workers=2).run()
        return netbox, summary

    def test_sync(self):
        netbox, summary = self._run(StaticSource(LAB_RECORDS))

        self.assertFalse(summary.failed)
        self.assertEqual(summary.issues_count, 0)
        self.assertTrue(summary.sources[0].completed)

        device = self.client.find_record("dcim/devices", name="h1")
        self.assertEqual(device["serial"], "SN1")
        self.assertEqual(device["tags"], [netbox.ssot_tag_id])
        interface = self.client.find_record("dcim/interfaces", name="eth0")
        self.assertEqual(interface["device"], device["id"])
        self.assertEqual(interface["mac_address"], "AA:BB:CC:00:11:22")
        address = self.client.find_record("ipam/ip-addresses", address="10.0.0.10/24")
        self.assertEqual(address["assigned_object_id"], interface["id"])

    def test_idempotence(self):
        self._run(StaticSource(LAB_RECORDS))
        self.client.reset_calls()

        _, summary = self._run(StaticSource(LAB_RECORDS))

        self.assertEqual(self.client.writes, [])
        self.assertFalse(summary.failed)

    def test_default_vlan_group(self):
        netbox, _ = self._run(StaticSource({"ipam.vlan": [{"vid": 100, "name": "servers"}]}))

        group = self.client.find_record("ipam/vlan-groups", name=DEFAULT_VLAN_GROUP_NAME)
        vlan = self.client.find_record("ipam/vlans", vid=100)
        self.assertEqual(vlan["group"], group["id"])
        self.assertEqual(netbox.get_wrapper("ipam.vlan").find({"group": group["id"], "vid": 100}).id, vlan["id"])

        self.client.reset_calls()
        self._run(StaticSource({"ipam.vlan": [{"vid": 100, "name": "servers"}]}))

        self.assertEqual([call for call in self.client.writes if call[0] == "PATCH"], [])
        self.assertEqual(self.client.writes, [])

    def test_orphans_deleted(self):
        self._run(StaticSource(LAB_RECORDS))
        maribor = self.client.find_record("dcim/sites", name="Maribor")
        records = {**LAB_RECORDS, "dcim.site": [{"name": "Ljubljana"}]}

        netbox, summary = self._run(StaticSource(records))

        self.assertIn(("DELETE", "dcim/sites", maribor["id"]), self.client.calls)
        self.assertIsNone(self.client.find_record("dcim/sites", name="Maribor"))
        self.assertIsNone(netbox.get_wrapper("dcim.site").get_by_id(maribor["id"]))
        self.assertEqual(netbox.get_wrapper("dcim.site").stats.deleted, 1)
        self.assertFalse(summary.failed)

    def test_orphans_deleted_in_reverse_order(self):
        self._run(StaticSource(LAB_RECORDS))
        self.client.reset_calls()

        self._run(StaticSource({}))

        deleted = [call[1] for call in self.client.calls if call[0] == "DELETE"]
        self.assertLess(deleted.index("ipam/ip-addresses"), deleted.index("dcim/interfaces"))
        self.assertLess(deleted.index("dcim/interfaces"), deleted.index("dcim/devices"))
        self.assertLess(deleted.index("dcim/devices"), deleted.index("dcim/sites"))
        self.assertNotIn("ipam/vlan-groups", deleted)
        self.assertNotIn("dcim/device-roles", deleted)

    def test_not_owned_entities_are_never_deleted(self):
        site_id = self.client.add_record("dcim/sites", name="Koper", slug="koper")

        self._run(StaticSource({}))

        self.assertNotIn(("DELETE", "dcim/sites", site_id), self.client.calls)

    def test_dangling_reference_skips_entity(self):
        records = {
            **LAB_RECORDS,
            "virtualization.virtualmachine": [
                {"name": "vm0", "cluster": 999},
                {"name": "vm1", "cluster": {"name": "prod-1"}},
            ],
        }

        netbox, summary = self._run(StaticSource(records))

        self.assertFalse(summary.failed)
        self.assertIsNotNone(self.client.find_record("virtualization/virtual-machines", name="vm1"))
        self.assertIsNone(self.client.find_record("virtualization/virtual-machines", name="vm0"))
        wrapper = netbox.get_wrapper("virtualization.virtualmachine")
        self.assertEqual([issue.issue_type for issue in wrapper.get_summary().issues], ["DanglingReference"])

    def test_dangling_key_does_not_block_sweep(self):
        self._run(StaticSource(LAB_RECORDS))
        records = {**LAB_RECORDS, "virtualization.virtualmachine": [{"name": "vmX", "cluster": {"name": "typo"}}]}
        vm = self.client.find_record("virtualization/virtual-machines", name="vm1")

        netbox, summary = self._run(StaticSource(records))

        self.assertFalse(summary.failed)
        self.assertIn(("DELETE", "virtualization/virtual-machines", vm["id"]), self.client.calls)
        self.assertIsNone(self.client.find_record("virtualization/virtual-machines", name="vm1"))
        wrapper = netbox.get_wrapper("virtualization.virtualmachine")
        self.assertEqual(wrapper.sweep_blocked_reason, "")
        self.assertEqual([issue.issue_type for issue in wrapper.get_summary().issues], ["DanglingReference"])

    def test_transient_create_failure_skips_entity(self):
        self.client.create_errors[("dcim/sites", "Maribor")] = TransientIOError(
            "POST dcim/sites failed with status 500"
        )

        netbox, summary = self._run(StaticSource(LAB_RECORDS))

        self.assertFalse(summary.failed)
        self.assertTrue(summary.sources[0].completed)
        self.assertIsNone(self.client.find_record("dcim/sites", name="Maribor"))
        self.assertIsNotNone(self.client.find_record("dcim/sites", name="Ljubljana"))
        self.assertIsNotNone(self.client.find_record("dcim/devices", name="h1"))
        self.assertIsNotNone(self.client.find_record("virtualization/virtual-machines", name="vm1"))
        self.assertIsNotNone(self.client.find_record("ipam/ip-addresses", address="10.0.0.10/24"))
        issues = netbox.get_wrapper("dcim.site").get_summary().issues
        self.assertEqual([issue.issue_type for issue in issues], ["TransientIOError"])

    def test_create_failure_is_an_issue(self):
        self.client.create_errors["dcim/sites"] = CmdbRequestError("POST", "dcim/sites", 400, "invalid")

        netbox, summary = self._run(StaticSource({"dcim.site": [{"name": "Ljubljana"}]}))

        self.assertFalse(summary.failed)
        issues = netbox.get_wrapper("dcim.site").get_summary().issues
        self.assertEqual([issue.issue_type for issue in issues], ["RequestFailed"])

    def test_source_tag(self):
        netbox, _ = self._run(StaticSource({"dcim.site": [{"name": "Ljubljana"}]}, tag="lab", tag_color="4caf50"))

        tag = self.client.find_record("extras/tags", name="lab")
        self.assertEqual(tag["color"], "4caf50")
        site = self.client.find_record("dcim/sites", name="Ljubljana")
        self.assertEqual(site["tags"], [tag["id"], netbox.ssot_tag_id])

    def test_relations(self):
        relations = {"cluster_site": parse_relations(["^prod-.* = Ljubljana"])}

        self._run(StaticSource(LAB_RECORDS, relations=relations))

        site = self.client.find_record("dcim/sites", name="Ljubljana")
        cluster = self.client.find_record("virtualization/clusters", name="prod-1")
        self.assertEqual(cluster["site"], site["id"])

    def test_unresolved_relation_aborts_source(self):
        self._run(StaticSource(LAB_RECORDS))
        relations = {"cluster_site": parse_relations([".* = Koper"])}
        self.client.reset_calls()

        netbox, summary = self._run(
            StaticSource(LAB_RECORDS, name="broken", relations=relations),
            StaticSource({"dcim.site": [{"name": "Celje"}]}, name="other"),
        )

        self.assertTrue(summary.failed)
        self.assertEqual([(item.name, item.completed) for item in summary.sources], [("broken", False), ("other", True)])
        self.assertIsNotNone(self.client.find_record("dcim/sites", name="Celje"))
        # Types after the failed one are not swept
        self.assertNotIn("DELETE", [call[0] for call in self.client.calls])
        self.assertTrue(netbox.get_wrapper("virtualization.virtualmachine").sweep_blocked_reason)

    def test_transient_error_aborts_source(self):
        source = StaticSource(LAB_RECORDS)
        source.list_error = TransientIOError("NetBox unreachable")

        _, summary = self._run(source)

        self.assertTrue(summary.failed)
        self.assertFalse(summary.sources[0].completed)
        self.assertIn("NetBox unreachable", summary.sources[0].error)

    def test_prefetch_failure_aborts_source(self):
        source = StaticSource(LAB_RECORDS, name="broken")
        source.prefetch_error = OSError("Connection refused")

        _, summary = self._run(source, StaticSource({"dcim.site": [{"name": "Celje"}]}, name="other"))

        self.assertTrue(summary.failed)
        self.assertEqual([(item.name, item.completed) for item in summary.sources], [("broken", False), ("other", True)])
        self.assertIsNone(self.client.find_record("dcim/sites", name="Ljubljana"))

    def test_partial_delete_failure(self):
        self._run(StaticSource({"dcim.site": [{"name": "Ljubljana"}, {"name": "Maribor"}]}))
        ljubljana = self.client.find_record("dcim/sites", name="Ljubljana")
        maribor = self.client.find_record("dcim/sites", name="Maribor")
        self.client.delete_errors[("dcim/sites", ljubljana["id"])] = CmdbRequestError("DELETE", "dcim/sites", 409, "")

        netbox, summary = self._run(StaticSource({}))

        self.assertFalse(summary.failed)
        self.assertIsNone(self.client.find_record("dcim/sites", name="Maribor"))
        self.assertIsNotNone(self.client.find_record("dcim/sites", name="Ljubljana"))
        wrapper = netbox.get_wrapper("dcim.site")
        self.assertEqual((wrapper.stats.deleted, wrapper.stats.delete_failed), (1, 1))
        self.assertIn(("DELETE", "dcim/sites", maribor["id"]), self.client.calls)
        self.assertEqual([issue.issue_type for issue in wrapper.get_summary().issues], ["DeleteFailed"])

    def test_all_deletions_failed(self):
        self._run(StaticSource({"dcim.site": [{"name": "Ljubljana"}]}))
        ljubljana = self.client.find_record("dcim/sites", name="Ljubljana")
        self.client.delete_errors[("dcim/sites", ljubljana["id"])] = CmdbRequestError("DELETE", "dcim/sites", 409, "")

        _, summary = self._run(StaticSource({}))

        self.assertTrue(summary.failed)

    def test_adopt_unowned(self):
        site_id = self.client.add_record("dcim/sites", name="Koper", slug="koper")

        self._run(StaticSource({"dcim.site": [{"name": "Koper"}]}), adopt_unowned=True)
        self._run(StaticSource({}))

        self.assertIn(("DELETE", "dcim/sites", site_id), self.client.calls)
