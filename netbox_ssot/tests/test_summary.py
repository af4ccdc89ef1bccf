"""Test cases for the sync summary."""

import os
from tempfile import NamedTemporaryFile
from unittest import TestCase

from netbox_ssot.summary import EntityStats, EntitySummary, SourceSummary, SyncIssue, SyncSummary


def _create_summary():
    summary = SyncSummary()
    stats = EntityStats()
    stats.created = 2
    stats.deleted = 1
    summary.entities.append(
        EntitySummary(
            content_type="dcim.device",
            api_path="dcim/devices",
            identifiers=["name", "site"],
            stats=stats,
            issues=[SyncIssue("3", "h1__1", "OwnershipConflict", "Not overwriting `serial`", {"name": "h1"})],
        )
    )
    summary.entities.append(
        EntitySummary("dcim.site", "dcim/sites", ["name"], EntityStats(), [], "Not all sources completed this type")
    )
    summary.sources.append(SourceSummary("lab", True))
    summary.sources.append(SourceSummary("broken", False, "Unreachable"))
    summary.failed = True
    return summary


class TestSyncSummary(TestCase):
    """Unittest for the summary."""

    def _get_path(self, suffix):
        with NamedTemporaryFile(suffix=suffix, delete=False) as file:
            pass
        self.addCleanup(os.unlink, file.name)
        return file.name

    def test_text(self):
        lines = list(_create_summary().get_summary())

        self.assertIn("lab: completed", lines)
        self.assertIn("broken: aborted | Unreachable", lines)
        self.assertIn("created: 2", lines)
        self.assertIn("sweep blocked: Not all sources completed this type", lines)
        self.assertIn('3 | OwnershipConflict | "h1__1" | "Not overwriting `serial`"', lines)
        self.assertTrue(lines[-1].startswith("* End of Sync Summary: FAILED"))

    def test_json(self):
        path = self._get_path(".json")
        _create_summary().dump(path)

        summary = SyncSummary()
        summary.load(path)

        self.assertTrue(summary.failed)
        self.assertEqual(summary.issues_count, 1)
        self.assertEqual(summary.sources[1], SourceSummary("broken", False, "Unreachable"))
        device = summary.entities[0]
        self.assertEqual((device.stats.created, device.stats.deleted, device.stats.updated), (2, 1, 0))
        self.assertEqual(device.issues[0].issue_type, "OwnershipConflict")
        self.assertEqual(summary.entities[1].sweep_blocked_reason, "Not all sources completed this type")

    def test_text_file(self):
        path = self._get_path(".txt")
        summary = _create_summary()
        summary.dump(path, output_format="text")

        with open(path, encoding="utf-8") as file:
            self.assertEqual(file.read().splitlines(), list(summary.get_summary()))

    def test_unsupported_format(self):
        with self.assertRaises(ValueError):
            _create_summary().dump(self._get_path(".xml"), output_format="xml")
