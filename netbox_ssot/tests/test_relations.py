"""Test cases for relation rules."""

from unittest import TestCase

from netbox_ssot.command_utils import enable_logging
from netbox_ssot.diffsync.adapters import NetBoxAdapter
from netbox_ssot.generator import ConfigurationError, RelationMatcher, UnresolvedRelation, match_relation, parse_relations
from netbox_ssot.generator.relations import RELATION_KINDS, parse_relation

from .fake_netbox import FakeNetBoxClient


class TestParseRelations(TestCase):
    """Unittest for relation rules parsing."""

    def test_string_rule(self):
        pattern, label = parse_relation("^prod-.* = Ljubljana")
        self.assertEqual(pattern.pattern, "^prod-.*")
        self.assertEqual(label, "Ljubljana")

    def test_list_rule(self):
        pattern, label = parse_relation(["^lab-[0-9]+$", "Lab"])
        self.assertEqual(pattern.pattern, "^lab-[0-9]+$")
        self.assertEqual(label, "Lab")

    def test_order_is_kept(self):
        rules = parse_relations(["^web-.* = A", ".* = B"])
        self.assertEqual([label for _, label in rules], ["A", "B"])

    def test_invalid_regex(self):
        with self.assertRaises(ConfigurationError):
            parse_relation("^web-( = A")

    def test_missing_label(self):
        with self.assertRaises(ConfigurationError):
            parse_relation("^web-.*")
        with self.assertRaises(ConfigurationError):
            parse_relation("^web-.* = ")
        with self.assertRaises(ConfigurationError):
            parse_relation(["^web-.*"])

    def test_empty(self):
        self.assertEqual(parse_relations(None), [])

    def test_kinds(self):
        self.assertEqual(
            RELATION_KINDS,
            ("cluster_site", "cluster_tenant", "host_site", "host_tenant", "vm_tenant"),
        )


class TestMatchRelation(TestCase):
    """Unittest for rule precedence."""

    def setUp(self):
        self.rules = parse_relations(["^web-.* = A", ".* = B"])

    def test_first_match_wins(self):
        self.assertEqual(match_relation("web-01", self.rules), "A")
        self.assertEqual(match_relation("db-01", self.rules), "B")

    def test_search_semantics(self):
        rules = parse_relations(["prod = P"])
        self.assertEqual(match_relation("eu-prod-1", rules), "P")

    def test_no_match(self):
        rules = parse_relations(["^web-.* = A"])
        self.assertEqual(match_relation("db-01", rules), "")
        self.assertEqual(match_relation("db-01", []), "")


class TestRelationMatcher(TestCase):
    """Unittest for relation resolution against the index."""

    def setUp(self):
        enable_logging()
        self.client = FakeNetBoxClient()
        self.site_id = self.client.add_record("dcim/sites", name="Ljubljana", slug="ljubljana")
        self.adapter = NetBoxAdapter(self.client)
        self.adapter.load()

    def test_resolve(self):
        matcher = RelationMatcher(self.adapter)
        rules = parse_relations(["^prod-.* = Ljubljana"])
        self.assertEqual(matcher.resolve("prod-cluster", rules, "dcim.site"), "Ljubljana")
        self.assertEqual(matcher.resolve("dev-cluster", rules, "dcim.site"), "")

    def test_unresolved(self):
        matcher = RelationMatcher(self.adapter)
        rules = parse_relations([".* = Maribor"])
        with self.assertRaises(UnresolvedRelation):
            matcher.resolve("prod-cluster", rules, "dcim.site")

    def test_apply(self):
        matcher = RelationMatcher(self.adapter, {"cluster_site": parse_relations(["^prod-.* = Ljubljana"])})
        record = {"name": "prod-1", "type": {"name": "VMware"}}
        result = matcher.apply("virtualization.cluster", record)
        self.assertEqual(result["site"], {"name": "Ljubljana"})
        self.assertNotIn("site", record)

    def test_apply_keeps_provided_value(self):
        matcher = RelationMatcher(self.adapter, {"cluster_site": parse_relations([".* = Maribor"])})
        record = {"name": "prod-1", "site": {"name": "Ljubljana"}}
        self.assertEqual(matcher.apply("virtualization.cluster", record), record)

    def test_apply_other_types(self):
        matcher = RelationMatcher(self.adapter, {"cluster_site": parse_relations([".* = Maribor"])})
        record = {"name": "prod-1"}
        self.assertEqual(matcher.apply("dcim.site", record), record)
