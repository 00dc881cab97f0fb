"""
Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import unittest

try:
    from ._env import ensure_test_env
except ImportError:
    from tests._env import ensure_test_env

ensure_test_env()

from config import config
from models.management.rules import ObjectMeta, Rule, RuleDocument, RuleDocumentSpec, RuleGroup
from services.management.errors import OwnershipConflictError
from services.management.ownership import ensure_managed, is_managed, managed_metadata, mark_managed
from services.management.rule_groups import (
    append_rule,
    ensure_owned_group,
    find_owned_group,
    find_rule_index,
    iter_rules,
    prune_owned_group,
    remove_rule,
)


def _rule(name: str, severity: str) -> Rule:
    return Rule(alert=name, expr="up == 0", labels={"severity": severity})


def _document(groups, labels=None) -> RuleDocument:
    return RuleDocument(
        metadata=ObjectMeta(name="pr1", namespace="ns", labels=labels or {}),
        spec=RuleDocumentSpec(groups=groups),
    )


class OwnershipTests(unittest.TestCase):
    def test_is_managed_requires_exact_marker(self):
        owned = _document([], labels={config.RESOURCE_OWNER_LABEL_KEY: config.RESOURCE_OWNER_LABEL_VALUE})
        other_value = _document([], labels={config.RESOURCE_OWNER_LABEL_KEY: "someone-else"})
        unlabeled = _document([])
        self.assertTrue(is_managed(owned))
        self.assertFalse(is_managed(other_value))
        self.assertFalse(is_managed(unlabeled))

    def test_managed_metadata_carries_marker(self):
        metadata = managed_metadata("ns", "pr1")
        self.assertEqual(metadata.labels, {config.RESOURCE_OWNER_LABEL_KEY: config.RESOURCE_OWNER_LABEL_VALUE})
        self.assertIsNone(metadata.resource_version)

    def test_mark_managed_keeps_existing_labels(self):
        metadata = mark_managed(ObjectMeta(name="pr1", namespace="ns", labels={"team": "sre"}))
        self.assertEqual(metadata.labels["team"], "sre")
        self.assertEqual(metadata.labels[config.RESOURCE_OWNER_LABEL_KEY], config.RESOURCE_OWNER_LABEL_VALUE)

    def test_ensure_managed_raises_for_foreign_document(self):
        with self.assertRaises(OwnershipConflictError):
            ensure_managed(_document([]), identity=None)


class RuleGroupTests(unittest.TestCase):
    def test_find_owned_group_returns_first_match(self):
        first = RuleGroup(name=config.MANAGED_RULE_GROUP_NAME, rules=[_rule("A", "warning")])
        second = RuleGroup(name=config.MANAGED_RULE_GROUP_NAME, rules=[])
        document = _document([RuleGroup(name="foreign"), first, second])
        group, found = find_owned_group(document)
        self.assertTrue(found)
        self.assertIs(group, first)

    def test_ensure_owned_group_synthesizes_without_inserting(self):
        document = _document([RuleGroup(name="foreign")])
        group, created = ensure_owned_group(document)
        self.assertTrue(created)
        self.assertEqual(group.name, config.MANAGED_RULE_GROUP_NAME)
        self.assertEqual([g.name for g in document.groups], ["foreign"])

    def test_find_rule_index_matches_name_and_severity(self):
        rules = [_rule("Foo", "warning"), _rule("Foo", "critical"), _rule("Foo", "critical")]
        self.assertEqual(find_rule_index(rules, "Foo", "critical"), 1)
        self.assertIsNone(find_rule_index(rules, "Foo", "info"))

    def test_mutations_leave_foreign_groups_untouched(self):
        foreign = RuleGroup(name="foreign", rules=[_rule("X", "warning"), _rule("Y", "critical")])
        owned = RuleGroup(name=config.MANAGED_RULE_GROUP_NAME, rules=[_rule("A", "warning")])
        document = _document([foreign, owned])
        before = foreign.model_dump()

        append_rule(owned, _rule("B", "critical"))
        remove_rule(owned, 0)

        self.assertEqual(document.groups[0].model_dump(), before)
        self.assertEqual([r.alert for r in owned.rules], ["B"])

    def test_prune_owned_group_only_when_empty(self):
        owned = RuleGroup(name=config.MANAGED_RULE_GROUP_NAME, rules=[_rule("A", "warning")])
        document = _document([RuleGroup(name="a"), owned, RuleGroup(name="b")])
        self.assertFalse(prune_owned_group(document))

        owned.rules.clear()
        self.assertTrue(prune_owned_group(document))
        self.assertEqual([g.name for g in document.groups], ["a", "b"])

    def test_iter_rules_spans_all_groups_in_order(self):
        document = _document([
            RuleGroup(name="foreign", rules=[_rule("X", "warning")]),
            RuleGroup(name=config.MANAGED_RULE_GROUP_NAME, rules=[_rule("A", "critical")]),
        ])
        self.assertEqual([(g.name, r.alert) for g, r in iter_rules(document)], [
            ("foreign", "X"),
            (config.MANAGED_RULE_GROUP_NAME, "A"),
        ])


if __name__ == '__main__':
    unittest.main()
