"""
Helpers locating and mutating the single controller-owned rule group inside a PrometheusRule document. Nothing here touches a group other than the owned one.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Iterator, List, Optional, Tuple

from config import config
from models.management.rules import Rule, RuleDocument, RuleGroup


def find_owned_group(document: RuleDocument) -> Tuple[Optional[RuleGroup], bool]:
    for group in document.groups:
        if group.name == config.MANAGED_RULE_GROUP_NAME:
            return group, True
    return None, False


def ensure_owned_group(document: Optional[RuleDocument]) -> Tuple[RuleGroup, bool]:
    """Return the owned group, or a new empty one the caller must append before persisting."""
    if document is not None:
        group, found = find_owned_group(document)
        if found:
            return group, False
    return RuleGroup(name=config.MANAGED_RULE_GROUP_NAME, rules=[]), True


def find_rule_index(rules: List[Rule], rule_name: str, severity: str) -> Optional[int]:
    for index, rule in enumerate(rules):
        if rule.matches(rule_name, severity):
            return index
    return None


def iter_rules(document: RuleDocument) -> Iterator[Tuple[RuleGroup, Rule]]:
    for group in document.groups:
        for rule in group.rules:
            yield group, rule


def append_rule(group: RuleGroup, rule: Rule) -> None:
    group.rules.append(rule)


def replace_rule(group: RuleGroup, index: int, rule: Rule) -> None:
    group.rules[index] = rule


def remove_rule(group: RuleGroup, index: int) -> Rule:
    return group.rules.pop(index)


def prune_owned_group(document: RuleDocument) -> bool:
    """Drop the owned group when it has no rules left. Returns True if it was removed."""
    for index, group in enumerate(document.groups):
        if group.name == config.MANAGED_RULE_GROUP_NAME:
            if group.rules:
                return False
            del document.spec.groups[index]
            return True
    return False
