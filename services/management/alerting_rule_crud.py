"""
Alerting rule operations over shared PrometheusRule documents. Reads span every group of a document; writes are confined to the controller-owned group and only ever happen on documents that carry the owner label.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from middleware.resilience import with_timeout
from models.management.rules import AlertingRuleId, Rule, RuleDocument, RuleDocumentSpec
from services.management.documents import ManagedDocumentManager
from services.management.errors import (
    GroupNotFoundError,
    InvalidIdentityError,
    RuleNotFoundError,
    UpstreamError,
    require_complete,
)
from services.management.ownership import managed_metadata
from services.management.rule_groups import (
    append_rule,
    ensure_owned_group,
    find_owned_group,
    find_rule_index,
    iter_rules,
    prune_owned_group,
    remove_rule,
    replace_rule,
)
from services.stores.base import ResourceStoreError

logger = logging.getLogger(__name__)


def _rule_not_found(arid: AlertingRuleId, where: str) -> RuleNotFoundError:
    return RuleNotFoundError(
        f"alerting rule {arid.severity}/{arid.rule_name} not found in {where} {arid.namespace}/{arid.document_name}",
        arid,
    )


def _require_rule_matches(arid: AlertingRuleId, rule: Rule) -> None:
    """The rule body must carry the identity it is addressed by; renames are a delete plus a create."""
    mismatched = []
    if rule.alert != arid.rule_name:
        mismatched.append(f"ruleName {arid.rule_name!r} != alert {rule.alert!r}")
    if rule.severity != arid.severity:
        mismatched.append(f"severity {arid.severity!r} != severity label {rule.severity!r}")
    if mismatched:
        raise InvalidIdentityError(f"rule does not match its identity: {'; '.join(mismatched)}", arid)


class AlertingRuleManager(ManagedDocumentManager[RuleDocument]):

    @with_timeout()
    async def get_alerting_rule(self, arid: AlertingRuleId) -> Rule:
        require_complete(arid)
        document = await self._require(arid.namespace, arid.document_name, arid)
        for _group, rule in iter_rules(document):
            if rule.matches(arid.rule_name, arid.severity):
                return rule
        raise _rule_not_found(arid, "PrometheusRule")

    @with_timeout()
    async def list_alerting_rules(self, namespace: Optional[str] = None) -> List[Tuple[AlertingRuleId, Rule]]:
        try:
            documents = await self.store.list(namespace)
        except ResourceStoreError as exc:
            logger.error("error listing PrometheusRules in %s: %s", namespace or "all namespaces", exc)
            raise UpstreamError("unexpected error listing PrometheusRules") from exc

        out: List[Tuple[AlertingRuleId, Rule]] = []
        for document in documents:
            for _group, rule in iter_rules(document):
                if not rule.alert:
                    continue
                out.append((AlertingRuleId.for_rule(document.metadata.namespace, document.metadata.name, rule), rule))
        return out

    @with_timeout()
    async def create_alerting_rule(self, arid: AlertingRuleId, rule: Rule) -> Rule:
        require_complete(arid)
        _require_rule_matches(arid, rule)

        def mutation(document: Optional[RuleDocument]):
            if document is None:
                document = RuleDocument(
                    metadata=managed_metadata(arid.namespace, arid.document_name),
                    spec=RuleDocumentSpec(groups=[]),
                )
            group, created = ensure_owned_group(document)
            if created:
                document.spec.groups.append(group)
            append_rule(group, rule.model_copy(deep=True))
            return document, rule

        created = await self._mutate(arid.namespace, arid.document_name, arid, mutation, allow_create=True)
        logger.info("Created alerting rule %s", arid)
        return created

    @with_timeout()
    async def update_alerting_rule(self, arid: AlertingRuleId, rule: Rule) -> Rule:
        require_complete(arid)
        _require_rule_matches(arid, rule)

        def mutation(document: Optional[RuleDocument]):
            group, index = self._locate_owned(document, arid)
            replace_rule(group, index, rule.model_copy(deep=True))
            return document, rule

        updated = await self._mutate(arid.namespace, arid.document_name, arid, mutation, allow_create=False)
        logger.info("Updated alerting rule %s", arid)
        return updated

    @with_timeout()
    async def delete_alerting_rule(self, arid: AlertingRuleId) -> None:
        require_complete(arid)

        def mutation(document: Optional[RuleDocument]):
            group, index = self._locate_owned(document, arid)
            remove_rule(group, index)
            prune_owned_group(document)
            if not document.groups:
                return None, None
            return document, None

        await self._mutate(arid.namespace, arid.document_name, arid, mutation, allow_create=False)
        logger.info("Deleted alerting rule %s", arid)

    @staticmethod
    def _locate_owned(document: RuleDocument, arid: AlertingRuleId):
        group, found = find_owned_group(document)
        if not found:
            raise GroupNotFoundError(
                f"managed rule group not found in PrometheusRule {arid.namespace}/{arid.document_name}", arid
            )
        index = find_rule_index(group.rules, arid.rule_name, arid.severity)
        if index is None:
            raise _rule_not_found(arid, "managed group of PrometheusRule")
        return group, index
