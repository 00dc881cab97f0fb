"""
Alert management controller: the entry point tying the alerting rule and relabel config managers to their stores, and to the Prometheus client used to verify that written rules have been loaded.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
from typing import List, Optional, Tuple

from models.management.relabel import RelabelConfig, RelabelConfigId
from models.management.rules import AlertingRuleId, Rule
from services.management.alerting_rule_crud import AlertingRuleManager
from services.management.errors import require_complete
from services.management.relabel_config_crud import RelabelConfigManager
from services.monitoring.polling import poll
from services.monitoring.prometheus_client import PrometheusClient, PrometheusQueryError
from services.stores import ALERT_RELABEL_CONFIGS, PROMETHEUS_RULES, ResourceStore, build_store

logger = logging.getLogger(__name__)


class AlertManagementController:
    def __init__(
        self,
        rule_store: Optional[ResourceStore] = None,
        relabel_store: Optional[ResourceStore] = None,
        prometheus_client: Optional[PrometheusClient] = None,
    ) -> None:
        self.rule_store = rule_store or build_store(PROMETHEUS_RULES)
        self.relabel_store = relabel_store or build_store(ALERT_RELABEL_CONFIGS)
        self.alerting_rules = AlertingRuleManager(self.rule_store)
        self.relabel_configs = RelabelConfigManager(self.relabel_store)
        self.prometheus = prometheus_client

    async def close(self) -> None:
        await self.rule_store.close()
        await self.relabel_store.close()
        if self.prometheus is not None:
            await self.prometheus.close()

    async def get_alerting_rule(self, arid: AlertingRuleId) -> Rule:
        return await self.alerting_rules.get_alerting_rule(arid)

    async def list_alerting_rules(self, namespace: Optional[str] = None) -> List[Tuple[AlertingRuleId, Rule]]:
        return await self.alerting_rules.list_alerting_rules(namespace)

    async def create_alerting_rule(self, arid: AlertingRuleId, rule: Rule) -> Rule:
        return await self.alerting_rules.create_alerting_rule(arid, rule)

    async def update_alerting_rule(self, arid: AlertingRuleId, rule: Rule) -> Rule:
        return await self.alerting_rules.update_alerting_rule(arid, rule)

    async def delete_alerting_rule(self, arid: AlertingRuleId) -> None:
        return await self.alerting_rules.delete_alerting_rule(arid)

    async def get_relabel_configs(self, rcid: RelabelConfigId) -> List[RelabelConfig]:
        return await self.relabel_configs.get_relabel_configs(rcid)

    async def add_relabel_config(self, rcid: RelabelConfigId, entry: RelabelConfig) -> RelabelConfig:
        return await self.relabel_configs.add_relabel_config(rcid, entry)

    async def replace_relabel_configs(self, rcid: RelabelConfigId, entries: List[RelabelConfig]) -> List[RelabelConfig]:
        return await self.relabel_configs.replace_relabel_configs(rcid, entries)

    async def remove_relabel_config(self, rcid: RelabelConfigId, entry: RelabelConfig) -> None:
        return await self.relabel_configs.remove_relabel_config(rcid, entry)

    async def wait_for_alerting_rule_loaded(
        self,
        arid: AlertingRuleId,
        timeout: float,
        interval: Optional[float] = None,
    ) -> None:
        """Block until Prometheus reports the rule identified by ``arid`` as loaded."""
        require_complete(arid)
        if self.prometheus is None:
            raise RuntimeError("no Prometheus client configured")
        prometheus = self.prometheus

        async def check() -> None:
            rules = await prometheus.list_alerting_rules(arid.rule_name)
            if not any(rule.labels.get("severity") == arid.severity for rule in rules):
                raise PrometheusQueryError(
                    f"alerting rule {arid.rule_name} with severity {arid.severity} not loaded yet ({len(rules)} rule(s) with that name)"
                )

        await poll(interval or prometheus.poll_interval, timeout, check)
        logger.info("Alerting rule %s is loaded by Prometheus", arid)
