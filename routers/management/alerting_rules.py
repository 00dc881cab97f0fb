"""
Alerting rule management endpoints. A single rule is addressed by namespace, PrometheusRule name, alert name and severity.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from config import constants
from middleware.error_handlers import handle_route_errors
from models.management.requests import AlertingRuleCreateRequest, ManagedAlertingRule
from models.management.rules import AlertingRuleId, Rule
from routers.management.state import get_controller
from services.management.controller import AlertManagementController

logger = logging.getLogger(__name__)

ALERTING_RULE_ID_PATH = "/namespaces/{namespace}/prometheusrules/{prometheusrule}/rules/{rule_name}/severities/{severity}"

router = APIRouter(prefix="/rules", tags=["alerting-rules"])


def parse_alerting_rule_id(
    namespace: str = Path(...),
    prometheusrule: str = Path(...),
    rule_name: str = Path(...),
    severity: str = Path(...),
) -> AlertingRuleId:
    return AlertingRuleId(
        namespace=namespace,
        document_name=prometheusrule,
        rule_name=rule_name,
        severity=severity,
    )


@router.get("", response_model=List[ManagedAlertingRule], response_model_exclude_none=True)
@handle_route_errors()
async def list_alerting_rules(
    namespace: Optional[str] = Query(None),
    controller: AlertManagementController = Depends(get_controller),
):
    rules = await controller.list_alerting_rules(namespace)
    return [
        ManagedAlertingRule(namespace=arid.namespace, document_name=arid.document_name, rule=rule)
        for arid, rule in rules
    ]


@router.post("", response_model=Rule, response_model_exclude_none=True, status_code=status.HTTP_201_CREATED)
@handle_route_errors()
async def create_alerting_rule(
    payload: AlertingRuleCreateRequest = Body(...),
    controller: AlertManagementController = Depends(get_controller),
):
    arid = AlertingRuleId.for_rule(payload.namespace, payload.document_name, payload.rule)
    return await controller.create_alerting_rule(arid, payload.rule)


@router.get(ALERTING_RULE_ID_PATH, response_model=Rule, response_model_exclude_none=True)
@handle_route_errors()
async def get_alerting_rule(
    arid: AlertingRuleId = Depends(parse_alerting_rule_id),
    controller: AlertManagementController = Depends(get_controller),
):
    return await controller.get_alerting_rule(arid)


@router.get(ALERTING_RULE_ID_PATH + "/labels", response_model=Dict[str, str])
@handle_route_errors()
async def get_alerting_rule_labels(
    arid: AlertingRuleId = Depends(parse_alerting_rule_id),
    controller: AlertManagementController = Depends(get_controller),
):
    rule = await controller.get_alerting_rule(arid)
    return rule.labels


@router.put(ALERTING_RULE_ID_PATH, response_model=Rule, response_model_exclude_none=True)
@router.patch(ALERTING_RULE_ID_PATH, response_model=Rule, response_model_exclude_none=True)
@handle_route_errors()
async def update_alerting_rule(
    rule: Rule = Body(...),
    arid: AlertingRuleId = Depends(parse_alerting_rule_id),
    controller: AlertManagementController = Depends(get_controller),
):
    return await controller.update_alerting_rule(arid, rule)


@router.delete(ALERTING_RULE_ID_PATH)
@handle_route_errors()
async def delete_alerting_rule(
    arid: AlertingRuleId = Depends(parse_alerting_rule_id),
    controller: AlertManagementController = Depends(get_controller),
) -> dict:
    await controller.delete_alerting_rule(arid)
    return {"status": constants.STATUS_SUCCESS}
