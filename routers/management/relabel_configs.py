"""
Relabel config management endpoints over AlertRelabelConfig documents.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import List

from fastapi import APIRouter, Body, Depends, status

from config import constants
from middleware.error_handlers import handle_route_errors
from models.management.relabel import RelabelConfig, RelabelConfigId
from models.management.requests import RelabelConfigsRequest
from routers.management.state import get_controller
from services.management.controller import AlertManagementController

RELABEL_CONFIG_ID_PATH = "/namespaces/{namespace}/alertrelabelconfigs/{name}"

router = APIRouter(prefix="/relabel-configs", tags=["relabel-configs"])


def parse_relabel_config_id(namespace: str, name: str) -> RelabelConfigId:
    return RelabelConfigId(namespace=namespace, name=name)


@router.get(RELABEL_CONFIG_ID_PATH, response_model=List[RelabelConfig], response_model_exclude_none=True)
@handle_route_errors()
async def get_relabel_configs(
    rcid: RelabelConfigId = Depends(parse_relabel_config_id),
    controller: AlertManagementController = Depends(get_controller),
):
    return await controller.get_relabel_configs(rcid)


@router.post(
    RELABEL_CONFIG_ID_PATH,
    response_model=RelabelConfig,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
@handle_route_errors()
async def add_relabel_config(
    entry: RelabelConfig = Body(...),
    rcid: RelabelConfigId = Depends(parse_relabel_config_id),
    controller: AlertManagementController = Depends(get_controller),
):
    return await controller.add_relabel_config(rcid, entry)


@router.put(RELABEL_CONFIG_ID_PATH, response_model=List[RelabelConfig], response_model_exclude_none=True)
@handle_route_errors()
async def replace_relabel_configs(
    payload: RelabelConfigsRequest = Body(...),
    rcid: RelabelConfigId = Depends(parse_relabel_config_id),
    controller: AlertManagementController = Depends(get_controller),
):
    return await controller.replace_relabel_configs(rcid, payload.configs)


@router.delete(RELABEL_CONFIG_ID_PATH)
@handle_route_errors()
async def remove_relabel_config(
    entry: RelabelConfig = Body(...),
    rcid: RelabelConfigId = Depends(parse_relabel_config_id),
    controller: AlertManagementController = Depends(get_controller),
) -> dict:
    await controller.remove_relabel_config(rcid, entry)
    return {"status": constants.STATUS_SUCCESS}
