"""
Pydantic models for responses of the Prometheus HTTP API rules endpoint.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class PrometheusAlert(BaseModel):
    active_at: Optional[datetime] = Field(None, alias="activeAt")
    annotations: Dict[str, str] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)
    state: Optional[str] = None
    value: Optional[str] = None
    model_config = ConfigDict(populate_by_name=True)


class PrometheusRule(BaseModel):
    alerts: List[PrometheusAlert] = Field(default_factory=list)
    annotations: Dict[str, str] = Field(default_factory=dict)
    duration: float = 0
    evaluation_time: float = Field(0, alias="evaluationTime")
    health: Optional[str] = None
    keep_firing_for: float = Field(0, alias="keepFiringFor")
    labels: Dict[str, str] = Field(default_factory=dict)
    last_evaluation: Optional[datetime] = Field(None, alias="lastEvaluation")
    name: str
    query: str = ""
    state: Optional[str] = None
    type: Optional[str] = None
    model_config = ConfigDict(populate_by_name=True)


class PrometheusRuleGroup(BaseModel):
    evaluation_time: float = Field(0, alias="evaluationTime")
    file: str = ""
    interval: float = 0
    last_evaluation: Optional[datetime] = Field(None, alias="lastEvaluation")
    limit: int = 0
    name: str
    rules: List[PrometheusRule] = Field(default_factory=list)
    model_config = ConfigDict(populate_by_name=True)


class RulesData(BaseModel):
    groups: List[PrometheusRuleGroup] = Field(default_factory=list)


class RulesResponse(BaseModel):
    data: RulesData = Field(default_factory=RulesData)
    status: str
