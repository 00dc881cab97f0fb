"""
Request models for alert management API endpoints.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from .relabel import RelabelConfig
from .rules import Rule


class AlertingRuleCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    namespace: str = ""
    document_name: str = Field("", alias="prometheusRule")
    rule: Rule


class ManagedAlertingRule(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    namespace: str
    document_name: str = Field(..., alias="prometheusRule")
    rule: Rule


class RelabelConfigsRequest(BaseModel):
    configs: List[RelabelConfig] = Field(default_factory=list)
