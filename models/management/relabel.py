"""
Pydantic models for AlertRelabelConfig documents: a flat, ordered list of relabel entries applied to alerts before they leave Prometheus.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .rules import ObjectMeta


class RelabelConfig(BaseModel):
    source_labels: List[str] = Field(default_factory=list, alias="sourceLabels")
    separator: Optional[str] = None
    target_label: Optional[str] = Field(None, alias="targetLabel")
    regex: Optional[str] = None
    modulus: Optional[int] = None
    replacement: Optional[str] = None
    action: Optional[str] = Field(None, description="Relabel action, defaults to Replace upstream")
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class RelabelDocumentSpec(BaseModel):
    configs: List[RelabelConfig] = Field(default_factory=list)
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class RelabelDocument(BaseModel):
    api_version: str = Field("monitoring.openshift.io/v1", alias="apiVersion")
    kind: str = Field("AlertRelabelConfig")
    metadata: ObjectMeta
    spec: RelabelDocumentSpec = Field(default_factory=RelabelDocumentSpec)
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @property
    def configs(self) -> List[RelabelConfig]:
        return self.spec.configs


class RelabelConfigId(BaseModel):
    namespace: str = ""
    name: str = ""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def missing_fields(self) -> List[str]:
        return [key for key, value in (("namespace", self.namespace), ("name", self.name)) if not (value or "").strip()]

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"
