"""
Module defines Pydantic models for PrometheusRule documents, the rule groups they carry, and the identity used to address a single alerting rule inside them.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

SEVERITY_LABEL = "severity"

DESC_RULE_ALERT = "Name of the alert produced by this rule"
DESC_RULE_RECORD = "Name of the series recorded by this rule"
DESC_RULE_EXPRESSION = "PromQL expression for the rule"
DESC_RULE_FOR_DURATION = "Duration to wait before firing the alert"
DESC_RULE_KEEP_FIRING_FOR = "Duration to keep firing after the condition clears"
DESC_RULE_LABELS = "Labels to add to alerts from this rule"
DESC_RULE_ANNOTATIONS = "Annotations to add to alerts from this rule"
DESC_RULE_GROUP_NAME = "Name of the rule group"
DESC_RULE_GROUP_INTERVAL = "Interval between evaluations of this rule group"
DESC_RULE_GROUP_RULES = "Rules in this group"


class ObjectMeta(BaseModel):
    name: str = Field(..., description="Document name, unique within its namespace")
    namespace: str = Field(..., description="Namespace holding the document")
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    resource_version: Optional[str] = Field(None, alias="resourceVersion", description="Opaque version token used for conditional writes")
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Rule(BaseModel):
    alert: Optional[str] = Field(None, description=DESC_RULE_ALERT)
    record: Optional[str] = Field(None, description=DESC_RULE_RECORD)
    expr: Union[str, int] = Field(..., description=DESC_RULE_EXPRESSION)
    duration: Optional[str] = Field(None, alias="for", description=DESC_RULE_FOR_DURATION)
    keep_firing_for: Optional[str] = Field(None, alias="keepFiringFor", description=DESC_RULE_KEEP_FIRING_FOR)
    labels: Dict[str, str] = Field(default_factory=dict, description=DESC_RULE_LABELS)
    annotations: Dict[str, str] = Field(default_factory=dict, description=DESC_RULE_ANNOTATIONS)
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @property
    def severity(self) -> Optional[str]:
        return self.labels.get(SEVERITY_LABEL)

    def matches(self, rule_name: str, severity: str) -> bool:
        return self.alert == rule_name and self.severity == severity


class RuleGroup(BaseModel):
    name: str = Field(..., description=DESC_RULE_GROUP_NAME)
    interval: Optional[str] = Field(None, description=DESC_RULE_GROUP_INTERVAL)
    rules: List[Rule] = Field(default_factory=list, description=DESC_RULE_GROUP_RULES)
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class RuleDocumentSpec(BaseModel):
    groups: List[RuleGroup] = Field(default_factory=list)
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class RuleDocument(BaseModel):
    api_version: str = Field("monitoring.coreos.com/v1", alias="apiVersion")
    kind: str = Field("PrometheusRule")
    metadata: ObjectMeta
    spec: RuleDocumentSpec = Field(default_factory=RuleDocumentSpec)
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @property
    def groups(self) -> List[RuleGroup]:
        return self.spec.groups


class AlertingRuleId(BaseModel):
    namespace: str = Field("", description="Namespace of the PrometheusRule document")
    document_name: str = Field("", alias="prometheusRule", description="Name of the PrometheusRule document")
    rule_name: str = Field("", alias="ruleName", description="Alert name of the rule")
    severity: str = Field("", description="Value of the rule's severity label")
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def missing_fields(self) -> List[str]:
        fields = {
            "namespace": self.namespace,
            "prometheusRule": self.document_name,
            "ruleName": self.rule_name,
            "severity": self.severity,
        }
        return [key for key, value in fields.items() if not (value or "").strip()]

    def __str__(self) -> str:
        return f"{self.namespace}/{self.document_name} rule {self.rule_name} severity {self.severity}"

    @classmethod
    def for_rule(cls, namespace: str, document_name: str, rule: Rule) -> "AlertingRuleId":
        return cls(
            namespace=namespace,
            document_name=document_name,
            rule_name=rule.alert or "",
            severity=rule.severity or "",
        )
