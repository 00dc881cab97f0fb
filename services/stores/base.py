"""
Resource store contract for namespaced aggregate documents (PrometheusRule, AlertRelabelConfig), including the conditional write semantics every backend must honour and the errors they raise.

A store persists whole documents keyed by (namespace, name). Writes are
conditional on ``metadata.resourceVersion``: ``None`` means create-only, any
other value means update-only-if-unchanged. A mismatch raises
``ResourceConflictError`` and leaves the stored document untouched.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from models.management.relabel import RelabelDocument
from models.management.rules import RuleDocument

D = TypeVar("D", bound=BaseModel)


class ResourceStoreError(Exception):
    def __init__(self, message: str, *, namespace: Optional[str] = None, name: Optional[str] = None) -> None:
        super().__init__(message)
        self.namespace = namespace
        self.name = name


class ResourceNotFoundError(ResourceStoreError):
    pass


class ResourceConflictError(ResourceStoreError):
    pass


@dataclass(frozen=True)
class ResourceKind:
    group: str
    version: str
    plural: str
    kind: str
    model: Type[BaseModel]

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"


PROMETHEUS_RULES = ResourceKind(
    group="monitoring.coreos.com",
    version="v1",
    plural="prometheusrules",
    kind="PrometheusRule",
    model=RuleDocument,
)

ALERT_RELABEL_CONFIGS = ResourceKind(
    group="monitoring.openshift.io",
    version="v1",
    plural="alertrelabelconfigs",
    kind="AlertRelabelConfig",
    model=RelabelDocument,
)


class ResourceStore(ABC, Generic[D]):
    def __init__(self, kind: ResourceKind) -> None:
        self.kind = kind

    @abstractmethod
    async def list(self, namespace: Optional[str] = None) -> List[D]:
        ...

    @abstractmethod
    async def get(self, namespace: str, name: str) -> D:
        """Return the stored document or raise ``ResourceNotFoundError``."""

    @abstractmethod
    async def create_or_update(self, document: D) -> D:
        """Persist ``document`` conditionally on its ``metadata.resource_version``.

        Returns the stored document carrying its new version.
        """

    @abstractmethod
    async def delete(self, namespace: str, name: str, resource_version: Optional[str] = None) -> None:
        ...

    async def close(self) -> None:
        return None

    def _parse(self, payload) -> D:
        """Validate a stored payload; malformed upstream data surfaces as ``ResourceStoreError``."""
        if not isinstance(payload, dict):
            raise ResourceStoreError(f"{self.kind.kind} payload is not an object: {str(payload)[:200]!r}")
        metadata = payload.get("metadata") if isinstance(payload.get("metadata"), dict) else {}
        namespace, name = metadata.get("namespace"), metadata.get("name")
        try:
            return self.kind.model.model_validate(payload)
        except ValidationError as exc:
            raise ResourceStoreError(
                f"{self.kind.kind} {namespace}/{name} is malformed: {exc}", namespace=namespace, name=name
            ) from exc

    @staticmethod
    def _dump(document: BaseModel) -> dict:
        return document.model_dump(by_alias=True, exclude_none=True)
