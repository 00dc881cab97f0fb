"""
In-process resource store used for local development and as the store double in tests.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Dict, List, Optional, Tuple

from services.stores.base import D, ResourceConflictError, ResourceKind, ResourceNotFoundError, ResourceStore

logger = logging.getLogger(__name__)


class InMemoryResourceStore(ResourceStore[D]):
    def __init__(self, kind: ResourceKind) -> None:
        super().__init__(kind)
        self._documents: Dict[Tuple[str, str], dict] = {}
        self._version = 0
        self._lock = asyncio.Lock()
        self.calls: Counter = Counter()

    @property
    def write_count(self) -> int:
        return self.calls["create_or_update"] + self.calls["delete"]

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def seed(self, document: D) -> D:
        """Store ``document`` unconditionally, bypassing version checks and call counters."""
        payload = self._dump(document)
        payload["metadata"]["resourceVersion"] = self._next_version()
        key = (document.metadata.namespace, document.metadata.name)
        self._documents[key] = payload
        return self._parse(payload)

    async def list(self, namespace: Optional[str] = None) -> List[D]:
        self.calls["list"] += 1
        return [
            self._parse(payload)
            for (ns, _name), payload in sorted(self._documents.items())
            if namespace is None or ns == namespace
        ]

    async def get(self, namespace: str, name: str) -> D:
        self.calls["get"] += 1
        payload = self._documents.get((namespace, name))
        if payload is None:
            raise ResourceNotFoundError(
                f"{self.kind.kind} {namespace}/{name} not found", namespace=namespace, name=name
            )
        return self._parse(payload)

    async def create_or_update(self, document: D) -> D:
        self.calls["create_or_update"] += 1
        namespace, name = document.metadata.namespace, document.metadata.name
        expected = document.metadata.resource_version
        async with self._lock:
            current = self._documents.get((namespace, name))
            if expected is None and current is not None:
                raise ResourceConflictError(
                    f"{self.kind.kind} {namespace}/{name} already exists", namespace=namespace, name=name
                )
            if expected is not None:
                if current is None:
                    raise ResourceNotFoundError(
                        f"{self.kind.kind} {namespace}/{name} not found", namespace=namespace, name=name
                    )
                if current["metadata"].get("resourceVersion") != expected:
                    raise ResourceConflictError(
                        f"{self.kind.kind} {namespace}/{name} was modified (expected version {expected})",
                        namespace=namespace,
                        name=name,
                    )
            payload = self._dump(document)
            payload["metadata"]["resourceVersion"] = self._next_version()
            self._documents[(namespace, name)] = payload
            logger.debug("Stored %s %s/%s at version %s", self.kind.kind, namespace, name, payload["metadata"]["resourceVersion"])
            return self._parse(payload)

    async def delete(self, namespace: str, name: str, resource_version: Optional[str] = None) -> None:
        self.calls["delete"] += 1
        async with self._lock:
            current = self._documents.get((namespace, name))
            if current is None:
                raise ResourceNotFoundError(
                    f"{self.kind.kind} {namespace}/{name} not found", namespace=namespace, name=name
                )
            if resource_version is not None and current["metadata"].get("resourceVersion") != resource_version:
                raise ResourceConflictError(
                    f"{self.kind.kind} {namespace}/{name} was modified (expected version {resource_version})",
                    namespace=namespace,
                    name=name,
                )
            del self._documents[(namespace, name)]
