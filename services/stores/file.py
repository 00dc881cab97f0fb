"""
Resource store keeping one YAML manifest per document on local disk, laid out as ``<root>/<plural>/<namespace>/<name>.yaml``. Intended for single-process development setups; conditional writes are enforced with the ``resourceVersion`` stored in each manifest.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from fastapi.concurrency import run_in_threadpool

from services.stores.base import (
    D,
    ResourceConflictError,
    ResourceKind,
    ResourceNotFoundError,
    ResourceStore,
    ResourceStoreError,
)

logger = logging.getLogger(__name__)


class FileResourceStore(ResourceStore[D]):
    def __init__(self, kind: ResourceKind, root: str) -> None:
        super().__init__(kind)
        self.root = Path(root) / kind.plural
        self._lock = asyncio.Lock()

    def _path(self, namespace: str, name: str) -> Path:
        return self.root / namespace / f"{name}.yaml"

    def _load(self, path: Path) -> dict:
        try:
            with path.open() as f:
                payload = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ResourceStoreError(f"Failed to parse manifest {path}: {exc}") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("metadata"), dict):
            raise ResourceStoreError(f"Manifest {path} does not contain a document")
        # hand-written manifests start at version 0
        metadata = payload["metadata"]
        metadata["resourceVersion"] = str(metadata.get("resourceVersion") or 0)
        return payload

    def _next_version(self, current_version, namespace: str, name: str) -> str:
        try:
            return str(int(current_version or 0) + 1)
        except (TypeError, ValueError) as exc:
            raise ResourceStoreError(
                f"{self.kind.kind} {namespace}/{name} has a non-numeric resourceVersion {current_version!r}",
                namespace=namespace,
                name=name,
            ) from exc

    def _write(self, path: Path, payload: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".yaml.tmp")
        with tmp.open("w") as f:
            yaml.safe_dump(payload, f, sort_keys=False)
        os.replace(tmp, path)

    def _read_sync(self, namespace: str, name: str) -> Optional[dict]:
        path = self._path(namespace, name)
        if not path.exists():
            return None
        return self._load(path)

    def _list_sync(self, namespace: Optional[str]) -> List[dict]:
        if not self.root.exists():
            return []
        pattern = f"{namespace}/*.yaml" if namespace is not None else "*/*.yaml"
        return [self._load(path) for path in sorted(self.root.glob(pattern))]

    async def list(self, namespace: Optional[str] = None) -> List[D]:
        payloads = await run_in_threadpool(self._list_sync, namespace)
        return [self._parse(payload) for payload in payloads]

    async def get(self, namespace: str, name: str) -> D:
        payload = await run_in_threadpool(self._read_sync, namespace, name)
        if payload is None:
            raise ResourceNotFoundError(
                f"{self.kind.kind} {namespace}/{name} not found", namespace=namespace, name=name
            )
        return self._parse(payload)

    async def create_or_update(self, document: D) -> D:
        namespace, name = document.metadata.namespace, document.metadata.name
        expected = document.metadata.resource_version
        async with self._lock:
            current = await run_in_threadpool(self._read_sync, namespace, name)
            current_version = (current or {}).get("metadata", {}).get("resourceVersion")
            if expected is None and current is not None:
                raise ResourceConflictError(
                    f"{self.kind.kind} {namespace}/{name} already exists", namespace=namespace, name=name
                )
            if expected is not None and current is None:
                raise ResourceNotFoundError(
                    f"{self.kind.kind} {namespace}/{name} not found", namespace=namespace, name=name
                )
            if expected is not None and str(current_version) != expected:
                raise ResourceConflictError(
                    f"{self.kind.kind} {namespace}/{name} was modified (expected version {expected})",
                    namespace=namespace,
                    name=name,
                )

            payload = self._dump(document)
            payload.setdefault("apiVersion", self.kind.api_version)
            payload.setdefault("kind", self.kind.kind)
            payload["metadata"]["resourceVersion"] = self._next_version(current_version, namespace, name)
            await run_in_threadpool(self._write, self._path(namespace, name), payload)
            logger.info("Wrote %s %s/%s", self.kind.kind, namespace, name)
            return self._parse(payload)

    async def delete(self, namespace: str, name: str, resource_version: Optional[str] = None) -> None:
        async with self._lock:
            current = await run_in_threadpool(self._read_sync, namespace, name)
            if current is None:
                raise ResourceNotFoundError(
                    f"{self.kind.kind} {namespace}/{name} not found", namespace=namespace, name=name
                )
            current_version = str(current.get("metadata", {}).get("resourceVersion"))
            if resource_version is not None and current_version != resource_version:
                raise ResourceConflictError(
                    f"{self.kind.kind} {namespace}/{name} was modified (expected version {resource_version})",
                    namespace=namespace,
                    name=name,
                )
            await run_in_threadpool(self._path(namespace, name).unlink)
            logger.info("Removed %s %s/%s", self.kind.kind, namespace, name)
