"""
Resource store backed by the Kubernetes API server custom resource endpoints, driven through the official ``kubernetes`` client. Conditional writes map onto the API server's own optimistic concurrency: creates fail with 409 when the name is taken, replaces carry ``metadata.resourceVersion`` and fail with 409 when it is stale, and deletes send ``V1Preconditions(resource_version=...)``.

The client is synchronous, so every call runs in a worker thread.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, List, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException

from config import config
from middleware.resilience import with_retry
from services.common.http_client import clamp_max
from services.common.kube_client import (
    RETRYABLE_API_ERRORS,
    KubernetesConfigError,
    TransportError,
    build_api_client,
    describe_api_exception,
)
from services.stores.base import (
    D,
    ResourceConflictError,
    ResourceKind,
    ResourceNotFoundError,
    ResourceStore,
    ResourceStoreError,
)

logger = logging.getLogger(__name__)


class KubernetesResourceStore(ResourceStore[D]):
    def __init__(self, kind: ResourceKind, *, api: Optional[client.CustomObjectsApi] = None) -> None:
        super().__init__(kind)
        self._api = api
        self._api_lock = asyncio.Lock()

    async def _ensure_api(self) -> client.CustomObjectsApi:
        if self._api is not None:
            return self._api
        async with self._api_lock:
            if self._api is None:
                api_client = await asyncio.to_thread(build_api_client)
                self._api = client.CustomObjectsApi(api_client)
        return self._api

    async def close(self) -> None:
        if self._api is not None:
            await asyncio.to_thread(self._api.api_client.close)

    async def _run(self, method: str, *args: Any, **kwargs: Any) -> Any:
        api = await self._ensure_api()
        kwargs.setdefault("_request_timeout", config.DEFAULT_TIMEOUT)
        return await asyncio.to_thread(getattr(api, method), *args, **kwargs)

    @with_retry(retry_on=RETRYABLE_API_ERRORS)
    async def _read(self, method: str, *args: Any) -> Any:
        return await self._run(method, *args)

    def _error(self, action: str, namespace: Optional[str], name: Optional[str], exc: ApiException) -> ResourceStoreError:
        target = f"{namespace}/{name}" if name else (namespace or "all namespaces")
        message = (
            f"{action} {self.kind.kind} {target}: unexpected status {exc.status} "
            f"({clamp_max(describe_api_exception(exc))!r})"
        )
        if exc.status == 404:
            return ResourceNotFoundError(message, namespace=namespace, name=name)
        if exc.status == 409:
            return ResourceConflictError(message, namespace=namespace, name=name)
        return ResourceStoreError(message, namespace=namespace, name=name)

    async def _send(self, action: str, namespace: Optional[str], name: Optional[str], call: Awaitable[Any]) -> Any:
        try:
            return await call
        except ApiException as exc:
            raise self._error(action, namespace, name, exc) from exc
        except (TransportError, KubernetesConfigError) as exc:
            raise ResourceStoreError(
                f"{action} {self.kind.kind} {namespace}/{name}: {exc}", namespace=namespace, name=name
            ) from exc

    def _body(self, response: Any, action: str, namespace: Optional[str], name: Optional[str]) -> dict:
        if not isinstance(response, dict):
            raise ResourceStoreError(
                f"{action} {self.kind.kind} {namespace}/{name}: expected a JSON object, got {clamp_max(str(response))!r}",
                namespace=namespace,
                name=name,
            )
        return response

    async def list(self, namespace: Optional[str] = None) -> List[D]:
        k = self.kind
        if namespace is None:
            call = self._read("list_cluster_custom_object", k.group, k.version, k.plural)
        else:
            call = self._read("list_namespaced_custom_object", k.group, k.version, namespace, k.plural)
        body = self._body(await self._send("list", namespace, None, call), "list", namespace, None)
        return [self._parse(self._with_type_meta(item) if isinstance(item, dict) else item) for item in body.get("items") or []]

    async def get(self, namespace: str, name: str) -> D:
        k = self.kind
        call = self._read("get_namespaced_custom_object", k.group, k.version, namespace, k.plural, name)
        return self._parse(await self._send("get", namespace, name, call))

    async def create_or_update(self, document: D) -> D:
        k = self.kind
        namespace, name = document.metadata.namespace, document.metadata.name
        payload = self._with_type_meta(self._dump(document))
        if document.metadata.resource_version is None:
            action = "create"
            call = self._run("create_namespaced_custom_object", k.group, k.version, namespace, k.plural, payload)
        else:
            action = "update"
            call = self._run("replace_namespaced_custom_object", k.group, k.version, namespace, k.plural, name, payload)

        stored = self._parse(await self._send(action, namespace, name, call))
        logger.info(
            "%s %s %s/%s at resourceVersion %s",
            "Created" if action == "create" else "Updated",
            self.kind.kind,
            namespace,
            name,
            stored.metadata.resource_version,
        )
        return stored

    async def delete(self, namespace: str, name: str, resource_version: Optional[str] = None) -> None:
        k = self.kind
        options = client.V1DeleteOptions()
        if resource_version is not None:
            options.preconditions = client.V1Preconditions(resource_version=resource_version)
        call = self._run("delete_namespaced_custom_object", k.group, k.version, namespace, k.plural, name, body=options)
        await self._send("delete", namespace, name, call)
        logger.info("Deleted %s %s/%s", self.kind.kind, namespace, name)

    def _with_type_meta(self, payload: dict) -> dict:
        payload.setdefault("apiVersion", self.kind.api_version)
        payload.setdefault("kind", self.kind.kind)
        return payload
