"""
Read-check-write cycle shared by the alerting rule and relabel config managers.

Every write fetches the document, checks ownership, applies the mutation to a
copy, then re-fetches and re-checks ownership and version right before the
conditional persist. A conflict at any point restarts the cycle, a bounded
number of times.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Generic, Optional, Tuple, TypeVar

from config import config
from services.management.errors import ConcurrentModificationError, DocumentNotFoundError, UpstreamError
from services.management.ownership import ensure_managed
from services.stores.base import (
    D,
    ResourceConflictError,
    ResourceNotFoundError,
    ResourceStore,
    ResourceStoreError,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")
Mutation = Callable[[Optional[D]], Tuple[Optional[D], R]]


class ManagedDocumentManager(Generic[D]):
    def __init__(
        self,
        store: ResourceStore[D],
        conflict_retries: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.store = store
        self.conflict_retries = conflict_retries or config.CONFLICT_RETRY_ATTEMPTS
        self.timeout = timeout or config.OPERATION_TIMEOUT

    @property
    def kind_name(self) -> str:
        return self.store.kind.kind

    async def _store_call(self, action: str, namespace: str, name: str, identity, call: Awaitable[R]) -> R:
        try:
            return await call
        except (ResourceConflictError, ResourceNotFoundError):
            raise
        except ResourceStoreError as exc:
            logger.error("error %s %s %s/%s for %s: %s", action, self.kind_name, namespace, name, identity, exc)
            raise UpstreamError(
                f"unexpected error {action} {self.kind_name} {namespace}/{name}", identity
            ) from exc

    async def _fetch(self, namespace: str, name: str, identity) -> Optional[D]:
        try:
            return await self._store_call("getting", namespace, name, identity, self.store.get(namespace, name))
        except ResourceNotFoundError:
            return None

    async def _require(self, namespace: str, name: str, identity) -> D:
        document = await self._fetch(namespace, name, identity)
        if document is None:
            raise DocumentNotFoundError(f"{self.kind_name} {namespace}/{name} not found", identity)
        return document

    async def _persist(
        self,
        namespace: str,
        name: str,
        identity,
        observed_version: Optional[str],
        desired: Optional[D],
    ) -> None:
        current = await self._fetch(namespace, name, identity)
        if current is not None:
            ensure_managed(current, identity)
        current_version = current.metadata.resource_version if current is not None else None
        if current_version != observed_version:
            raise ResourceConflictError(
                f"{self.kind_name} {namespace}/{name} changed since it was read", namespace=namespace, name=name
            )

        if desired is None:
            if current is None:
                return
            await self._store_call(
                "deleting", namespace, name, identity, self.store.delete(namespace, name, observed_version)
            )
            logger.info("Deleted empty %s %s/%s", self.kind_name, namespace, name)
            return

        desired.metadata.resource_version = observed_version
        await self._store_call("saving", namespace, name, identity, self.store.create_or_update(desired))

    async def _mutate(
        self,
        namespace: str,
        name: str,
        identity,
        mutation: Mutation,
        *,
        allow_create: bool,
    ) -> R:
        for attempt in range(1, self.conflict_retries + 1):
            observed = await self._fetch(namespace, name, identity)
            if observed is None and not allow_create:
                raise DocumentNotFoundError(f"{self.kind_name} {namespace}/{name} not found", identity)
            if observed is not None:
                ensure_managed(observed, identity)

            observed_version = observed.metadata.resource_version if observed is not None else None
            working = observed.model_copy(deep=True) if observed is not None else None
            desired, result = mutation(working)

            try:
                await self._persist(namespace, name, identity, observed_version, desired)
                return result
            except (ResourceConflictError, ResourceNotFoundError) as exc:
                logger.warning(
                    "Conflict writing %s %s/%s for %s (attempt %s/%s): %s",
                    self.kind_name, namespace, name, identity, attempt, self.conflict_retries, exc,
                )

        raise ConcurrentModificationError(
            f"{self.kind_name} {namespace}/{name} kept changing; gave up after {self.conflict_retries} attempts",
            identity,
        )
