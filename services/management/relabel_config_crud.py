"""
Relabel config operations over AlertRelabelConfig documents. Same ownership and lifecycle rules as alerting rules, without the group indirection: the entry list of the document is the mutable unit.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from typing import List, Optional

from middleware.resilience import with_timeout
from models.management.relabel import RelabelConfig, RelabelConfigId, RelabelDocument, RelabelDocumentSpec
from services.management.documents import ManagedDocumentManager
from services.management.errors import RelabelConfigNotFoundError, require_complete
from services.management.ownership import managed_metadata

logger = logging.getLogger(__name__)


class RelabelConfigManager(ManagedDocumentManager[RelabelDocument]):

    @staticmethod
    def _new_document(rcid: RelabelConfigId) -> RelabelDocument:
        return RelabelDocument(
            metadata=managed_metadata(rcid.namespace, rcid.name),
            spec=RelabelDocumentSpec(configs=[]),
        )

    @with_timeout()
    async def get_relabel_configs(self, rcid: RelabelConfigId) -> List[RelabelConfig]:
        require_complete(rcid)
        document = await self._require(rcid.namespace, rcid.name, rcid)
        return list(document.configs)

    @with_timeout()
    async def add_relabel_config(self, rcid: RelabelConfigId, entry: RelabelConfig) -> RelabelConfig:
        require_complete(rcid)

        def mutation(document: Optional[RelabelDocument]):
            if document is None:
                document = self._new_document(rcid)
            document.spec.configs.append(entry.model_copy(deep=True))
            return document, entry

        added = await self._mutate(rcid.namespace, rcid.name, rcid, mutation, allow_create=True)
        logger.info("Added relabel config to AlertRelabelConfig %s", rcid)
        return added

    @with_timeout()
    async def replace_relabel_configs(self, rcid: RelabelConfigId, entries: List[RelabelConfig]) -> List[RelabelConfig]:
        require_complete(rcid)

        def mutation(document: Optional[RelabelDocument]):
            if not entries:
                return None, []
            if document is None:
                document = self._new_document(rcid)
            document.spec.configs = [entry.model_copy(deep=True) for entry in entries]
            return document, list(entries)

        replaced = await self._mutate(rcid.namespace, rcid.name, rcid, mutation, allow_create=True)
        logger.info("Replaced relabel configs of AlertRelabelConfig %s (%d entries)", rcid, len(replaced))
        return replaced

    @with_timeout()
    async def remove_relabel_config(self, rcid: RelabelConfigId, entry: RelabelConfig) -> None:
        require_complete(rcid)
        wanted = entry.model_dump(by_alias=True, exclude_none=True)

        def mutation(document: Optional[RelabelDocument]):
            for index, existing in enumerate(document.configs):
                if existing.model_dump(by_alias=True, exclude_none=True) == wanted:
                    del document.spec.configs[index]
                    break
            else:
                raise RelabelConfigNotFoundError(f"relabel config not found in AlertRelabelConfig {rcid}", rcid)
            if not document.configs:
                return None, None
            return document, None

        await self._mutate(rcid.namespace, rcid.name, rcid, mutation, allow_create=False)
        logger.info("Removed relabel config from AlertRelabelConfig %s", rcid)
