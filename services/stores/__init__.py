"""
Resource store backends for managed documents.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from config import config

from .base import (
    ALERT_RELABEL_CONFIGS,
    PROMETHEUS_RULES,
    ResourceConflictError,
    ResourceKind,
    ResourceNotFoundError,
    ResourceStore,
    ResourceStoreError,
)
from .file import FileResourceStore
from .kubernetes import KubernetesResourceStore
from .memory import InMemoryResourceStore


def build_store(kind: ResourceKind) -> ResourceStore:
    if config.STORE_BACKEND == "memory":
        return InMemoryResourceStore(kind)
    if config.STORE_BACKEND == "file":
        return FileResourceStore(kind, config.FILE_STORE_PATH)
    return KubernetesResourceStore(kind)


__all__ = [
    "ALERT_RELABEL_CONFIGS",
    "PROMETHEUS_RULES",
    "FileResourceStore",
    "InMemoryResourceStore",
    "KubernetesResourceStore",
    "ResourceConflictError",
    "ResourceKind",
    "ResourceNotFoundError",
    "ResourceStore",
    "ResourceStoreError",
    "build_store",
]
