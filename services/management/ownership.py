"""
Ownership policy for shared documents: a document may be written by this controller only when it carries the reserved owner label.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from config import config
from models.management.rules import ObjectMeta
from services.management.errors import OwnershipConflictError


def is_managed(document) -> bool:
    labels = document.metadata.labels or {}
    return labels.get(config.RESOURCE_OWNER_LABEL_KEY) == config.RESOURCE_OWNER_LABEL_VALUE


def mark_managed(metadata: ObjectMeta) -> ObjectMeta:
    """Set the owner label on ``metadata``. Only for documents this controller is about to create."""
    metadata.labels = {**(metadata.labels or {}), config.RESOURCE_OWNER_LABEL_KEY: config.RESOURCE_OWNER_LABEL_VALUE}
    return metadata


def managed_metadata(namespace: str, name: str) -> ObjectMeta:
    return mark_managed(ObjectMeta(name=name, namespace=namespace))


def ensure_managed(document, identity) -> None:
    if not is_managed(document):
        raise OwnershipConflictError(
            f"{document.kind} {document.metadata.namespace}/{document.metadata.name} is not managed by alert management",
            identity,
        )
