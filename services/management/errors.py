"""
Error taxonomy for alert management operations. Each kind maps to one outward status class in the HTTP layer.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import List, Optional


class AlertManagementError(Exception):
    def __init__(self, message: str, identity: Optional[object] = None) -> None:
        super().__init__(message)
        self.identity = identity


class InvalidIdentityError(AlertManagementError, ValueError):
    def __init__(self, message: str, identity: Optional[object] = None, missing: Optional[List[str]] = None) -> None:
        super().__init__(message, identity)
        self.missing = missing or []


class DocumentNotFoundError(AlertManagementError):
    pass


class RuleNotFoundError(AlertManagementError):
    pass


class RelabelConfigNotFoundError(AlertManagementError):
    pass


class OwnershipConflictError(AlertManagementError):
    pass


class GroupNotFoundError(AlertManagementError):
    """Owned document without the owned group; indicates a defect, not user error."""


class ConcurrentModificationError(AlertManagementError):
    pass


class UpstreamError(AlertManagementError):
    pass


def require_complete(identity) -> None:
    missing = identity.missing_fields()
    if missing:
        raise InvalidIdentityError(f"missing required identity fields: {', '.join(missing)}", identity, missing=missing)
