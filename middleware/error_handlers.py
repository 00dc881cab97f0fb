"""
Shared router-level error handling helpers.
Decorators for mapping alert management errors to HTTP status codes consistently across route handlers.


Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar
import logging

import httpx
from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from services.management.errors import (
    ConcurrentModificationError,
    DocumentNotFoundError,
    GroupNotFoundError,
    InvalidIdentityError,
    OwnershipConflictError,
    RelabelConfigNotFoundError,
    RuleNotFoundError,
    UpstreamError,
)


F = TypeVar("F", bound=Callable[..., Awaitable[Any]])
logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (InvalidIdentityError, status.HTTP_400_BAD_REQUEST),
    ((DocumentNotFoundError, RuleNotFoundError, RelabelConfigNotFoundError), status.HTTP_404_NOT_FOUND),
    ((OwnershipConflictError, ConcurrentModificationError), status.HTTP_409_CONFLICT),
    (GroupNotFoundError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    ((UpstreamError, httpx.HTTPError), status.HTTP_502_BAD_GATEWAY),
    (asyncio.TimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
)


HANDLED_ERRORS = tuple(
    kind for kinds, _code in ERROR_STATUS for kind in (kinds if isinstance(kinds, tuple) else (kinds,))
)


def status_for(exc: Exception) -> int:
    for kinds, code in ERROR_STATUS:
        if isinstance(exc, kinds):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def handle_route_errors(
    *,
    internal_detail: str | None = "Internal server error",
) -> Callable[[F], F]:

    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except GroupNotFoundError as exc:
                logger.error("Invariant violated in %s: %s", func.__name__, exc)
                raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
            except HANDLED_ERRORS as exc:
                code = status_for(exc)
                if code >= 500:
                    logger.warning("Upstream failure in %s: %s", func.__name__, exc)
                raise HTTPException(status_code=code, detail=str(exc) or "Upstream request failed") from exc
            except Exception as exc:
                logger.exception("Unhandled exception in route %s: %s", func.__name__, exc)
                if internal_detail:
                    raise HTTPException(
                        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                        detail=internal_detail,
                    ) from exc
                raise

        return wrapper

    return decorator


def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()},
    )


def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )
