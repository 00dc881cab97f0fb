"""
Resilience decorators for upstream store and query calls.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio
import logging
import random
from functools import wraps
from typing import Callable, Optional, Tuple, Type, TypeVar, ParamSpec
import httpx

from config import config

logger = logging.getLogger(__name__)

P = ParamSpec('P')
T = TypeVar('T')


def backoff_delay(attempt: int, backoff: float) -> float:
    wait_time = min(config.RETRY_MAX_BACKOFF, backoff * (2 ** attempt))
    jitter = wait_time * max(0.0, config.RETRY_JITTER)
    return max(0.0, wait_time + random.uniform(-jitter, jitter))


DEFAULT_RETRY_ON: Tuple[Type[BaseException], ...] = (httpx.HTTPError, asyncio.TimeoutError)


def status_code_of(exc: BaseException) -> Optional[int]:
    """HTTP status carried by an httpx status error or a Kubernetes ``ApiException``."""
    response = getattr(exc, "response", None)
    if isinstance(exc, httpx.HTTPStatusError) and response is not None:
        return response.status_code
    status = getattr(exc, "status", None)
    return status if isinstance(status, int) else None


def with_retry(
    max_retries: Optional[int] = None,
    backoff: Optional[float] = None,
    retry_on: Tuple[Type[BaseException], ...] = DEFAULT_RETRY_ON,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Retry transient transport failures of an idempotent coroutine.

    Only ``retry_on`` errors are retried (by default ``httpx.HTTPError`` and
    timeouts); errors carrying a 4xx status fail fast.
    Never apply this to conditional writes: a retried write after an ambiguous
    failure can hide a conflict.
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            retries = config.MAX_RETRIES if max_retries is None else max_retries
            base_backoff = config.RETRY_BACKOFF if backoff is None else backoff
            last_exception = None

            for attempt in range(retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    status_code = status_code_of(e)
                    if status_code is not None and 400 <= status_code < 500 and status_code != 429:
                        logger.debug(
                            "%s: non-retriable status %s, failing fast",
                            func.__name__, status_code
                        )
                        raise

                    last_exception = e
                    if attempt < retries:
                        wait_time = backoff_delay(attempt, base_backoff)
                        logger.warning(
                            "Attempt %s/%s failed for %s: %s. Retrying in %.2fs...",
                            attempt + 1, retries + 1, func.__name__, e, wait_time,
                        )
                        await asyncio.sleep(wait_time)
                    else:
                        logger.error("All %s attempts failed for %s: %s", retries + 1, func.__name__, e)

            if last_exception is not None:
                raise last_exception
            raise RuntimeError(f"Retry wrapper exited without result or captured exception for {func.__name__}")

        return wrapper
    return decorator


def with_timeout(timeout: Optional[float] = None) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Bound a coroutine with ``asyncio.wait_for``.

    ``timeout`` falls back to the instance's ``timeout`` attribute when the
    wrapped callable is a method carrying one, then to ``config.OPERATION_TIMEOUT``.
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            limit = timeout
            if limit is None and args:
                limit = getattr(args[0], "timeout", None)
            if limit is None:
                limit = config.OPERATION_TIMEOUT
            try:
                return await asyncio.wait_for(func(*args, **kwargs), timeout=limit)
            except asyncio.TimeoutError:
                logger.error("Timeout after %ss for %s", limit, func.__name__)
                raise

        return wrapper
    return decorator
