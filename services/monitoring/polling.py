"""
Bounded polling used to wait for eventually-consistent state on remote surfaces (query results, targets, loaded rule groups, issued tokens).

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

Condition = Callable[[], Union[Any, Awaitable[Any]]]


class PollTimeoutError(asyncio.TimeoutError):
    def __init__(self, timeout: float, last_error: Optional[BaseException] = None) -> None:
        message = f"timed out waiting for the condition after {timeout}s"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.timeout = timeout
        self.last_error = last_error


async def poll(interval: float, timeout: float, condition: Condition) -> None:
    """Call ``condition`` now and then every ``interval`` seconds until it succeeds.

    A condition fails by raising an ``Exception`` (kept as the diagnostic) or by
    returning ``False``; any other return value is success. Once ``timeout``
    seconds have passed, ``PollTimeoutError`` is raised carrying the last
    exception the condition raised, if any. Cancellation of the calling task is
    never swallowed.
    """
    if interval <= 0:
        raise ValueError("interval must be greater than 0")

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    last_error: Optional[BaseException] = None
    attempts = 0

    while True:
        attempts += 1
        try:
            result = condition()
            if inspect.isawaitable(result):
                result = await asyncio.wait_for(result, timeout=max(deadline - loop.time(), 0))
            if result is not False:
                logger.debug("Condition met after %d attempt(s)", attempts)
                return
        except asyncio.TimeoutError as exc:
            if loop.time() >= deadline:
                break
            last_error = exc
        except Exception as exc:
            last_error = exc

        remaining = deadline - loop.time()
        if remaining <= 0:
            break
        await asyncio.sleep(min(interval, remaining))

    logger.debug("Condition not met after %d attempt(s): %s", attempts, last_error)
    error = PollTimeoutError(timeout, last_error)
    if last_error is not None:
        raise error from last_error
    raise error
