"""
Shared HTTP client utilities for the Prometheus query API: pooled limits, bearer-token authentication and an injectable transport so the client can be exercised without a network.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Dict, Optional, Union

import httpx

from config import config


def bearer_headers(token: Optional[str]) -> Dict[str, str]:
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def create_async_client(
    timeout_seconds: float,
    *,
    base_url: str = "",
    token: Optional[str] = None,
    verify: Union[bool, str] = True,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        headers=bearer_headers(token),
        verify=verify,
        transport=transport,
        timeout=httpx.Timeout(timeout_seconds),
        limits=httpx.Limits(
            max_connections=config.HTTP_CLIENT_MAX_CONNECTIONS,
            max_keepalive_connections=config.HTTP_CLIENT_MAX_KEEPALIVE_CONNECTIONS,
            keepalive_expiry=config.HTTP_CLIENT_KEEPALIVE_EXPIRY,
        ),
    )


def clamp_max(text: str, max_length: int = 1000) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
