"""
Service account token acquisition for authenticating against the Prometheus query API, using the Kubernetes TokenRequest API through ``CoreV1Api``.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from kubernetes import client
from kubernetes.client.rest import ApiException
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from config import config
from services.common.http_client import clamp_max
from services.common.kube_client import (
    TransportError,
    build_api_client,
    describe_api_exception,
    is_transient_api_exception,
)
from services.monitoring.polling import poll

logger = logging.getLogger(__name__)

TOKEN_EXPIRATION = timedelta(hours=12)


class TokenRequestError(Exception):
    pass


def _as_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def request_service_account_token(
    namespace: str,
    name: str,
    *,
    core_api: Optional[client.CoreV1Api] = None,
    interval: float = 1.0,
    timeout: float = 60.0,
) -> str:
    """Request a token for service account ``namespace/name`` valid for at least 12h.

    Retries until the API server hands out a token whose expiry is not shorter
    than requested; the API server may clamp expirations.
    """
    if core_api is None:
        core_api = client.CoreV1Api(await asyncio.to_thread(build_api_client))

    body = client.AuthenticationV1TokenRequest(
        spec=client.V1TokenRequestSpec(
            audiences=[],
            expiration_seconds=int((TOKEN_EXPIRATION + timedelta(minutes=1)).total_seconds()),
        ),
    )
    minimum_expiry = datetime.now(timezone.utc) + TOKEN_EXPIRATION
    issued: dict = {}

    @retry(
        retry=retry_if_exception(is_transient_api_exception),
        stop=stop_after_attempt(config.MAX_RETRIES + 1),
        wait=wait_exponential(multiplier=config.RETRY_BACKOFF, max=config.RETRY_MAX_BACKOFF),
        reraise=True,
    )
    async def create_token() -> client.AuthenticationV1TokenRequest:
        return await asyncio.to_thread(
            core_api.create_namespaced_service_account_token,
            name,
            namespace,
            body,
            _request_timeout=config.DEFAULT_TIMEOUT,
        )

    async def check() -> None:
        try:
            response = await create_token()
        except ApiException as exc:
            raise TokenRequestError(
                f"token request for {namespace}/{name} failed with status {exc.status} "
                f"({clamp_max(describe_api_exception(exc))!r})"
            ) from exc
        except TransportError as exc:
            raise TokenRequestError(f"token request for {namespace}/{name} failed: {exc}") from exc
        status = response.status
        expires_at = _as_utc(status.expiration_timestamp if status else None)
        if expires_at < minimum_expiry:
            raise TokenRequestError(f"expiration too short: {expires_at.isoformat()} < {minimum_expiry.isoformat()}")
        issued["token"] = status.token or ""

    await poll(interval, timeout, check)

    logger.info("Obtained service account token for %s/%s", namespace, name)
    return issued["token"]
