"""
Client for the Prometheus (or Thanos querier) HTTP API, plus wait helpers that poll it until a query, the rules endpoint, or the targets endpoint reflects an expected state. The wait helpers are what verification code uses after writing an alerting rule, since rule reloads are eventually consistent.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from config import config
from middleware.resilience import with_retry
from models.monitoring.prometheus import PrometheusRule, RulesResponse
from services.common.http_client import clamp_max, create_async_client
from services.monitoring.polling import poll

logger = logging.getLogger(__name__)


class PrometheusQueryError(Exception):
    pass


def _parse_json(body: str) -> Dict[str, Any]:
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise PrometheusQueryError(f"failed to parse JSON response: {exc}") from exc
    if not isinstance(payload, dict):
        raise PrometheusQueryError("unexpected JSON response shape")
    return payload


def _result_vector(body: str) -> List[Any]:
    result = (_parse_json(body).get("data") or {}).get("result")
    if not isinstance(result, list):
        raise PrometheusQueryError("response has no data.result array")
    return result


def first_value_from_query(body: str) -> float:
    """Value of the only timeseries in a query response; more or fewer than one is an error."""
    result = _result_vector(body)
    if len(result) != 1:
        raise PrometheusQueryError(f"expected body to contain single timeseries but got {len(result)}")
    value = (result[0] or {}).get("value")
    if not isinstance(value, list) or len(value) < 2:
        raise PrometheusQueryError("timeseries has no value pair")
    try:
        return float(value[1])
    except (TypeError, ValueError) as exc:
        raise PrometheusQueryError(f"failed to parse query value: {exc}") from exc


def result_size_from_query(body: str) -> int:
    return len(_result_vector(body))


class PrometheusClient:
    def __init__(
        self,
        base_url: str = config.PROMETHEUS_URL,
        token: Optional[str] = config.PROMETHEUS_TOKEN,
        *,
        poll_interval: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval or config.POLL_INTERVAL_SECONDS
        self._client = create_async_client(
            config.DEFAULT_TIMEOUT,
            base_url=self.base_url,
            token=token,
            verify=config.PROMETHEUS_VERIFY_TLS,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    @with_retry()
    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None, expected_status: int = 200) -> str:
        response = await self._client.get(path, params=params)
        if response.status_code >= 500 and expected_status < 500:
            response.raise_for_status()
        if response.status_code != expected_status:
            raise PrometheusQueryError(
                f"{path}: unexpected status code response, want {expected_status}, "
                f"got {response.status_code} ({clamp_max(response.text)!r})"
            )
        return response.text

    async def query(self, expr: str, expected_status: int = 200) -> str:
        return await self._get("/api/v1/query", params={"query": expr}, expected_status=expected_status)

    async def targets(self) -> str:
        return await self._get("/api/v1/targets")

    async def rules(self) -> str:
        return await self._get("/api/v1/rules")

    async def label_values(self, label: str) -> str:
        return await self._get(f"/api/v1/label/{label}/values")

    async def list_alerting_rules(self, alert_name: str) -> List[PrometheusRule]:
        """Evaluated alerting rules named ``alert_name``, flattened across all loaded groups."""
        body = await self._get("/api/v1/rules", params={"type": "alert", "rule_name[]": alert_name})
        try:
            response = RulesResponse.model_validate(_parse_json(body))
        except ValueError as exc:
            raise PrometheusQueryError(f"failed to parse rules response: {exc}") from exc
        return [rule for group in response.data.groups for rule in group.rules]

    async def wait_for_query_return(
        self,
        timeout: float,
        query: str,
        validate: Callable[[float], None],
    ) -> None:
        """Poll ``query`` until its single result passes ``validate`` (which raises on mismatch)."""

        async def check() -> None:
            try:
                body = await self.query(query)
            except (PrometheusQueryError, httpx.HTTPError) as exc:
                raise PrometheusQueryError(f"error getting response for query {query!r}: {exc}") from exc
            try:
                value = first_value_from_query(body)
            except PrometheusQueryError as exc:
                raise PrometheusQueryError(
                    f"error getting first value from response body {clamp_max(body)!r} for query {query!r}: {exc}"
                ) from exc
            try:
                validate(value)
            except Exception as exc:
                raise PrometheusQueryError(
                    f"error validating response body {clamp_max(body)!r} for query {query!r}: {exc}"
                ) from exc

        await poll(self.poll_interval, timeout, check)

    async def wait_for_query_return_one(self, timeout: float, query: str) -> None:
        def validate(value: float) -> None:
            if value != 1:
                raise ValueError(f"expected value to equal 1 but got {value}")

        await self.wait_for_query_return(timeout, query, validate)

    async def wait_for_query_return_greater_equal_one(self, timeout: float, query: str) -> None:
        def validate(value: float) -> None:
            if value < 1:
                raise ValueError(f"expected value to equal or greater than 1 but got {value}")

        await self.wait_for_query_return(timeout, query, validate)

    async def wait_for_query_return_empty(self, timeout: float, query: str) -> None:
        async def check() -> None:
            try:
                body = await self.query(query)
            except (PrometheusQueryError, httpx.HTTPError) as exc:
                raise PrometheusQueryError(f"error getting response for query {query!r}: {exc}") from exc
            size = result_size_from_query(body)
            if size > 0:
                raise PrometheusQueryError(f"expecting empty response but got {size} results for query {query}")

        await poll(self.poll_interval, timeout, check)

    async def wait_for_rules_return(self, timeout: float, validate: Callable[[str], None]) -> None:
        await self._wait_for_body(timeout, self.rules, validate, "rules")

    async def wait_for_targets_return(self, timeout: float, validate: Callable[[str], None]) -> None:
        await self._wait_for_body(timeout, self.targets, validate, "targets")

    async def _wait_for_body(self, timeout: float, fetch, validate: Callable[[str], None], what: str) -> None:
        async def check() -> None:
            try:
                body = await fetch()
            except (PrometheusQueryError, httpx.HTTPError) as exc:
                raise PrometheusQueryError(f"error getting {what}: {exc}") from exc
            try:
                validate(body)
            except Exception as exc:
                raise PrometheusQueryError(f"error validating response body {clamp_max(body)!r}: {exc}") from exc

        await poll(self.poll_interval, timeout, check)
