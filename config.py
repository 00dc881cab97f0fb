"""
Configuration management for the application, loading settings from environment variables with support for defaults, type conversion, and validation. This module defines a `Config` class that encapsulates all configuration options for the service, including server settings, the backing resource store, Kubernetes and Prometheus endpoints, retry and timeout tuning, and the reserved ownership constants shared between every writer and reader of managed documents.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
import os
from typing import Optional, List

logger = logging.getLogger(__name__)


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _to_list(value: Optional[str], default: Optional[List[str]] = None) -> List[str]:
    if value is None:
        return default or []
    parsed = [item.strip() for item in value.split(",") if item.strip()]
    return parsed if parsed else (default or [])


def _is_weak_secret(value: Optional[str]) -> bool:
    normalized = str(value or "").strip().lower()
    if not normalized:
        return True
    weak_markers = (
        "changeme",
        "replace_with",
        "example",
        "default",
        "secret",
        "password",
    )
    return any(marker in normalized for marker in weak_markers)


def _read_file(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    try:
        with open(path) as f:
            return f.read().strip() or None
    except OSError:
        return None


def _env_name() -> str:
    return (os.getenv("APP_ENV") or os.getenv("ENVIRONMENT") or "development").strip().lower()


def _is_production_env() -> bool:
    return _env_name() in {"prod", "production"}


class Config:
    ALLOWED_STORE_BACKENDS = {"kubernetes", "memory", "file"}

    def __init__(self) -> None:
        self.APP_ENV: str = _env_name()
        self.IS_PRODUCTION: bool = _is_production_env()

        # Server configuration
        self.HOST: str = os.getenv("HOST", "127.0.0.1")
        self.PORT: int = int(os.getenv("PORT", "4321"))
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")
        self.ENABLE_API_DOCS: bool = _to_bool(os.getenv("ENABLE_API_DOCS"), default=not self.IS_PRODUCTION)

        # Shared protocol with every other version of this controller. Changing
        # any of these makes previously written documents look foreign.
        self.RESOURCE_OWNER_LABEL_KEY: str = os.getenv("RESOURCE_OWNER_LABEL_KEY", "alertkeeper.io/owner")
        self.RESOURCE_OWNER_LABEL_VALUE: str = os.getenv("RESOURCE_OWNER_LABEL_VALUE", "alert-management")
        self.MANAGED_RULE_GROUP_NAME: str = os.getenv("MANAGED_RULE_GROUP_NAME", "alert-management")

        # Resource store
        self.STORE_BACKEND: str = os.getenv("STORE_BACKEND", "kubernetes").strip().lower()
        self.FILE_STORE_PATH: str = os.getenv("FILE_STORE_PATH", "./data/documents")
        self.KUBECONFIG: Optional[str] = os.getenv("KUBECONFIG")
        self.KUBE_CONTEXT: Optional[str] = os.getenv("KUBE_CONTEXT")
        self.KUBERNETES_IN_CLUSTER: bool = _to_bool(
            os.getenv("KUBERNETES_IN_CLUSTER"), default=bool(os.getenv("KUBERNETES_SERVICE_HOST"))
        )
        # Explicit API server + bearer token; overrides kubeconfig and in-cluster discovery when both are set
        self.KUBERNETES_API_URL: Optional[str] = os.getenv("KUBERNETES_API_URL")
        self.KUBERNETES_TOKEN: Optional[str] = os.getenv("KUBERNETES_TOKEN")
        self.KUBERNETES_CA_CERT: Optional[str] = os.getenv("KUBERNETES_CA_CERT") or None
        self.KUBERNETES_VERIFY_TLS: bool = _to_bool(os.getenv("KUBERNETES_VERIFY_TLS"), default=True)

        # Remote monitoring query surface
        self.PROMETHEUS_URL: str = os.getenv("PROMETHEUS_URL", "https://prometheus-k8s:9091")
        self.PROMETHEUS_TOKEN_FILE: Optional[str] = os.getenv("PROMETHEUS_TOKEN_FILE")
        self.PROMETHEUS_TOKEN: Optional[str] = os.getenv("PROMETHEUS_TOKEN") or _read_file(self.PROMETHEUS_TOKEN_FILE)
        self.PROMETHEUS_VERIFY_TLS: bool = _to_bool(os.getenv("PROMETHEUS_VERIFY_TLS"), default=False)
        self.POLL_INTERVAL_SECONDS: float = float(os.getenv("POLL_INTERVAL_SECONDS", "5.0"))

        # Request settings
        self.DEFAULT_TIMEOUT: float = float(os.getenv("DEFAULT_TIMEOUT", "30.0"))
        self.OPERATION_TIMEOUT: float = float(os.getenv("OPERATION_TIMEOUT", "60.0"))
        self.MAX_RETRIES: int = int(os.getenv("MAX_RETRIES", "3"))
        self.RETRY_BACKOFF: float = float(os.getenv("RETRY_BACKOFF", "1.0"))
        self.RETRY_MAX_BACKOFF: float = float(os.getenv("RETRY_MAX_BACKOFF", "8.0"))
        self.RETRY_JITTER: float = float(os.getenv("RETRY_JITTER", "0.1"))
        self.CONFLICT_RETRY_ATTEMPTS: int = int(os.getenv("CONFLICT_RETRY_ATTEMPTS", "3"))

        # Shared upstream HTTP client pool tuning
        self.HTTP_CLIENT_MAX_CONNECTIONS: int = int(os.getenv("HTTP_CLIENT_MAX_CONNECTIONS", "100"))
        self.HTTP_CLIENT_MAX_KEEPALIVE_CONNECTIONS: int = int(os.getenv("HTTP_CLIENT_MAX_KEEPALIVE_CONNECTIONS", "40"))
        self.HTTP_CLIENT_KEEPALIVE_EXPIRY: float = float(os.getenv("HTTP_CLIENT_KEEPALIVE_EXPIRY", "30"))

        # Inbound service authentication
        self.SERVICE_TOKEN: Optional[str] = os.getenv("SERVICE_TOKEN")
        self.PUBLIC_PATHS: List[str] = _to_list(os.getenv("PUBLIC_PATHS"), default=["/health", "/ready"])

        self.validate()

    def validate(self) -> None:
        if self.STORE_BACKEND not in self.ALLOWED_STORE_BACKENDS:
            raise ValueError(
                f"Unsupported STORE_BACKEND '{self.STORE_BACKEND}'. Allowed values: {sorted(self.ALLOWED_STORE_BACKENDS)}"
            )

        for key in ("RESOURCE_OWNER_LABEL_KEY", "RESOURCE_OWNER_LABEL_VALUE", "MANAGED_RULE_GROUP_NAME"):
            if not str(getattr(self, key) or "").strip():
                raise ValueError(f"{key} must not be empty")

        if self.CONFLICT_RETRY_ATTEMPTS <= 0:
            raise ValueError("CONFLICT_RETRY_ATTEMPTS must be greater than 0")
        if self.DEFAULT_TIMEOUT <= 0 or self.OPERATION_TIMEOUT <= 0:
            raise ValueError("DEFAULT_TIMEOUT and OPERATION_TIMEOUT must be greater than 0")
        if self.POLL_INTERVAL_SECONDS <= 0:
            raise ValueError("POLL_INTERVAL_SECONDS must be greater than 0")

        if self.IS_PRODUCTION:
            if _is_weak_secret(self.SERVICE_TOKEN):
                raise ValueError("SERVICE_TOKEN must be set to a strong non-placeholder secret in production")
            if self.STORE_BACKEND != "kubernetes":
                raise ValueError("STORE_BACKEND must be 'kubernetes' in production")
        elif self.STORE_BACKEND == "kubernetes" and not (self.KUBERNETES_API_URL and self.KUBERNETES_TOKEN):
            logger.info("Kubernetes client configuration comes from %s", "in-cluster service account" if self.KUBERNETES_IN_CLUSTER else "kubeconfig")


class Constants:
    # HTTP status messages
    STATUS_HEALTHY: str = "Healthy"
    STATUS_SUCCESS: str = "Success"
    STATUS_ERROR: str = "Error"

config = Config()
constants = Constants()
