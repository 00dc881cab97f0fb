"""
Kubernetes API client construction shared by the resource store and the service account token request. An explicit API server URL plus bearer token wins; otherwise the in-cluster service account or a kubeconfig file is loaded.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging

from kubernetes import client
from kubernetes import config as kube_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError as TransportError

from config import config

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# Errors worth retrying on idempotent reads; 4xx ApiExceptions still fail fast in with_retry.
RETRYABLE_API_ERRORS = (ApiException, TransportError)


class KubernetesConfigError(Exception):
    pass


def build_api_client() -> client.ApiClient:
    """Return an ``ApiClient`` for the configured cluster.

    Blocking: loading kubeconfig reads files, so call it through ``asyncio.to_thread``.
    """
    if config.KUBERNETES_API_URL and config.KUBERNETES_TOKEN:
        configuration = client.Configuration()
        configuration.host = config.KUBERNETES_API_URL.rstrip("/")
        configuration.verify_ssl = config.KUBERNETES_VERIFY_TLS
        if config.KUBERNETES_CA_CERT:
            configuration.ssl_ca_cert = config.KUBERNETES_CA_CERT
        configuration.api_key = {"authorization": f"Bearer {config.KUBERNETES_TOKEN}"}
        logger.info("Using Kubernetes API server %s with a bearer token", configuration.host)
        return client.ApiClient(configuration)

    try:
        if config.KUBERNETES_IN_CLUSTER:
            kube_config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes configuration")
        else:
            kube_config.load_kube_config(config_file=config.KUBECONFIG, context=config.KUBE_CONTEXT)
            logger.info("Loaded kubeconfig (context %s)", config.KUBE_CONTEXT or "current")
    except (ConfigException, OSError) as exc:
        raise KubernetesConfigError(f"unable to load Kubernetes configuration: {exc}") from exc
    return client.ApiClient()


def is_transient_api_exception(exc: BaseException) -> bool:
    if isinstance(exc, ApiException):
        return exc.status in TRANSIENT_STATUS_CODES
    return isinstance(exc, TransportError)


def describe_api_exception(exc: ApiException) -> str:
    detail = exc.body or exc.reason or ""
    if isinstance(detail, bytes):
        detail = detail.decode("utf-8", errors="replace")
    return str(detail)
