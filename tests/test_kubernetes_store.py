"""
Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import copy

import pytest
from kubernetes.client.rest import ApiException
from urllib3.exceptions import MaxRetryError

from tests._env import ensure_test_env
ensure_test_env()

from config import config
from models.management.rules import ObjectMeta, Rule, RuleDocument, RuleDocumentSpec, RuleGroup
from services.common.kube_client import build_api_client
from services.stores import (
    PROMETHEUS_RULES,
    KubernetesResourceStore,
    ResourceConflictError,
    ResourceNotFoundError,
    ResourceStoreError,
)


class FakeApiClient:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class FakeCustomObjectsApi:
    """Just enough of ``CustomObjectsApi`` to exercise conditional writes."""

    def __init__(self):
        self.api_client = FakeApiClient()
        self.objects = {}
        self.version = 100
        self.calls = []
        self.failures = []

    def _record(self, method, *args, **kwargs):
        self.calls.append((method, args, kwargs))
        if self.failures:
            raise self.failures.pop(0)

    def _bump(self, body):
        body = copy.deepcopy(body)
        self.version += 1
        body["metadata"]["resourceVersion"] = str(self.version)
        return body

    def _current(self, name):
        if name not in self.objects:
            raise ApiException(status=404, reason="Not Found")
        return self.objects[name]

    def list_namespaced_custom_object(self, group, version, namespace, plural, **kwargs):
        self._record("list_namespaced_custom_object", group, version, namespace, plural, **kwargs)
        # list items come back without type meta
        items = [{k: v for k, v in obj.items() if k not in ("apiVersion", "kind")} for obj in self.objects.values()]
        return {"kind": "PrometheusRuleList", "items": copy.deepcopy(items)}

    def list_cluster_custom_object(self, group, version, plural, **kwargs):
        self._record("list_cluster_custom_object", group, version, plural, **kwargs)
        return {"items": copy.deepcopy(list(self.objects.values()))}

    def get_namespaced_custom_object(self, group, version, namespace, plural, name, **kwargs):
        self._record("get_namespaced_custom_object", group, version, namespace, plural, name, **kwargs)
        return copy.deepcopy(self._current(name))

    def create_namespaced_custom_object(self, group, version, namespace, plural, body, **kwargs):
        self._record("create_namespaced_custom_object", group, version, namespace, plural, body, **kwargs)
        name = body["metadata"]["name"]
        if name in self.objects:
            raise ApiException(status=409, reason="AlreadyExists")
        self.objects[name] = self._bump(body)
        return copy.deepcopy(self.objects[name])

    def replace_namespaced_custom_object(self, group, version, namespace, plural, name, body, **kwargs):
        self._record("replace_namespaced_custom_object", group, version, namespace, plural, name, body, **kwargs)
        current = self._current(name)
        if body["metadata"].get("resourceVersion") != current["metadata"]["resourceVersion"]:
            raise ApiException(status=409, reason="Conflict")
        self.objects[name] = self._bump(body)
        return copy.deepcopy(self.objects[name])

    def delete_namespaced_custom_object(self, group, version, namespace, plural, name, body=None, **kwargs):
        self._record("delete_namespaced_custom_object", group, version, namespace, plural, name, body=body, **kwargs)
        current = self._current(name)
        preconditions = body.preconditions if body is not None else None
        if preconditions is not None and preconditions.resource_version != current["metadata"]["resourceVersion"]:
            raise ApiException(status=409, reason="Conflict")
        del self.objects[name]
        return {"status": "Success"}


def _document(name="pr1", resource_version=None):
    return RuleDocument(
        metadata=ObjectMeta(name=name, namespace="ns", resource_version=resource_version),
        spec=RuleDocumentSpec(groups=[RuleGroup(name="g", rules=[Rule(alert="A", expr="up == 0", duration="5m")])]),
    )


@pytest.fixture
def api():
    return FakeCustomObjectsApi()


@pytest.fixture
def store(api):
    return KubernetesResourceStore(PROMETHEUS_RULES, api=api)


@pytest.mark.asyncio
async def test_create_sends_document_with_type_meta(store, api):
    created = await store.create_or_update(_document())

    assert created.metadata.resource_version == "101"
    method, args, kwargs = api.calls[-1]
    assert method == "create_namespaced_custom_object"
    assert args[:4] == ("monitoring.coreos.com", "v1", "ns", "prometheusrules")
    payload = args[4]
    assert payload["apiVersion"] == "monitoring.coreos.com/v1"
    assert payload["kind"] == "PrometheusRule"
    assert payload["spec"]["groups"][0]["rules"][0]["for"] == "5m"
    assert "resourceVersion" not in payload["metadata"]
    assert kwargs["_request_timeout"] == config.DEFAULT_TIMEOUT


@pytest.mark.asyncio
async def test_create_of_existing_name_conflicts(store):
    await store.create_or_update(_document())
    with pytest.raises(ResourceConflictError):
        await store.create_or_update(_document())


@pytest.mark.asyncio
async def test_update_replaces_conditionally_on_resource_version(store, api):
    created = await store.create_or_update(_document())

    updated = await store.create_or_update(_document(resource_version=created.metadata.resource_version))
    assert updated.metadata.resource_version == "102"
    assert api.calls[-1][0] == "replace_namespaced_custom_object"

    with pytest.raises(ResourceConflictError):
        await store.create_or_update(_document(resource_version=created.metadata.resource_version))


@pytest.mark.asyncio
async def test_get_and_list(store, api):
    await store.create_or_update(_document("pr1"))
    await store.create_or_update(_document("pr2"))

    fetched = await store.get("ns", "pr1")
    assert fetched.groups[0].rules[0].duration == "5m"
    listed = await store.list("ns")
    assert [doc.metadata.name for doc in listed] == ["pr1", "pr2"]
    assert {doc.kind for doc in listed} == {"PrometheusRule"}

    await store.list()
    assert api.calls[-1][0] == "list_cluster_custom_object"

    with pytest.raises(ResourceNotFoundError):
        await store.get("ns", "missing")


@pytest.mark.asyncio
async def test_delete_sends_preconditions(store, api):
    created = await store.create_or_update(_document())

    with pytest.raises(ResourceConflictError):
        await store.delete("ns", "pr1", "1")
    await store.delete("ns", "pr1", created.metadata.resource_version)

    options = api.calls[-1][2]["body"]
    assert options.preconditions.resource_version == created.metadata.resource_version
    assert api.objects == {}
    with pytest.raises(ResourceNotFoundError):
        await store.delete("ns", "pr1")


@pytest.mark.asyncio
async def test_unconditional_delete_has_no_preconditions(store, api):
    await store.create_or_update(_document())
    await store.delete("ns", "pr1")
    assert api.calls[-1][2]["body"].preconditions is None


@pytest.mark.asyncio
async def test_server_errors_surface_as_store_errors(store, api):
    api.failures.append(ApiException(status=503, reason="Service Unavailable"))
    with pytest.raises(ResourceStoreError) as exc_info:
        await store.get("ns", "pr1")
    assert not isinstance(exc_info.value, (ResourceNotFoundError, ResourceConflictError))
    assert exc_info.value.name == "pr1"
    assert "503" in str(exc_info.value)


@pytest.mark.asyncio
async def test_reads_retry_transient_errors(store, api, monkeypatch):
    monkeypatch.setattr(config, "MAX_RETRIES", 2)
    monkeypatch.setattr(config, "RETRY_BACKOFF", 0)
    await store.create_or_update(_document())
    api.failures.extend([ApiException(status=503, reason="Service Unavailable"), ApiException(status=500)])

    fetched = await store.get("ns", "pr1")
    assert fetched.metadata.name == "pr1"
    assert [c[0] for c in api.calls].count("get_namespaced_custom_object") == 3


@pytest.mark.asyncio
async def test_not_found_is_not_retried(store, api, monkeypatch):
    monkeypatch.setattr(config, "MAX_RETRIES", 3)
    with pytest.raises(ResourceNotFoundError):
        await store.get("ns", "missing")
    assert len(api.calls) == 1


@pytest.mark.asyncio
async def test_writes_are_not_retried(store, api, monkeypatch):
    monkeypatch.setattr(config, "MAX_RETRIES", 3)
    api.failures.append(ApiException(status=503))
    with pytest.raises(ResourceStoreError):
        await store.create_or_update(_document())
    assert len(api.calls) == 1


@pytest.mark.asyncio
async def test_transport_errors_surface_as_store_errors(store, api):
    api.failures.append(MaxRetryError(None, "/apis", "connection refused"))
    with pytest.raises(ResourceStoreError):
        await store.create_or_update(_document())


@pytest.mark.asyncio
async def test_non_object_response_surfaces_as_store_error(store, api, monkeypatch):
    monkeypatch.setattr(api, "get_namespaced_custom_object", lambda *args, **kwargs: "<html>proxy error</html>")
    with pytest.raises(ResourceStoreError, match="not an object"):
        await store.get("ns", "pr1")


@pytest.mark.asyncio
async def test_close_releases_api_client(store, api):
    await store.close()
    assert api.api_client.closed


def test_explicit_api_url_and_token_build_bearer_client():
    api_client = build_api_client()
    try:
        assert api_client.configuration.host == "https://kube.test"
        assert api_client.configuration.api_key == {"authorization": "Bearer test-kube-token"}
        assert api_client.configuration.verify_ssl is True
    finally:
        api_client.close()


@pytest.mark.asyncio
async def test_missing_kubeconfig_surfaces_as_store_error(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "KUBERNETES_API_URL", None)
    monkeypatch.setattr(config, "KUBERNETES_IN_CLUSTER", False)
    monkeypatch.setattr(config, "KUBECONFIG", str(tmp_path / "missing-kubeconfig"))

    store = KubernetesResourceStore(PROMETHEUS_RULES)
    with pytest.raises(ResourceStoreError, match="unable to load Kubernetes configuration"):
        await store.get("ns", "pr1")
