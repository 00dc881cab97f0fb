"""
Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import pytest
import yaml

from tests._env import ensure_test_env
ensure_test_env()

from models.management.relabel import RelabelConfig, RelabelDocument, RelabelDocumentSpec
from models.management.rules import ObjectMeta
from services.stores import (
    ALERT_RELABEL_CONFIGS,
    FileResourceStore,
    ResourceConflictError,
    ResourceNotFoundError,
    ResourceStoreError,
)


def _document(resource_version=None):
    return RelabelDocument(
        metadata=ObjectMeta(name="arc1", namespace="ns", resource_version=resource_version),
        spec=RelabelDocumentSpec(configs=[RelabelConfig(source_labels=["alertname"], regex="Watchdog", action="Drop")]),
    )


@pytest.mark.asyncio
async def test_create_writes_manifest(tmp_path):
    store = FileResourceStore(ALERT_RELABEL_CONFIGS, str(tmp_path))
    created = await store.create_or_update(_document())

    assert created.metadata.resource_version == "1"
    manifest = yaml.safe_load((tmp_path / "alertrelabelconfigs" / "ns" / "arc1.yaml").read_text())
    assert manifest["apiVersion"] == "monitoring.openshift.io/v1"
    assert manifest["kind"] == "AlertRelabelConfig"
    assert manifest["spec"]["configs"][0]["sourceLabels"] == ["alertname"]

    with pytest.raises(ResourceConflictError):
        await store.create_or_update(_document())


@pytest.mark.asyncio
async def test_update_requires_current_version(tmp_path):
    store = FileResourceStore(ALERT_RELABEL_CONFIGS, str(tmp_path))

    with pytest.raises(ResourceNotFoundError):
        await store.create_or_update(_document(resource_version="1"))

    await store.create_or_update(_document())
    updated = await store.create_or_update(_document(resource_version="1"))
    assert updated.metadata.resource_version == "2"

    with pytest.raises(ResourceConflictError):
        await store.create_or_update(_document(resource_version="1"))


@pytest.mark.asyncio
async def test_hand_written_manifest_starts_at_version_zero(tmp_path):
    path = tmp_path / "alertrelabelconfigs" / "ns" / "arc1.yaml"
    path.parent.mkdir(parents=True)
    path.write_text(
        "apiVersion: monitoring.openshift.io/v1\n"
        "kind: AlertRelabelConfig\n"
        "metadata:\n"
        "  name: arc1\n"
        "  namespace: ns\n"
        "spec:\n"
        "  configs: []\n"
    )
    store = FileResourceStore(ALERT_RELABEL_CONFIGS, str(tmp_path))

    fetched = await store.get("ns", "arc1")
    assert fetched.metadata.resource_version == "0"
    assert [doc.metadata.name for doc in await store.list()] == ["arc1"]
    assert await store.list("other") == []


@pytest.mark.asyncio
async def test_delete_checks_version(tmp_path):
    store = FileResourceStore(ALERT_RELABEL_CONFIGS, str(tmp_path))
    await store.create_or_update(_document())

    with pytest.raises(ResourceConflictError):
        await store.delete("ns", "arc1", "7")
    await store.delete("ns", "arc1", "1")

    with pytest.raises(ResourceNotFoundError):
        await store.get("ns", "arc1")
    with pytest.raises(ResourceNotFoundError):
        await store.delete("ns", "arc1")


@pytest.mark.asyncio
async def test_malformed_manifest_is_a_store_error(tmp_path):
    path = tmp_path / "alertrelabelconfigs" / "ns" / "broken.yaml"
    path.parent.mkdir(parents=True)
    path.write_text("- just\n- a list\n")
    store = FileResourceStore(ALERT_RELABEL_CONFIGS, str(tmp_path))

    with pytest.raises(ResourceStoreError):
        await store.get("ns", "broken")


@pytest.mark.asyncio
async def test_non_numeric_resource_version_is_a_store_error(tmp_path):
    path = tmp_path / "alertrelabelconfigs" / "ns" / "arc1.yaml"
    path.parent.mkdir(parents=True)
    path.write_text(yaml.safe_dump({
        "metadata": {"name": "arc1", "namespace": "ns", "resourceVersion": "abc"},
        "spec": {"configs": []},
    }))
    store = FileResourceStore(ALERT_RELABEL_CONFIGS, str(tmp_path))

    with pytest.raises(ResourceStoreError, match="non-numeric resourceVersion"):
        await store.create_or_update(_document(resource_version="abc"))
    assert yaml.safe_load(path.read_text())["metadata"]["resourceVersion"] == "abc"


@pytest.mark.asyncio
async def test_manifest_failing_validation_surfaces_as_upstream_error(tmp_path):
    from models.management.rules import AlertingRuleId
    from services.management.alerting_rule_crud import AlertingRuleManager
    from services.management.errors import UpstreamError
    from services.stores import PROMETHEUS_RULES

    path = tmp_path / "prometheusrules" / "ns" / "pr1.yaml"
    path.parent.mkdir(parents=True)
    path.write_text(yaml.safe_dump({
        "metadata": {"name": "pr1", "namespace": "ns"},
        "spec": {"groups": [{"name": "g", "rules": [{"alert": "A", "expr": "up", "labels": {"severity": 1}}]}]},
    }))
    store = FileResourceStore(PROMETHEUS_RULES, str(tmp_path))

    with pytest.raises(ResourceStoreError, match="malformed"):
        await store.get("ns", "pr1")

    manager = AlertingRuleManager(store)
    with pytest.raises(UpstreamError) as exc_info:
        await manager.get_alerting_rule(AlertingRuleId(namespace="ns", document_name="pr1", rule_name="A", severity="1"))
    assert isinstance(exc_info.value.__cause__, ResourceStoreError)
