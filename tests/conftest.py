"""Shared fixtures: raw Argo documents and in-memory collaborators."""

from __future__ import annotations

from typing import Any, Dict, Optional

import pytest

from argonaut.config import ArgonautConfig, ArgoServerConfig
from argonaut.resources import WORKFLOW_TEMPLATES, WORKFLOWS, InMemoryResourceClient


def raw_workflow(
    name: str,
    phase: Optional[str] = "Running",
    namespace: str = "ci",
    **extra: Any,
) -> Dict[str, Any]:
    """A trimmed-down Workflow document as returned by the API server."""
    status: Dict[str, Any] = {"startedAt": "2024-05-01T10:00:00Z"}
    if phase is not None:
        status["phase"] = phase
    if phase in ("Succeeded", "Failed", "Error"):
        status["finishedAt"] = "2024-05-01T10:02:03Z"
    document = {
        "apiVersion": "argoproj.io/v1alpha1",
        "kind": "Workflow",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": f"uid-{name}",
            "creationTimestamp": "2024-05-01T09:59:58Z",
            "labels": {"app": "build"},
        },
        "spec": {"entrypoint": "main", "templates": [{"name": "main"}]},
        "status": status,
    }
    document.update(extra)
    return document


def raw_template(name: str, namespace: str = "ci", parameters=None) -> Dict[str, Any]:
    return {
        "apiVersion": "argoproj.io/v1alpha1",
        "kind": "WorkflowTemplate",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "entrypoint": "build",
            "arguments": {"parameters": parameters if parameters is not None else []},
            "templates": [
                {"name": "build", "container": {"image": "alpine:3", "command": ["make"]}}
            ],
        },
    }


def raw_pod(name: str, workflow: str, node_name: str, created: str, namespace: str = "ci"):
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "creationTimestamp": created,
            "labels": {"workflows.argoproj.io/workflow": workflow},
            "annotations": {
                "workflows.argoproj.io/node-name": node_name,
                "workflows.argoproj.io/node-id": name,
            },
        },
    }


@pytest.fixture
def config() -> ArgonautConfig:
    return ArgonautConfig(namespace="ci", backend="inmemory")


@pytest.fixture
def engine_config() -> ArgonautConfig:
    return ArgonautConfig(
        namespace="ci",
        backend="inmemory",
        argo_server=ArgoServerConfig(base_url="https://argo.example.com", token="secret"),
    )


@pytest.fixture
def resources() -> InMemoryResourceClient:
    return InMemoryResourceClient()


@pytest.fixture
def seeded_resources(resources: InMemoryResourceClient) -> InMemoryResourceClient:
    for name, phase in (("flow-1", "Running"), ("flow-2", "Succeeded"), ("flow-3", "Failed")):
        resources.add(WORKFLOWS, raw_workflow(name, phase))
    resources.add(
        WORKFLOW_TEMPLATES,
        raw_template("build-template", parameters=[{"name": "branch", "value": "develop"}]),
    )
    return resources
