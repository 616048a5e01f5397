"""End-to-end flows through the HTTP resource client against a fake API server."""

import json
from typing import Dict, List, Tuple

import httpx
import pytest
import pytest_asyncio

from argonaut.errors import NotFoundError
from argonaut.resources.kubeconfig import ClusterCredentials
from argonaut.resources.kubernetes import KubernetesResourceClient
from argonaut.service import WorkflowService
from argonaut.submission import TEMPLATE_LABEL
from conftest import raw_pod, raw_template, raw_workflow

ARGO = "/apis/argoproj.io/v1alpha1"


class FakeApiServer:
    """Serves canned documents by path and records every request."""

    def __init__(self) -> None:
        self.documents: Dict[str, dict] = {}
        self.lists: Dict[str, List[dict]] = {}
        self.logs: Dict[str, str] = {}
        self.failing: set = set()
        self.requests: List[Tuple[str, str]] = []
        self._created = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append((request.method, path))
        if path in self.failing:
            return httpx.Response(503, json={"kind": "Status", "message": "etcd timeout"})
        if request.method == "POST":
            body = json.loads(request.content)
            self._created += 1
            body["metadata"]["name"] = f"{body['metadata']['generateName']}abc{self._created:02d}"
            body["metadata"]["namespace"] = "ci"
            return httpx.Response(201, json=body)
        if path in self.logs:
            return httpx.Response(200, text=self.logs[path])
        if path in self.lists:
            return httpx.Response(200, json={"kind": "List", "items": self.lists[path]})
        if path in self.documents:
            return httpx.Response(200, json=self.documents[path])
        return httpx.Response(
            404, json={"kind": "Status", "reason": "NotFound", "message": f"{path} not found"}
        )


@pytest.fixture
def api():
    server = FakeApiServer()
    server.lists[f"{ARGO}/namespaces/ci/workflows"] = [
        raw_workflow("flow-1", "Running"),
        raw_workflow("flow-2", "Succeeded"),
        raw_workflow("flow-3", "Failed"),
    ]
    template = raw_template("build-template", parameters=[{"name": "branch", "value": "develop"}])
    server.documents[f"{ARGO}/namespaces/ci/workflowtemplates/build-template"] = template
    server.lists[f"{ARGO}/namespaces/ci/workflowtemplates"] = [template]
    server.lists[f"{ARGO}/clusterworkflowtemplates"] = []
    return server


@pytest_asyncio.fixture
async def service(api, config):
    client = KubernetesResourceClient(
        ClusterCredentials(server="https://k8s.example.com", token="t"),
        transport=httpx.MockTransport(api.handler),
    )
    async with WorkflowService(config, client) as svc:
        yield svc


@pytest.mark.asyncio
async def test_statistics_over_listed_workflows(service):
    stats = await service.get_statistics("ci")

    assert stats.model_dump() == {
        "total": 3,
        "running": 1,
        "succeeded": 1,
        "failed": 1,
        "pending": 0,
    }


@pytest.mark.asyncio
async def test_missing_workflow_is_not_found(service):
    with pytest.raises(NotFoundError) as excinfo:
        await service.get_workflow("missing-flow", "ci")

    assert excinfo.value.http_status == 404


@pytest.mark.asyncio
async def test_submit_from_template(service, api):
    workflow = await service.submit_workflow("build-template", {"branch": "main"}, "ci")

    assert workflow.name.startswith("build-template-")
    assert workflow.metadata.labels[TEMPLATE_LABEL] == "build-template"
    assert [(p.name, p.value) for p in workflow.spec.arguments] == [("branch", "main")]
    assert api.requests[-1] == ("POST", f"{ARGO}/namespaces/ci/workflows")


@pytest.mark.asyncio
async def test_logs_use_cluster_path_without_engine(service, api):
    api.lists["/api/v1/namespaces/ci/pods"] = [
        raw_pod("flow-1-111", "flow-1", "flow-1.build", "2024-05-01T10:00:00Z")
    ]
    api.logs["/api/v1/namespaces/ci/pods/flow-1-111/log"] = "hello from build\n"

    logs = await service.get_workflow_logs("flow-1", "ci")

    assert logs == "hello from build"
    assert ("GET", "/api/v1/namespaces/ci/pods") in api.requests
    assert ("GET", "/api/v1/namespaces/ci/pods/flow-1-111/log") in api.requests
    assert not any("/log" in path and path.startswith(ARGO) for _, path in api.requests)


@pytest.mark.asyncio
async def test_cluster_template_failure_keeps_namespaced_templates(service, api):
    api.failing.add(f"{ARGO}/clusterworkflowtemplates")

    catalog = await service.list_all_templates("ci")

    assert [t.name for t in catalog.templates] == ["build-template"]
    assert catalog.cluster_templates == []
