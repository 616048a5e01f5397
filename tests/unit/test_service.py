"""WorkflowService tests over the in-memory resource client."""

import httpx
import pytest

from argonaut.engine import ArgoServerClient
from argonaut.errors import InvalidInputError, NotFoundError, UnavailableError
from argonaut.models import WorkflowPhase
from argonaut.resources import CLUSTER_WORKFLOW_TEMPLATES, PODS, WORKFLOWS
from argonaut.service import WorkflowService, build_service
from conftest import raw_pod, raw_template, raw_workflow


class FailingResources:
    """Delegates to an in-memory client, failing the named operations."""

    def __init__(self, inner, failing):
        self._inner = inner
        self._failing = failing

    def __getattr__(self, name):
        attr = getattr(self._inner, name)
        if name not in self._failing:
            return attr

        async def fail(kind, *args, **kwargs):
            if kind.plural in self._failing[name]:
                raise UnavailableError(f"{kind.plural} unavailable")
            return await attr(kind, *args, **kwargs)

        return fail


@pytest.mark.asyncio
async def test_list_and_get(config, seeded_resources):
    async with WorkflowService(config, seeded_resources) as service:
        workflows = await service.list_workflows()
        flow = await service.get_workflow("flow-2")

    assert sorted(wf.name for wf in workflows) == ["flow-1", "flow-2", "flow-3"]
    assert flow.status.phase is WorkflowPhase.SUCCEEDED
    assert flow.status.describe()["duration"] == "2m 3s"


@pytest.mark.asyncio
async def test_namespace_argument_overrides_default(config, seeded_resources):
    seeded_resources.add(WORKFLOWS, raw_workflow("other-1", "Running", namespace="other"))
    service = WorkflowService(config, seeded_resources)

    assert [wf.name for wf in await service.list_workflows("other")] == ["other-1"]
    with pytest.raises(NotFoundError):
        await service.get_workflow("other-1")


@pytest.mark.asyncio
async def test_label_selector_filters(config, seeded_resources):
    seeded_resources.add(
        WORKFLOWS,
        raw_workflow("deploy-1", metadata={"name": "deploy-1", "labels": {"app": "deploy"}}),
        namespace="ci",
    )
    service = WorkflowService(config, seeded_resources)

    assert [wf.name for wf in await service.list_workflows(label_selector="app=deploy")] == [
        "deploy-1"
    ]


@pytest.mark.asyncio
async def test_create_workflow(config, resources):
    service = WorkflowService(config, resources)

    created = await service.create_workflow(
        {"metadata": {"generateName": "adhoc-"}, "spec": {"entrypoint": "main"}}
    )

    assert created.name.startswith("adhoc-")
    stored = await resources.get_namespaced(WORKFLOWS, "ci", created.name)
    assert stored["apiVersion"] == "argoproj.io/v1alpha1"
    assert stored["kind"] == "Workflow"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [None, [], {"metadata": {"name": "x"}}, {"spec": "oops"}])
async def test_create_workflow_rejects_bad_bodies(config, resources, body):
    with pytest.raises(InvalidInputError):
        await WorkflowService(config, resources).create_workflow(body)


@pytest.mark.asyncio
async def test_stop_without_engine_sets_shutdown(config, seeded_resources):
    service = WorkflowService(config, seeded_resources)

    stopped = await service.stop_workflow("flow-1")

    assert stopped.spec.extras["shutdown"] == "Stop"
    with pytest.raises(NotFoundError):
        await service.stop_workflow("missing")


@pytest.mark.asyncio
async def test_retry_requires_engine(config, seeded_resources):
    with pytest.raises(InvalidInputError):
        await WorkflowService(config, seeded_resources).retry_workflow("flow-3")


@pytest.mark.asyncio
async def test_retry_and_stop_via_engine(engine_config, seeded_resources):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        return httpx.Response(200, json=raw_workflow("flow-3", "Running"))

    engine = ArgoServerClient(engine_config.argo_server, transport=httpx.MockTransport(handler))
    async with WorkflowService(engine_config, seeded_resources, engine=engine) as service:
        retried = await service.retry_workflow("flow-3")
        await service.stop_workflow("flow-3")

    assert retried.status.phase is WorkflowPhase.RUNNING
    assert calls == [
        ("PUT", "/api/v1/workflows/ci/flow-3/retry"),
        ("PUT", "/api/v1/workflows/ci/flow-3/stop"),
    ]
    stored = await seeded_resources.get_namespaced(WORKFLOWS, "ci", "flow-3")
    assert "shutdown" not in stored["spec"]


@pytest.mark.asyncio
async def test_delete_workflow(config, seeded_resources):
    service = WorkflowService(config, seeded_resources)

    await service.delete_workflow("flow-1")

    with pytest.raises(NotFoundError):
        await service.get_workflow("flow-1")
    with pytest.raises(NotFoundError):
        await service.delete_workflow("flow-1")


@pytest.mark.asyncio
async def test_submit_through_service(config, seeded_resources):
    service = WorkflowService(config, seeded_resources)

    workflow = await service.submit_workflow("build-template", {"branch": "main"})

    fetched = await service.get_workflow(workflow.name)
    assert fetched.spec.arguments[0].value == "main"


@pytest.mark.asyncio
async def test_logs_through_service(config, resources):
    resources.add(PODS, raw_pod("flow-1-111", "flow-1", "flow-1.build", "2024-05-01T10:00:00Z"))
    resources.set_pod_log("ci", "flow-1-111", "built\n")
    service = WorkflowService(config, resources)

    assert service.log_strategy.name == "cluster"
    assert await service.get_workflow_logs("flow-1") == "built"


@pytest.mark.asyncio
async def test_list_all_templates(config, seeded_resources):
    seeded_resources.add(CLUSTER_WORKFLOW_TEMPLATES, raw_template("shared", namespace=""))
    service = WorkflowService(config, seeded_resources)

    catalog = await service.list_all_templates()

    assert [t.name for t in catalog.templates] == ["build-template"]
    assert [t.name for t in catalog.cluster_templates] == ["shared"]
    assert catalog.cluster_templates[0].cluster_scoped


@pytest.mark.asyncio
async def test_cluster_template_failure_degrades(config, seeded_resources):
    resources = FailingResources(seeded_resources, {"list_cluster": {"clusterworkflowtemplates"}})
    service = WorkflowService(config, resources)

    catalog = await service.list_all_templates()
    overview = await service.overview()

    assert [t.name for t in catalog.templates] == ["build-template"]
    assert catalog.cluster_templates == []
    assert len(overview.workflows) == 3
    assert overview.cluster_templates == []


@pytest.mark.asyncio
async def test_overview_propagates_workflow_failure(config, seeded_resources):
    resources = FailingResources(seeded_resources, {"list_namespaced": {"workflows"}})
    service = WorkflowService(config, resources)

    with pytest.raises(UnavailableError):
        await service.overview()


@pytest.mark.asyncio
async def test_statistics_and_breakdown(config, seeded_resources):
    seeded_resources.add(WORKFLOWS, raw_workflow("flow-4", "Error"))
    service = WorkflowService(config, seeded_resources)

    stats = await service.get_statistics()
    breakdown = await service.get_phase_breakdown()

    assert (stats.total, stats.failed) == (4, 2)
    assert breakdown["Failed"] == 1
    assert breakdown["Error"] == 1


def test_build_service_inmemory(config):
    service = build_service(config)

    assert service.config.namespace == "ci"
    assert service.log_strategy.name == "cluster"


def test_build_service_prefers_engine_logs(engine_config):
    assert build_service(engine_config).log_strategy.name == "engine"
