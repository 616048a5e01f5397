"""Workflow service exposed to the portal's HTTP layer."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from .config import ArgonautConfig, load_config
from .engine import ArgoServerClient
from .errors import InvalidInputError
from .logs import LogStrategy, get_log_strategy
from .models import (
    TemplateCatalog,
    Workflow,
    WorkflowOverview,
    WorkflowStatistics,
    WorkflowTemplate,
)
from .resources import (
    CLUSTER_WORKFLOW_TEMPLATES,
    WORKFLOW_TEMPLATES,
    WORKFLOWS,
    ResourceClient,
    get_resource_client,
)
from .statistics import StatisticsAggregator
from .submission import SubmissionBuilder
from .transform import (
    transform_many,
    transform_or_raise,
    transform_workflow,
    transform_workflow_template,
)
from .utils.concurrency import gather_settled, settled_or_default

logger = logging.getLogger(__name__)


class WorkflowService:
    """Stateless operations over workflows and templates.

    Collaborators are injected once at construction; the only state is the
    immutable configuration. Every operation accepts an optional namespace
    that defaults to ``config.namespace``.
    """

    def __init__(
        self,
        config: ArgonautConfig,
        resource_client: ResourceClient,
        log_strategy: Optional[LogStrategy] = None,
        engine: Optional[ArgoServerClient] = None,
    ) -> None:
        self.config = config
        self._resources = resource_client
        if engine is None and config.argo_server.enabled:
            engine = ArgoServerClient(config.argo_server, timeout=config.request_timeout)
        self._engine = engine
        self._logs = log_strategy or get_log_strategy(config, resource_client, engine)
        self._submissions = SubmissionBuilder(resource_client)
        self._statistics = StatisticsAggregator(resource_client)

    async def __aenter__(self) -> "WorkflowService":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._logs.aclose()
        if self._engine is not None:
            await self._engine.aclose()
        await self._resources.aclose()

    def _ns(self, namespace: Optional[str]) -> str:
        return namespace or self.config.namespace

    @property
    def log_strategy(self) -> LogStrategy:
        return self._logs

    # ------------------------------------------------------------------
    # Workflows
    async def list_workflows(
        self, namespace: Optional[str] = None, label_selector: Optional[str] = None
    ) -> List[Workflow]:
        items = await self._resources.list_namespaced(
            WORKFLOWS, self._ns(namespace), label_selector=label_selector
        )
        return transform_many(transform_workflow, items)

    async def get_workflow(self, name: str, namespace: Optional[str] = None) -> Workflow:
        raw = await self._resources.get_namespaced(WORKFLOWS, self._ns(namespace), name)
        return transform_or_raise(transform_workflow, raw)

    async def create_workflow(
        self, body: Mapping[str, Any], namespace: Optional[str] = None
    ) -> Workflow:
        """Create a workflow from a raw resource body."""
        if not isinstance(body, Mapping):
            raise InvalidInputError("Workflow body must be an object")
        if not isinstance(body.get("spec"), Mapping):
            raise InvalidInputError("Workflow body requires a spec")
        ns = self._ns(namespace)
        resource: Dict[str, Any] = dict(body)
        resource.setdefault("apiVersion", WORKFLOWS.api_version)
        resource.setdefault("kind", WORKFLOWS.kind)
        try:
            created = await self._resources.create_namespaced(WORKFLOWS, ns, resource)
        except Exception as exc:
            logger.error(f"Failed to create workflow in {ns}: {exc}")
            raise
        workflow = transform_or_raise(transform_workflow, created)
        logger.info(f"Created workflow {ns}/{workflow.name}")
        return workflow

    async def submit_workflow(
        self,
        template_name: str,
        parameters: Optional[Mapping[str, Any]] = None,
        namespace: Optional[str] = None,
        cluster_scope: bool = False,
    ) -> Workflow:
        return await self._submissions.submit(
            template_name, parameters, self._ns(namespace), cluster_scope=cluster_scope
        )

    async def retry_workflow(self, name: str, namespace: Optional[str] = None) -> Workflow:
        if self._engine is None:
            raise InvalidInputError("Retrying a workflow requires the Argo Server to be configured")
        raw = await self._engine.retry(self._ns(namespace), name)
        return transform_or_raise(transform_workflow, raw)

    async def stop_workflow(self, name: str, namespace: Optional[str] = None) -> Workflow:
        """Stop a workflow via the Argo Server, or by setting ``spec.shutdown``."""
        ns = self._ns(namespace)
        if self._engine is not None:
            raw = await self._engine.stop(ns, name)
        else:
            raw = await self._resources.patch_namespaced(
                WORKFLOWS, ns, name, {"spec": {"shutdown": "Stop"}}
            )
            logger.info(f"Requested shutdown of workflow {ns}/{name}")
        return transform_or_raise(transform_workflow, raw)

    async def delete_workflow(self, name: str, namespace: Optional[str] = None) -> None:
        ns = self._ns(namespace)
        try:
            await self._resources.delete_namespaced(WORKFLOWS, ns, name)
        except Exception as exc:
            logger.error(f"Failed to delete workflow {ns}/{name}: {exc}")
            raise
        logger.info(f"Workflow {ns}/{name} deleted successfully")

    async def get_workflow_logs(
        self, name: str, namespace: Optional[str] = None, step_name: Optional[str] = None
    ) -> str:
        return await self._logs.get_logs(name, self._ns(namespace), step_name)

    # ------------------------------------------------------------------
    # Templates
    async def list_workflow_templates(
        self, namespace: Optional[str] = None
    ) -> List[WorkflowTemplate]:
        items = await self._resources.list_namespaced(WORKFLOW_TEMPLATES, self._ns(namespace))
        return transform_many(transform_workflow_template, items)

    async def list_cluster_workflow_templates(self) -> List[WorkflowTemplate]:
        items = await self._resources.list_cluster(CLUSTER_WORKFLOW_TEMPLATES)
        return transform_many(transform_workflow_template, items, True)

    async def list_all_templates(self, namespace: Optional[str] = None) -> TemplateCatalog:
        """Namespaced and cluster templates; either lookup may fail independently."""
        results = await gather_settled(
            {
                "templates": self.list_workflow_templates(namespace),
                "cluster_templates": self.list_cluster_workflow_templates(),
            }
        )
        return TemplateCatalog(
            templates=settled_or_default(results, "templates", [], "workflow templates"),
            cluster_templates=settled_or_default(
                results, "cluster_templates", [], "cluster workflow templates"
            ),
        )

    async def overview(self, namespace: Optional[str] = None) -> WorkflowOverview:
        """Workflows plus the templates they can be submitted from.

        Workflow listing failures propagate; template lookups degrade to
        empty lists.
        """
        results = await gather_settled(
            {
                "workflows": self.list_workflows(namespace),
                "templates": self.list_workflow_templates(namespace),
                "cluster_templates": self.list_cluster_workflow_templates(),
            }
        )
        workflows = results["workflows"]
        if isinstance(workflows, BaseException):
            raise workflows
        return WorkflowOverview(
            workflows=workflows,
            templates=settled_or_default(results, "templates", [], "workflow templates"),
            cluster_templates=settled_or_default(
                results, "cluster_templates", [], "cluster workflow templates"
            ),
        )

    # ------------------------------------------------------------------
    # Statistics
    async def get_statistics(self, namespace: Optional[str] = None) -> WorkflowStatistics:
        return await self._statistics.statistics(self._ns(namespace))

    async def get_phase_breakdown(self, namespace: Optional[str] = None) -> Dict[str, int]:
        return await self._statistics.phase_breakdown(self._ns(namespace))


def build_service(
    config: Optional[ArgonautConfig] = None, backend: Optional[str] = None
) -> WorkflowService:
    """Construct the service and its collaborators from configuration."""
    config = config or load_config()
    resource_client = get_resource_client(backend, config=config)
    return WorkflowService(config, resource_client)


__all__ = ["WorkflowService", "build_service"]
