"""Log strategy that reads pod logs directly from the cluster API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..errors import NotFoundError
from ..resources import PODS, RawResource, ResourceClient
from .base import LogStrategy, normalize_log_text

logger = logging.getLogger(__name__)

WORKFLOW_LABEL = "workflows.argoproj.io/workflow"
NODE_NAME_ANNOTATION = "workflows.argoproj.io/node-name"
NODE_ID_ANNOTATION = "workflows.argoproj.io/node-id"
MAIN_CONTAINER = "main"


def _metadata(pod: RawResource) -> Dict[str, Any]:
    meta = pod.get("metadata")
    return meta if isinstance(meta, dict) else {}


def pod_matches_step(pod: RawResource, step_name: str) -> bool:
    """True if ``pod`` executed the step named or identified by ``step_name``."""
    meta = _metadata(pod)
    annotations = meta.get("annotations") or {}
    node_name = annotations.get(NODE_NAME_ANNOTATION, "")
    return (
        meta.get("name") == step_name
        or annotations.get(NODE_ID_ANNOTATION) == step_name
        or node_name == step_name
        or node_name.endswith(f".{step_name}")
    )


class ClusterLogStrategy(LogStrategy):
    """Resolve the workflow's pods and read their ``main`` container logs."""

    name = "cluster"

    def __init__(self, resource_client: ResourceClient, container: str = MAIN_CONTAINER) -> None:
        self._resources = resource_client
        self._container = container

    async def resolve_pods(
        self, workflow_name: str, namespace: str, step_name: Optional[str] = None
    ) -> List[RawResource]:
        pods = await self._resources.list_namespaced(
            PODS, namespace, label_selector=f"{WORKFLOW_LABEL}={workflow_name}"
        )
        if step_name:
            pods = [pod for pod in pods if pod_matches_step(pod, step_name)]
        if not pods:
            target = f"step {step_name} of " if step_name else ""
            raise NotFoundError(f"No pods found for {target}workflow {namespace}/{workflow_name}")
        return sorted(
            pods,
            key=lambda pod: (
                str(_metadata(pod).get("creationTimestamp") or ""),
                str(_metadata(pod).get("name") or ""),
            ),
        )

    async def get_logs(
        self, workflow_name: str, namespace: str, step_name: Optional[str] = None
    ) -> str:
        pods = await self.resolve_pods(workflow_name, namespace, step_name)
        logger.debug(
            f"Reading logs of {len(pods)} pod(s) for workflow {namespace}/{workflow_name}"
        )
        chunks = []
        for pod in pods:
            chunks.append(
                await self._resources.read_pod_log(
                    namespace, _metadata(pod)["name"], container=self._container
                )
            )
        return normalize_log_text(chunks)
