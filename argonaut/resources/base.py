"""Resource client abstraction over Kubernetes-style custom resources."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict

RawResource = Dict[str, Any]


class ResourceKind(BaseModel):
    """Identifies a resource type by API group, version and plural name."""

    model_config = ConfigDict(frozen=True)

    group: str
    version: str
    plural: str
    kind: str = ""

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def api_prefix(self) -> str:
        """URL prefix; the core group lives under ``/api``."""
        if self.group:
            return f"/apis/{self.group}/{self.version}"
        return f"/api/{self.version}"

    def namespaced_path(self, namespace: str, name: Optional[str] = None) -> str:
        path = f"{self.api_prefix}/namespaces/{namespace}/{self.plural}"
        return f"{path}/{name}" if name else path

    def cluster_path(self, name: Optional[str] = None) -> str:
        path = f"{self.api_prefix}/{self.plural}"
        return f"{path}/{name}" if name else path


ARGO_GROUP = "argoproj.io"
ARGO_VERSION = "v1alpha1"

WORKFLOWS = ResourceKind(group=ARGO_GROUP, version=ARGO_VERSION, plural="workflows", kind="Workflow")
WORKFLOW_TEMPLATES = ResourceKind(
    group=ARGO_GROUP, version=ARGO_VERSION, plural="workflowtemplates", kind="WorkflowTemplate"
)
CLUSTER_WORKFLOW_TEMPLATES = ResourceKind(
    group=ARGO_GROUP,
    version=ARGO_VERSION,
    plural="clusterworkflowtemplates",
    kind="ClusterWorkflowTemplate",
)
PODS = ResourceKind(group="", version="v1", plural="pods", kind="Pod")


class ResourceClient(Protocol):
    """Protocol for list/get/create/delete against the control plane.

    Lookups of missing resources raise :class:`~argonaut.errors.NotFoundError`.
    """

    async def list_namespaced(
        self, kind: ResourceKind, namespace: str, label_selector: Optional[str] = None
    ) -> List[RawResource]:
        """Return resources of ``kind`` in ``namespace`` matching the selector."""

    async def list_cluster(
        self, kind: ResourceKind, label_selector: Optional[str] = None
    ) -> List[RawResource]:
        """Return cluster-scoped resources of ``kind``."""

    async def get_namespaced(self, kind: ResourceKind, namespace: str, name: str) -> RawResource:
        """Fetch one namespaced resource."""

    async def get_cluster(self, kind: ResourceKind, name: str) -> RawResource:
        """Fetch one cluster-scoped resource."""

    async def create_namespaced(
        self, kind: ResourceKind, namespace: str, body: RawResource
    ) -> RawResource:
        """Create a resource and return the stored document."""

    async def delete_namespaced(self, kind: ResourceKind, namespace: str, name: str) -> None:
        """Delete a namespaced resource."""

    async def patch_namespaced(
        self, kind: ResourceKind, namespace: str, name: str, patch: RawResource
    ) -> RawResource:
        """Apply a JSON merge patch and return the updated document."""

    async def read_pod_log(
        self, namespace: str, pod_name: str, container: Optional[str] = None
    ) -> str:
        """Return the log text of a pod container."""

    async def aclose(self) -> None:
        """Release network resources."""


def format_label_selector(labels: Dict[str, str]) -> str:
    """Render a ``key=value`` conjunction selector."""
    return ",".join(f"{key}={value}" for key, value in labels.items())


def matches_label_selector(labels: Dict[str, str], selector: Optional[str]) -> bool:
    """Evaluate a selector of ``key=value``, ``key==value``, ``key!=value`` and ``key`` terms."""
    if not selector:
        return True
    for term in selector.split(","):
        term = term.strip()
        if not term:
            continue
        if "!=" in term:
            key, value = (part.strip() for part in term.split("!=", 1))
            if labels.get(key) == value:
                return False
        elif "=" in term:
            key, value = (part.strip() for part in term.replace("==", "=").split("=", 1))
            if labels.get(key) != value:
                return False
        elif term.startswith("!"):
            if term[1:].strip() in labels:
                return False
        elif term not in labels:
            return False
    return True
