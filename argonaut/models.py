"""Typed domain model for workflows, steps and templates."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class WorkflowPhase(str, Enum):
    """Coarse lifecycle state of a workflow or step."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    ERROR = "Error"
    UNKNOWN = "Unknown"

    @property
    def is_finished(self) -> bool:
        return self in (WorkflowPhase.SUCCEEDED, WorkflowPhase.FAILED, WorkflowPhase.ERROR)


class Parameter(BaseModel):
    """Named argument, input or output value."""

    name: str
    value: Optional[str] = None


class ResourcesDuration(BaseModel):
    """Resource usage aggregated over a run (cpu/memory seconds)."""

    cpu: int = 0
    memory: int = 0


class WorkflowMetadata(BaseModel):
    name: str = ""
    namespace: str = ""
    uid: str = ""
    creation_timestamp: Optional[datetime] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)


class TTLStrategy(BaseModel):
    seconds_after_completion: Optional[int] = None
    seconds_after_success: Optional[int] = None
    seconds_after_failure: Optional[int] = None


class WorkflowSpec(BaseModel):
    """Workflow or template spec.

    ``templates`` and ``arguments`` are kept as engine documents; unknown
    top-level keys are carried in ``extras``.
    """

    entrypoint: str = ""
    templates: List[Dict[str, Any]] = Field(default_factory=list)
    arguments: List[Parameter] = Field(default_factory=list)
    service_account_name: Optional[str] = None
    ttl_strategy: Optional[TTLStrategy] = None
    extras: Dict[str, Any] = Field(default_factory=dict)


class WorkflowStatus(BaseModel):
    """Observed status of a workflow run."""

    phase: WorkflowPhase = WorkflowPhase.UNKNOWN
    raw_phase: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    progress: Optional[str] = None
    message: Optional[str] = None
    estimated_duration: Optional[int] = None
    resources_duration: Optional[ResourcesDuration] = None
    timing_consistent: bool = True
    extras: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        """A started run that has neither a finish time nor a final phase."""
        return (
            self.started_at is not None
            and self.finished_at is None
            and not self.phase.is_finished
        )

    def duration(self, now: Optional[datetime] = None) -> Optional[float]:
        """Elapsed seconds; measured against ``now`` while the run is active."""
        if self.started_at is None or not self.timing_consistent:
            return None
        end = self.finished_at or now or datetime.now(timezone.utc)
        return max(0.0, (end - self.started_at).total_seconds())

    def describe(self, now: Optional[datetime] = None) -> Dict[str, Optional[str]]:
        """Summary used by list views: phase, duration, progress, message."""
        seconds = self.duration(now)
        return {
            "phase": self.phase.value,
            "duration": format_duration(seconds) if seconds is not None else None,
            "progress": self.progress,
            "message": self.message,
        }


class WorkflowStep(BaseModel):
    """One node of a workflow's execution graph."""

    id: str
    name: str = ""
    display_name: str = ""
    type: str = ""
    template_name: Optional[str] = None
    phase: WorkflowPhase = WorkflowPhase.UNKNOWN
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    message: Optional[str] = None
    children: List[str] = Field(default_factory=list)
    inputs: List[Parameter] = Field(default_factory=list)
    outputs: List[Parameter] = Field(default_factory=list)


class Workflow(BaseModel):
    """A workflow run as observed on the cluster."""

    metadata: WorkflowMetadata = Field(default_factory=WorkflowMetadata)
    spec: WorkflowSpec = Field(default_factory=WorkflowSpec)
    status: WorkflowStatus = Field(default_factory=WorkflowStatus)
    steps: List[WorkflowStep] = Field(default_factory=list)

    @property
    def name(self) -> str:
        return self.metadata.name


class WorkflowTemplate(BaseModel):
    """Reusable workflow spec; cluster-scoped templates have no namespace."""

    metadata: WorkflowMetadata = Field(default_factory=WorkflowMetadata)
    spec: WorkflowSpec = Field(default_factory=WorkflowSpec)
    cluster_scoped: bool = False

    @property
    def name(self) -> str:
        return self.metadata.name


class WorkflowStatistics(BaseModel):
    total: int = 0
    running: int = 0
    succeeded: int = 0
    failed: int = 0
    pending: int = 0


class TemplateCatalog(BaseModel):
    templates: List[WorkflowTemplate] = Field(default_factory=list)
    cluster_templates: List[WorkflowTemplate] = Field(default_factory=list)


class WorkflowOverview(BaseModel):
    workflows: List[Workflow] = Field(default_factory=list)
    templates: List[WorkflowTemplate] = Field(default_factory=list)
    cluster_templates: List[WorkflowTemplate] = Field(default_factory=list)


def format_duration(seconds: float) -> str:
    """Render seconds as ``1h 2m 3s``, ``2m 3s`` or ``3s``."""
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


__all__ = [
    "Parameter",
    "ResourcesDuration",
    "TemplateCatalog",
    "TTLStrategy",
    "Workflow",
    "WorkflowMetadata",
    "WorkflowOverview",
    "WorkflowPhase",
    "WorkflowSpec",
    "WorkflowStatistics",
    "WorkflowStatus",
    "WorkflowStep",
    "WorkflowTemplate",
    "format_duration",
]
