"""Conversion of raw Argo resource documents into the typed domain model.

Every function here is total: missing or wrongly-typed optional data is
replaced by an explicit default instead of raising, and unknown keys of
``spec`` and ``status`` are kept under ``extras``. Inputs are never mutated.
"""

from __future__ import annotations

import copy
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar

from .errors import ArgonautError, InternalError
from .models import (
    Parameter,
    ResourcesDuration,
    TTLStrategy,
    Workflow,
    WorkflowMetadata,
    WorkflowPhase,
    WorkflowSpec,
    WorkflowStatus,
    WorkflowStep,
    WorkflowTemplate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_KNOWN_PHASES = {
    phase.value: phase for phase in WorkflowPhase if phase is not WorkflowPhase.UNKNOWN
}
_SPEC_KEYS = {"entrypoint", "templates", "arguments", "serviceAccountName", "ttlStrategy"}
_STATUS_KEYS = {
    "phase",
    "startedAt",
    "finishedAt",
    "progress",
    "message",
    "estimatedDuration",
    "resourcesDuration",
    "nodes",
}


# ----------------------------------------------------------------------
# Scalar helpers
def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _str_map(value: Any) -> Dict[str, str]:
    return {
        str(key): "" if item is None else str(item)
        for key, item in _mapping(value).items()
    }


def _opt_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (Mapping, list)):
        return None
    return str(value)


def _opt_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_phase(value: Any) -> WorkflowPhase:
    """Map an observed phase string onto the closed phase set."""
    if isinstance(value, str):
        return _KNOWN_PHASES.get(value, WorkflowPhase.UNKNOWN)
    return WorkflowPhase.UNKNOWN


def parse_parameters(value: Any) -> List[Parameter]:
    """Read ``[{name, value}]`` or ``{"parameters": [...]}`` into parameters."""
    if isinstance(value, Mapping):
        value = value.get("parameters")
    if not isinstance(value, list):
        return []
    parameters = []
    for item in value:
        if not isinstance(item, Mapping) or not item.get("name"):
            continue
        raw_value = item.get("value", item.get("default"))
        parameters.append(
            Parameter(name=str(item["name"]), value=None if raw_value is None else str(raw_value))
        )
    return parameters


# ----------------------------------------------------------------------
# Structures
def transform_metadata(raw: Any) -> WorkflowMetadata:
    meta = _mapping(raw)
    return WorkflowMetadata(
        name=_opt_str(meta.get("name")) or "",
        namespace=_opt_str(meta.get("namespace")) or "",
        uid=_opt_str(meta.get("uid")) or "",
        creation_timestamp=parse_timestamp(meta.get("creationTimestamp")),
        labels=_str_map(meta.get("labels")),
        annotations=_str_map(meta.get("annotations")),
    )


def transform_spec(raw: Any) -> WorkflowSpec:
    spec = _mapping(raw)
    templates = spec.get("templates")
    ttl = spec.get("ttlStrategy")
    return WorkflowSpec(
        entrypoint=_opt_str(spec.get("entrypoint")) or "",
        templates=[
            copy.deepcopy(dict(item))
            for item in (templates if isinstance(templates, list) else [])
            if isinstance(item, Mapping)
        ],
        arguments=parse_parameters(spec.get("arguments")),
        service_account_name=_opt_str(spec.get("serviceAccountName")),
        ttl_strategy=(
            TTLStrategy(
                seconds_after_completion=_opt_int(ttl.get("secondsAfterCompletion")),
                seconds_after_success=_opt_int(ttl.get("secondsAfterSuccess")),
                seconds_after_failure=_opt_int(ttl.get("secondsAfterFailure")),
            )
            if isinstance(ttl, Mapping)
            else None
        ),
        extras={
            key: copy.deepcopy(value) for key, value in spec.items() if key not in _SPEC_KEYS
        },
    )


def transform_status(raw: Any) -> WorkflowStatus:
    """Build a status; an absent ``status`` yields the zero-value status."""
    status = _mapping(raw)
    started_at = parse_timestamp(status.get("startedAt"))
    finished_at = parse_timestamp(status.get("finishedAt"))

    timing_consistent = True
    if started_at and finished_at and finished_at < started_at:
        logger.warning(f"finishedAt {finished_at} precedes startedAt {started_at}")
        timing_consistent = False

    usage = status.get("resourcesDuration")
    raw_phase = status.get("phase")
    return WorkflowStatus(
        phase=parse_phase(raw_phase),
        raw_phase=_opt_str(raw_phase),
        started_at=started_at,
        finished_at=finished_at,
        progress=_opt_str(status.get("progress")),
        message=_opt_str(status.get("message")),
        estimated_duration=_opt_int(status.get("estimatedDuration")),
        resources_duration=(
            ResourcesDuration(
                cpu=_opt_int(usage.get("cpu")) or 0,
                memory=_opt_int(usage.get("memory")) or 0,
            )
            if isinstance(usage, Mapping)
            else None
        ),
        timing_consistent=timing_consistent,
        extras={
            key: copy.deepcopy(value)
            for key, value in status.items()
            if key not in _STATUS_KEYS
        },
    )


def transform_step(node_id: str, raw: Any) -> WorkflowStep:
    node = _mapping(raw)
    children = node.get("children")
    return WorkflowStep(
        id=_opt_str(node.get("id")) or node_id,
        name=_opt_str(node.get("name")) or "",
        display_name=_opt_str(node.get("displayName")) or _opt_str(node.get("name")) or "",
        type=_opt_str(node.get("type")) or "",
        template_name=_opt_str(node.get("templateName")),
        phase=parse_phase(node.get("phase")),
        started_at=parse_timestamp(node.get("startedAt")),
        finished_at=parse_timestamp(node.get("finishedAt")),
        message=_opt_str(node.get("message")),
        children=[str(child) for child in (children if isinstance(children, list) else [])],
        inputs=parse_parameters(_mapping(node.get("inputs")).get("parameters")),
        outputs=parse_parameters(_mapping(node.get("outputs")).get("parameters")),
    )


def transform_steps(raw_nodes: Any, root_id: Optional[str] = None) -> List[WorkflowStep]:
    """Flatten ``status.nodes`` into steps in graph order.

    The graph is walked breadth-first from ``root_id`` (or from every node
    nobody references as a child) with a visited set, so cyclic or dangling
    ``children`` references cannot loop. Unreachable nodes follow, by id.
    """
    if isinstance(raw_nodes, list):
        raw_nodes = {
            str(_mapping(node).get("id")): node
            for node in raw_nodes
            if _mapping(node).get("id")
        }
    nodes = _mapping(raw_nodes)
    steps = {str(node_id): transform_step(str(node_id), node) for node_id, node in nodes.items()}
    if not steps:
        return []

    if root_id and root_id in steps:
        roots = [root_id]
    else:
        referenced = {child for step in steps.values() for child in step.children}
        roots = sorted(node_id for node_id in steps if node_id not in referenced)

    ordered: List[WorkflowStep] = []
    visited = set()
    queue = deque(roots)
    while queue:
        node_id = queue.popleft()
        if node_id in visited or node_id not in steps:
            continue
        visited.add(node_id)
        ordered.append(steps[node_id])
        queue.extend(steps[node_id].children)

    ordered.extend(steps[node_id] for node_id in sorted(steps) if node_id not in visited)
    return ordered


def transform_workflow(raw: Any) -> Workflow:
    """Convert a raw Workflow resource into a :class:`Workflow`."""
    item = _mapping(raw)
    metadata = transform_metadata(item.get("metadata"))
    status = _mapping(item.get("status"))
    return Workflow(
        metadata=metadata,
        spec=transform_spec(item.get("spec")),
        status=transform_status(status),
        steps=transform_steps(status.get("nodes"), root_id=metadata.name or None),
    )


def transform_workflow_template(raw: Any, cluster_scoped: bool = False) -> WorkflowTemplate:
    """Convert a raw (Cluster)WorkflowTemplate resource."""
    item = _mapping(raw)
    metadata = transform_metadata(item.get("metadata"))
    if cluster_scoped:
        metadata.namespace = ""
    return WorkflowTemplate(
        metadata=metadata,
        spec=transform_spec(item.get("spec")),
        cluster_scoped=cluster_scoped,
    )


def transform_or_raise(func: Callable[..., T], raw: Any, *args: Any) -> T:
    """Run ``func`` and report unexpected failures as :class:`InternalError`."""
    try:
        return func(raw, *args)
    except ArgonautError:
        raise
    except Exception as exc:
        name = _mapping(_mapping(raw).get("metadata")).get("name", "<unnamed>")
        logger.error(f"Failed to transform resource {name}: {exc}")
        raise InternalError(f"Failed to transform resource {name}: {exc}") from exc


def transform_many(func: Callable[..., T], items: Iterable[Any], *args: Any) -> List[T]:
    return [transform_or_raise(func, item, *args) for item in items]


__all__ = [
    "parse_parameters",
    "parse_phase",
    "parse_timestamp",
    "transform_many",
    "transform_metadata",
    "transform_or_raise",
    "transform_spec",
    "transform_status",
    "transform_step",
    "transform_steps",
    "transform_workflow",
    "transform_workflow_template",
]
