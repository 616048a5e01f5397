"""Phase statistics over all workflows of a namespace."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable

from .models import Workflow, WorkflowPhase, WorkflowStatistics
from .resources import WORKFLOWS, ResourceClient
from .transform import transform_many, transform_workflow

logger = logging.getLogger(__name__)

_BUCKETS = {
    WorkflowPhase.RUNNING: "running",
    WorkflowPhase.SUCCEEDED: "succeeded",
    WorkflowPhase.FAILED: "failed",
    WorkflowPhase.ERROR: "failed",
    WorkflowPhase.PENDING: "pending",
}


def summarize(workflows: Iterable[Workflow]) -> WorkflowStatistics:
    """Reduce workflows to phase counts.

    ``Failed`` and ``Error`` share the ``failed`` bucket. Phases outside the
    named buckets only count toward ``total``.
    """
    stats = WorkflowStatistics()
    for workflow in workflows:
        stats.total += 1
        bucket = _BUCKETS.get(workflow.status.phase)
        if bucket:
            setattr(stats, bucket, getattr(stats, bucket) + 1)
    return stats


def count_phases(workflows: Iterable[Workflow]) -> Dict[str, int]:
    """Count every phase separately, ``Failed`` and ``Error`` included."""
    return dict(Counter(workflow.status.phase.value for workflow in workflows))


class StatisticsAggregator:
    """Full scan of a namespace on every call; results are never cached."""

    def __init__(self, resource_client: ResourceClient) -> None:
        self._resources = resource_client

    async def _workflows(self, namespace: str) -> list[Workflow]:
        items = await self._resources.list_namespaced(WORKFLOWS, namespace)
        return transform_many(transform_workflow, items)

    async def statistics(self, namespace: str) -> WorkflowStatistics:
        stats = summarize(await self._workflows(namespace))
        logger.debug(f"Statistics for namespace {namespace}: {stats.model_dump()}")
        return stats

    async def phase_breakdown(self, namespace: str) -> Dict[str, int]:
        return count_phases(await self._workflows(namespace))
