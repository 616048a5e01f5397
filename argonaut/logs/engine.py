"""Log strategy backed by the Argo Server log API."""

from __future__ import annotations

import json
import logging
from typing import Iterator, Optional

from ..engine import ArgoServerClient
from .base import LogStrategy, normalize_log_text

logger = logging.getLogger(__name__)


def parse_log_stream(text: str) -> Iterator[str]:
    """Yield the ``result.content`` of each NDJSON log entry.

    Lines that are not JSON log entries are passed through unchanged.
    """
    for line in text.splitlines():
        if not line.strip():
            continue
        try:
            entry = json.loads(line)
        except ValueError:
            yield line
            continue
        result = entry.get("result") if isinstance(entry, dict) else None
        if isinstance(result, dict):
            content = result.get("content")
            if content is not None:
                yield str(content)
        else:
            yield line


class EngineLogStrategy(LogStrategy):
    """Fetch logs through the engine's authenticated HTTP endpoint."""

    name = "engine"

    def __init__(self, engine: ArgoServerClient) -> None:
        self._engine = engine

    async def get_logs(
        self, workflow_name: str, namespace: str, step_name: Optional[str] = None
    ) -> str:
        logger.debug(f"Fetching logs for {namespace}/{workflow_name} from Argo Server")
        raw = await self._engine.get_logs(namespace, workflow_name, pod_name=step_name)
        # each entry is one line of pod output
        text = "".join(f"{line}\n" for line in parse_log_stream(raw))
        return normalize_log_text([text])

    async def aclose(self) -> None:
        await self._engine.aclose()
