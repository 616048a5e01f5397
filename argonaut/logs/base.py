"""Base log strategy interface."""

from __future__ import annotations

import abc
from typing import Iterable, Optional


class LogStrategy(metaclass=abc.ABCMeta):
    """Abstract source of workflow logs.

    Implementations return plain newline-delimited text so callers do not
    depend on where the logs came from.
    """

    name: str = "base"

    @abc.abstractmethod
    async def get_logs(
        self, workflow_name: str, namespace: str, step_name: Optional[str] = None
    ) -> str:
        """Return the logs of a workflow, or of one of its steps."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release resources (no-op by default)."""
        pass


def normalize_log_text(chunks: Iterable[str]) -> str:
    """Join log chunks into newline-delimited text without a trailing newline."""
    lines = []
    for chunk in chunks:
        text = chunk.replace("\r\n", "\n")
        if text.endswith("\n"):
            text = text[:-1]
        if text:
            lines.extend(text.split("\n"))
    return "\n".join(lines)
