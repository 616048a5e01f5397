"""Resource client factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import ArgonautConfig, load_config
from ..errors import ConfigurationError
from .base import (
    CLUSTER_WORKFLOW_TEMPLATES,
    PODS,
    WORKFLOW_TEMPLATES,
    WORKFLOWS,
    RawResource,
    ResourceClient,
    ResourceKind,
    format_label_selector,
    matches_label_selector,
)
from .inmemory import InMemoryResourceClient


def get_resource_client(
    backend: Optional[str] = None, config: Optional[ArgonautConfig] = None
) -> ResourceClient:
    """Factory function to get the configured resource client."""

    config = config or load_config()
    backend = (backend or os.getenv("ARGONAUT_BACKEND") or config.backend).lower()

    if backend == "inmemory":
        return InMemoryResourceClient()
    elif backend == "kubernetes":
        from .kubernetes import KubernetesResourceClient

        return KubernetesResourceClient.from_config(config)
    else:
        raise ConfigurationError(f"Unsupported resource backend: {backend}")


__all__ = [
    "CLUSTER_WORKFLOW_TEMPLATES",
    "InMemoryResourceClient",
    "PODS",
    "RawResource",
    "ResourceClient",
    "ResourceKind",
    "WORKFLOWS",
    "WORKFLOW_TEMPLATES",
    "format_label_selector",
    "get_resource_client",
    "matches_label_selector",
]
