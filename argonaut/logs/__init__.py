"""Log strategy factory."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import ArgonautConfig
from ..engine import ArgoServerClient
from ..resources import ResourceClient
from .base import LogStrategy, normalize_log_text
from .cluster import ClusterLogStrategy
from .engine import EngineLogStrategy, parse_log_stream

logger = logging.getLogger(__name__)


def get_log_strategy(
    config: ArgonautConfig,
    resource_client: ResourceClient,
    engine: Optional[ArgoServerClient] = None,
) -> LogStrategy:
    """Choose the log source once from configuration.

    The Argo Server is preferred when its URL and token are configured;
    otherwise pod logs are read through ``resource_client``.
    """
    if config.argo_server.enabled:
        engine = engine or ArgoServerClient(config.argo_server, timeout=config.request_timeout)
        logger.debug("Using Argo Server log strategy")
        return EngineLogStrategy(engine)
    logger.debug("Using cluster pod log strategy")
    return ClusterLogStrategy(resource_client)


__all__ = [
    "ClusterLogStrategy",
    "EngineLogStrategy",
    "LogStrategy",
    "get_log_strategy",
    "normalize_log_text",
    "parse_log_stream",
]
