from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import ConfigurationError


class ArgoServerConfig(BaseModel):
    """Connection settings for the Argo Server HTTP API."""

    model_config = ConfigDict(frozen=True)

    base_url: Optional[str] = None
    token: Optional[str] = None
    insecure: bool = False

    @property
    def enabled(self) -> bool:
        return bool(self.base_url and self.token)


class ClusterConfig(BaseModel):
    """Kubernetes API credentials.

    ``kubeconfig`` holds literal kubeconfig YAML; ``kubeconfig_path`` points
    at a file. With neither set the default kubeconfig locations and the
    in-cluster service account are tried in turn.
    """

    model_config = ConfigDict(frozen=True)

    kubeconfig: Optional[str] = None
    kubeconfig_path: Optional[str] = None
    context: Optional[str] = None
    insecure: bool = False


class ArgonautConfig(BaseModel):
    """Top-level configuration model."""

    model_config = ConfigDict(frozen=True)

    namespace: str = "argo"
    backend: Literal["kubernetes", "inmemory"] = "kubernetes"
    request_timeout: float = 30.0
    argo_server: ArgoServerConfig = ArgoServerConfig()
    cluster: ClusterConfig = ClusterConfig()


def load_config(path: Optional[str] = None) -> ArgonautConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to ARGONAUT_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("ARGONAUT_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        try:
            config = ArgonautConfig(**data)
        except (TypeError, ValidationError) as exc:
            raise ConfigurationError(f"Invalid configuration in {config_path}: {exc}") from exc
    else:
        config = ArgonautConfig()

    return _apply_env_overrides(config)


def _apply_env_overrides(config: ArgonautConfig) -> ArgonautConfig:
    updates: dict = {}

    namespace = os.getenv("ARGONAUT_NAMESPACE")
    if namespace:
        updates["namespace"] = namespace

    backend = os.getenv("ARGONAUT_BACKEND")
    if backend:
        updates["backend"] = backend.lower()

    server_updates = {}
    if os.getenv("ARGO_SERVER_URL"):
        server_updates["base_url"] = os.environ["ARGO_SERVER_URL"]
    if os.getenv("ARGO_TOKEN"):
        server_updates["token"] = os.environ["ARGO_TOKEN"]
    if server_updates:
        updates["argo_server"] = config.argo_server.model_copy(update=server_updates)

    cluster_updates = {}
    if os.getenv("ARGONAUT_KUBECONFIG"):
        cluster_updates["kubeconfig"] = os.environ["ARGONAUT_KUBECONFIG"]
    if os.getenv("KUBECONFIG") and not config.cluster.kubeconfig_path:
        cluster_updates["kubeconfig_path"] = os.environ["KUBECONFIG"]
    if cluster_updates:
        updates["cluster"] = config.cluster.model_copy(update=cluster_updates)

    if not updates:
        return config
    try:
        return ArgonautConfig.model_validate({**config.model_dump(), **_dump(updates)})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration from environment: {exc}") from exc


def _dump(updates: dict) -> dict:
    return {
        key: value.model_dump() if isinstance(value, BaseModel) else value
        for key, value in updates.items()
    }
