"""Cluster credential loading from kubeconfig documents or the pod environment."""

from __future__ import annotations

import base64
import logging
import os
import ssl
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel

from ..config import ClusterConfig
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")
DEFAULT_KUBECONFIG = Path("~/.kube/config")


class ClusterCredentials(BaseModel):
    """Resolved API server address and authentication material."""

    server: str
    token: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    ca_data: Optional[str] = None
    ca_file: Optional[str] = None
    client_cert_data: Optional[str] = None
    client_key_data: Optional[str] = None
    client_cert_file: Optional[str] = None
    client_key_file: Optional[str] = None
    insecure: bool = False
    namespace: Optional[str] = None

    def headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def ssl_context(self) -> ssl.SSLContext | bool:
        """Build the TLS verification setting for httpx."""
        if self.insecure:
            return False
        context = ssl.create_default_context()
        if self.ca_data or self.ca_file:
            context.load_verify_locations(cafile=self.ca_file, cadata=self.ca_data)
        if self.client_cert_file:
            context.load_cert_chain(self.client_cert_file, self.client_key_file)
        elif self.client_cert_data:
            _load_cert_chain_from_data(context, self.client_cert_data, self.client_key_data)
        return context


def _load_cert_chain_from_data(
    context: ssl.SSLContext, cert_pem: str, key_pem: Optional[str]
) -> None:
    # ssl only reads certificate chains from files
    paths = []
    try:
        for pem in (cert_pem, key_pem):
            if pem is None:
                paths.append(None)
                continue
            with tempfile.NamedTemporaryFile("w", suffix=".pem", delete=False) as handle:
                handle.write(pem)
                paths.append(handle.name)
        context.load_cert_chain(paths[0], paths[1])
    finally:
        for path in paths:
            if path:
                os.unlink(path)


def _b64(value: Optional[str], field: str) -> Optional[str]:
    if not value:
        return None
    try:
        return base64.b64decode(value).decode("utf-8")
    except ValueError as exc:
        raise ConfigurationError(f"Invalid kubeconfig: {field} is not base64 PEM data") from exc


def _resolve_path(value: Optional[str], base_dir: Optional[Path]) -> Optional[str]:
    if not value:
        return None
    path = Path(value).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return str(path)


def _named(entries: Any, name: Optional[str], field: str) -> Dict[str, Any]:
    for entry in entries or []:
        if isinstance(entry, dict) and entry.get("name") == name:
            return entry.get(field) or {}
    raise ConfigurationError(f"kubeconfig has no {field} named '{name}'")


def parse_kubeconfig(
    text: str, context: Optional[str] = None, base_dir: Optional[Path] = None
) -> ClusterCredentials:
    """Resolve credentials for ``context`` (or the current context) of a kubeconfig."""
    try:
        document = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid kubeconfig: {exc}") from exc
    if not isinstance(document, dict):
        raise ConfigurationError("Invalid kubeconfig: expected a mapping")

    context_name = context or document.get("current-context")
    if not context_name:
        raise ConfigurationError("kubeconfig has no current-context")
    ctx = _named(document.get("contexts"), context_name, "context")
    cluster = _named(document.get("clusters"), ctx.get("cluster"), "cluster")
    user = _named(document.get("users"), ctx.get("user"), "user") if ctx.get("user") else {}

    server = cluster.get("server")
    if not server:
        raise ConfigurationError(f"kubeconfig cluster '{ctx.get('cluster')}' has no server")

    token = user.get("token")
    token_file = _resolve_path(user.get("tokenFile"), base_dir)
    if not token and token_file:
        try:
            token = Path(token_file).read_text().strip()
        except OSError as exc:
            raise ConfigurationError(f"Cannot read kubeconfig tokenFile {token_file}: {exc}") from exc
    if "exec" in user or "auth-provider" in user:
        logger.warning(f"kubeconfig user '{ctx.get('user')}' uses an unsupported auth plugin")

    return ClusterCredentials(
        server=server.rstrip("/"),
        token=token,
        username=user.get("username"),
        password=user.get("password"),
        ca_data=_b64(cluster.get("certificate-authority-data"), "certificate-authority-data"),
        ca_file=_resolve_path(cluster.get("certificate-authority"), base_dir),
        client_cert_data=_b64(user.get("client-certificate-data"), "client-certificate-data"),
        client_key_data=_b64(user.get("client-key-data"), "client-key-data"),
        client_cert_file=_resolve_path(user.get("client-certificate"), base_dir),
        client_key_file=_resolve_path(user.get("client-key"), base_dir),
        insecure=bool(cluster.get("insecure-skip-tls-verify", False)),
        namespace=ctx.get("namespace"),
    )


def in_cluster_credentials(
    service_account_dir: Path = SERVICE_ACCOUNT_DIR,
) -> Optional[ClusterCredentials]:
    """Credentials of the pod's service account, if running inside a cluster."""
    host = os.getenv("KUBERNETES_SERVICE_HOST")
    port = os.getenv("KUBERNETES_SERVICE_PORT", "443")
    token_path = service_account_dir / "token"
    if not host or not token_path.exists():
        return None
    if ":" in host:
        host = f"[{host}]"
    ca_path = service_account_dir / "ca.crt"
    namespace_path = service_account_dir / "namespace"
    return ClusterCredentials(
        server=f"https://{host}:{port}",
        token=token_path.read_text().strip(),
        ca_file=str(ca_path) if ca_path.exists() else None,
        namespace=namespace_path.read_text().strip() if namespace_path.exists() else None,
    )


def load_cluster_credentials(config: ClusterConfig) -> ClusterCredentials:
    """Resolve credentials: literal kubeconfig, kubeconfig path, in-cluster, ~/.kube/config."""
    if config.kubeconfig:
        credentials = parse_kubeconfig(config.kubeconfig, config.context)
        logger.debug("Loaded cluster credentials from literal kubeconfig")
    elif config.kubeconfig_path:
        path = Path(config.kubeconfig_path.split(os.pathsep)[0]).expanduser()
        if not path.exists():
            raise ConfigurationError(f"kubeconfig file {path} does not exist")
        credentials = parse_kubeconfig(path.read_text(), config.context, base_dir=path.parent)
        logger.debug(f"Loaded cluster credentials from {path}")
    else:
        credentials = in_cluster_credentials()
        if credentials is None:
            path = DEFAULT_KUBECONFIG.expanduser()
            if not path.exists():
                raise ConfigurationError(
                    "No cluster credentials: set cluster.kubeconfig, KUBECONFIG or run in-cluster"
                )
            credentials = parse_kubeconfig(path.read_text(), config.context, base_dir=path.parent)
            logger.debug(f"Loaded cluster credentials from {path}")
        else:
            logger.debug("Loaded in-cluster service account credentials")

    if config.insecure:
        credentials = credentials.model_copy(update={"insecure": True})
    return credentials
