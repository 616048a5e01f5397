"""HTTP client for the Argo Server REST API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .config import ArgoServerConfig
from .errors import ConfigurationError, InternalError, UnavailableError, error_from_status

logger = logging.getLogger(__name__)


class ArgoServerClient:
    """Authenticated access to the engine's own API (logs, retry, stop)."""

    def __init__(
        self,
        config: ArgoServerConfig,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not config.enabled:
            raise ConfigurationError("Argo Server requires both base_url and token")
        self.config = config
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            kwargs: Dict[str, Any] = {}
            if self._transport is not None:
                kwargs["transport"] = self._transport
            else:
                kwargs["verify"] = not self.config.insecure
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url.rstrip("/"),
                headers={
                    "Authorization": f"Bearer {self.config.token}",
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(self.timeout),
                **kwargs,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise UnavailableError(f"Argo Server {method} {path} timed out") from exc
        except httpx.TransportError as exc:
            raise UnavailableError(f"Argo Server {method} {path} failed: {exc}") from exc
        if response.is_error:
            raise error_from_status(
                response.status_code,
                f"Argo Server {method} {path}: {response.status_code} {response.reason_phrase}",
            )
        return response

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        response = await self._request(method, path, **kwargs)
        try:
            body = response.json()
        except ValueError as exc:
            raise InternalError(f"Argo Server {method} {path} returned a non-JSON body") from exc
        if not isinstance(body, dict):
            raise InternalError(f"Argo Server {method} {path} returned an unexpected body")
        return body

    async def get_logs(
        self, namespace: str, name: str, pod_name: Optional[str] = None, container: str = "main"
    ) -> str:
        """Return the raw log stream of a workflow, optionally for one pod."""
        params = {"logOptions.container": container}
        if pod_name:
            params["podName"] = pod_name
        response = await self._request(
            "GET", f"/api/v1/workflows/{namespace}/{name}/log", params=params
        )
        return response.text

    async def retry(self, namespace: str, name: str) -> Dict[str, Any]:
        logger.info(f"Retrying workflow {namespace}/{name} via Argo Server")
        return await self._request_json(
            "PUT",
            f"/api/v1/workflows/{namespace}/{name}/retry",
            json={"name": name, "namespace": namespace},
        )

    async def stop(self, namespace: str, name: str) -> Dict[str, Any]:
        logger.info(f"Stopping workflow {namespace}/{name} via Argo Server")
        return await self._request_json(
            "PUT",
            f"/api/v1/workflows/{namespace}/{name}/stop",
            json={"name": name, "namespace": namespace},
        )
