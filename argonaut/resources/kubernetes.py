"""Kubernetes REST implementation of the resource client."""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

import httpx

from ..config import ArgonautConfig
from ..errors import InternalError, UnavailableError, error_from_status
from .base import PODS, RawResource, ResourceKind
from .kubeconfig import ClusterCredentials, load_cluster_credentials

logger = logging.getLogger(__name__)


def _status_message(response: httpx.Response) -> str:
    """Extract the message of a Kubernetes ``Status`` error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase


class KubernetesResourceClient:
    """Talk to the Kubernetes API server over HTTPS with httpx.

    The underlying ``httpx.AsyncClient`` is created lazily and reused for the
    lifetime of the client; every request is bounded by ``timeout`` seconds.
    """

    def __init__(
        self,
        credentials: ClusterCredentials,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.credentials = credentials
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, config: ArgonautConfig) -> "KubernetesResourceClient":
        return cls(load_cluster_credentials(config.cluster), timeout=config.request_timeout)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            auth = None
            if self.credentials.username and self.credentials.password and not self.credentials.token:
                auth = httpx.BasicAuth(self.credentials.username, self.credentials.password)
            kwargs: dict[str, Any] = {}
            if self._transport is not None:
                kwargs["transport"] = self._transport
            else:
                kwargs["verify"] = self.credentials.ssl_context()
            self._client = httpx.AsyncClient(
                base_url=self.credentials.server,
                headers=self.credentials.headers(),
                auth=auth,
                timeout=httpx.Timeout(self.timeout),
                **kwargs,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise UnavailableError(f"{method} {path} timed out after {self.timeout}s") from exc
        except httpx.TransportError as exc:
            raise UnavailableError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            message = f"{method} {path}: {_status_message(response)}"
            logger.debug(f"Kubernetes API returned {response.status_code} for {method} {path}")
            raise error_from_status(response.status_code, message)
        return response

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> RawResource:
        response = await self._request(method, path, **kwargs)
        try:
            body = response.json()
        except ValueError as exc:
            raise InternalError(f"{method} {path} returned a non-JSON body") from exc
        if not isinstance(body, dict):
            raise InternalError(f"{method} {path} returned {type(body).__name__}, expected object")
        return body

    @staticmethod
    def _items(body: RawResource) -> List[RawResource]:
        items = body.get("items") or []
        return [item for item in items if isinstance(item, dict)]

    # ------------------------------------------------------------------
    # ResourceClient API
    async def list_namespaced(
        self, kind: ResourceKind, namespace: str, label_selector: Optional[str] = None
    ) -> List[RawResource]:
        params = {"labelSelector": label_selector} if label_selector else None
        body = await self._request_json("GET", kind.namespaced_path(namespace), params=params)
        return self._items(body)

    async def list_cluster(
        self, kind: ResourceKind, label_selector: Optional[str] = None
    ) -> List[RawResource]:
        params = {"labelSelector": label_selector} if label_selector else None
        body = await self._request_json("GET", kind.cluster_path(), params=params)
        return self._items(body)

    async def get_namespaced(self, kind: ResourceKind, namespace: str, name: str) -> RawResource:
        return await self._request_json("GET", kind.namespaced_path(namespace, name))

    async def get_cluster(self, kind: ResourceKind, name: str) -> RawResource:
        return await self._request_json("GET", kind.cluster_path(name))

    async def create_namespaced(
        self, kind: ResourceKind, namespace: str, body: RawResource
    ) -> RawResource:
        return await self._request_json("POST", kind.namespaced_path(namespace), json=body)

    async def delete_namespaced(self, kind: ResourceKind, namespace: str, name: str) -> None:
        await self._request("DELETE", kind.namespaced_path(namespace, name))

    async def patch_namespaced(
        self, kind: ResourceKind, namespace: str, name: str, patch: RawResource
    ) -> RawResource:
        return await self._request_json(
            "PATCH",
            kind.namespaced_path(namespace, name),
            content=json.dumps(patch),
            headers={"Content-Type": "application/merge-patch+json"},
        )

    async def read_pod_log(
        self, namespace: str, pod_name: str, container: Optional[str] = None
    ) -> str:
        params = {"container": container} if container else None
        response = await self._request(
            "GET", f"{PODS.namespaced_path(namespace, pod_name)}/log", params=params
        )
        return response.text
