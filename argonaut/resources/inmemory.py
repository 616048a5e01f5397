"""In-memory implementation of the resource client."""

from __future__ import annotations

import copy
import secrets
import string
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from ..errors import InvalidInputError, NotFoundError
from .base import RawResource, ResourceKind, matches_label_selector

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits

# (plural, group, namespace) -> name -> resource; namespace "" is cluster scope
_Store = Dict[Tuple[str, str, str], Dict[str, RawResource]]


def _merge_patch(target: RawResource, patch: RawResource) -> RawResource:
    """Apply an RFC 7386 JSON merge patch to ``target`` in place."""
    for key, value in patch.items():
        if value is None:
            target.pop(key, None)
        elif isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge_patch(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


class InMemoryResourceClient:
    """Keep resources in local memory.

    Useful for tests or local development without a cluster. Emulates the
    control plane's server-side behaviour that callers rely on: uid and
    creation timestamp assignment, ``generateName`` suffixes and 404s for
    missing resources. Data is not persisted across process restarts.
    """

    def __init__(self) -> None:
        self._store: _Store = {}
        self._pod_logs: Dict[Tuple[str, str, str], str] = {}
        self._resource_version = 0

    # ------------------------------------------------------------------
    # Seeding helpers
    def add(self, kind: ResourceKind, resource: RawResource, namespace: Optional[str] = None) -> RawResource:
        """Store ``resource`` as-is, bypassing name generation."""
        stored = copy.deepcopy(resource)
        meta = stored.setdefault("metadata", {})
        ns = namespace if namespace is not None else meta.get("namespace", "")
        if ns:
            meta["namespace"] = ns
        self._bucket(kind, ns)[meta["name"]] = stored
        return copy.deepcopy(stored)

    def set_pod_log(
        self, namespace: str, pod_name: str, text: str, container: Optional[str] = "main"
    ) -> None:
        self._pod_logs[(namespace, pod_name, container or "")] = text

    def _bucket(self, kind: ResourceKind, namespace: str) -> Dict[str, RawResource]:
        return self._store.setdefault((kind.plural, kind.group, namespace), {})

    def _next_version(self) -> str:
        self._resource_version += 1
        return str(self._resource_version)

    def _generate_name(self, bucket: Dict[str, RawResource], prefix: str) -> str:
        while True:
            suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(5))
            name = f"{prefix}{suffix}"
            if name not in bucket:
                return name

    # ------------------------------------------------------------------
    # ResourceClient API
    async def list_namespaced(
        self, kind: ResourceKind, namespace: str, label_selector: Optional[str] = None
    ) -> List[RawResource]:
        return [
            copy.deepcopy(item)
            for item in self._bucket(kind, namespace).values()
            if matches_label_selector(item.get("metadata", {}).get("labels") or {}, label_selector)
        ]

    async def list_cluster(
        self, kind: ResourceKind, label_selector: Optional[str] = None
    ) -> List[RawResource]:
        return await self.list_namespaced(kind, "", label_selector)

    async def get_namespaced(self, kind: ResourceKind, namespace: str, name: str) -> RawResource:
        item = self._bucket(kind, namespace).get(name)
        if item is None:
            raise NotFoundError(f"{kind.plural} {namespace}/{name} not found", status_code=404)
        return copy.deepcopy(item)

    async def get_cluster(self, kind: ResourceKind, name: str) -> RawResource:
        item = self._bucket(kind, "").get(name)
        if item is None:
            raise NotFoundError(f"{kind.plural} {name} not found", status_code=404)
        return copy.deepcopy(item)

    async def create_namespaced(
        self, kind: ResourceKind, namespace: str, body: RawResource
    ) -> RawResource:
        stored = copy.deepcopy(body)
        meta = stored.setdefault("metadata", {})
        bucket = self._bucket(kind, namespace)

        name = meta.get("name")
        if not name:
            prefix = meta.get("generateName")
            if not prefix:
                raise InvalidInputError("metadata.name or metadata.generateName is required", status_code=422)
            name = self._generate_name(bucket, prefix)
        elif name in bucket:
            raise InvalidInputError(f"{kind.plural} {namespace}/{name} already exists", status_code=409)

        meta.update(
            name=name,
            namespace=namespace,
            uid=str(uuid.uuid4()),
            resourceVersion=self._next_version(),
            creationTimestamp=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        )
        stored.setdefault("apiVersion", kind.api_version)
        if kind.kind:
            stored.setdefault("kind", kind.kind)
        bucket[name] = stored
        return copy.deepcopy(stored)

    async def delete_namespaced(self, kind: ResourceKind, namespace: str, name: str) -> None:
        if self._bucket(kind, namespace).pop(name, None) is None:
            raise NotFoundError(f"{kind.plural} {namespace}/{name} not found", status_code=404)

    async def patch_namespaced(
        self, kind: ResourceKind, namespace: str, name: str, patch: RawResource
    ) -> RawResource:
        item = self._bucket(kind, namespace).get(name)
        if item is None:
            raise NotFoundError(f"{kind.plural} {namespace}/{name} not found", status_code=404)
        _merge_patch(item, patch)
        item.setdefault("metadata", {})["resourceVersion"] = self._next_version()
        return copy.deepcopy(item)

    async def read_pod_log(
        self, namespace: str, pod_name: str, container: Optional[str] = None
    ) -> str:
        for key in ((namespace, pod_name, container or ""), (namespace, pod_name, "")):
            if key in self._pod_logs:
                return self._pod_logs[key]
        raise NotFoundError(f"pods {namespace}/{pod_name} log not found", status_code=404)

    async def aclose(self) -> None:
        pass
