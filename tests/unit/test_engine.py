"""Argo Server client tests."""

import json

import httpx
import pytest

from argonaut.config import ArgoServerConfig
from argonaut.engine import ArgoServerClient
from argonaut.errors import ConfigurationError, NotFoundError, UnavailableError
from conftest import raw_workflow

SERVER = ArgoServerConfig(base_url="https://argo.example.com/", token="secret")


def test_requires_url_and_token():
    with pytest.raises(ConfigurationError):
        ArgoServerClient(ArgoServerConfig(base_url="https://argo.example.com"))


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["retry", "stop"])
async def test_actions_put_to_workflow(action):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=raw_workflow("flow-3", "Running"))

    client = ArgoServerClient(SERVER, transport=httpx.MockTransport(handler))
    result = await getattr(client, action)("ci", "flow-3")
    await client.aclose()

    (request,) = seen
    assert request.method == "PUT"
    assert request.url.path == f"/api/v1/workflows/ci/flow-3/{action}"
    assert request.headers["Authorization"] == "Bearer secret"
    assert json.loads(request.content) == {"name": "flow-3", "namespace": "ci"}
    assert result["metadata"]["name"] == "flow-3"


@pytest.mark.asyncio
async def test_get_logs_for_pod():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["podName"] == "flow-1-111"
        return httpx.Response(200, text='{"result":{"content":"x"}}\n')

    client = ArgoServerClient(SERVER, transport=httpx.MockTransport(handler))

    assert await client.get_logs("ci", "flow-1", pod_name="flow-1-111") == '{"result":{"content":"x"}}\n'


@pytest.mark.asyncio
async def test_error_mapping():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/retry"):
            return httpx.Response(404, json={"code": 5, "message": "not found"})
        return httpx.Response(502, text="bad gateway")

    client = ArgoServerClient(SERVER, transport=httpx.MockTransport(handler))

    with pytest.raises(NotFoundError):
        await client.retry("ci", "missing")
    with pytest.raises(UnavailableError) as excinfo:
        await client.stop("ci", "flow-1")
    assert excinfo.value.status_code == 502


@pytest.mark.asyncio
async def test_unreachable_server():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = ArgoServerClient(SERVER, transport=httpx.MockTransport(handler))

    with pytest.raises(UnavailableError):
        await client.get_logs("ci", "flow-1")
