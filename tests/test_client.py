"""
Tests for the authenticated Formaloo HTTP client.
"""

import httpx
import pytest

from formaloo_flow.formaloo.auth import TOKEN_PATH
from formaloo_flow.formaloo.client import FormalooClient
from formaloo_flow.formaloo.errors import ApiRequestError, AuthenticationError, InvalidResponseError


@pytest.mark.asyncio
async def test_token_is_fetched_once_per_client(fake_api, self_issued):
    fake_api.add("GET", "/v3.0/forms/", {"data": {"forms": []}})

    async with FormalooClient(self_issued, transport=fake_api.transport) as client:
        await client.request("GET", "/v3.0/forms/")
        await client.request("GET", "/v3.0/forms/")

    assert len(fake_api.calls("POST", TOKEN_PATH)) == 1
    for request in fake_api.api_calls():
        assert request.headers["Authorization"] == f"JWT {fake_api.TOKEN}"
        assert request.headers["X-Api-Key"] == "key-123"
        assert "X-Workspace" not in request.headers


@pytest.mark.asyncio
async def test_each_client_fetches_a_fresh_token(fake_api, self_issued):
    fake_api.add("GET", "/v3.0/forms/", {"data": {"forms": []}})

    for _ in range(2):
        async with FormalooClient(self_issued, transport=fake_api.transport) as client:
            await client.request("GET", "/v3.0/forms/")

    assert len(fake_api.calls("POST", TOKEN_PATH)) == 2


@pytest.mark.asyncio
async def test_pre_issued_sends_workspace_header(fake_api, pre_issued):
    fake_api.add("GET", "/v3.0/forms/", {"data": {"forms": []}})

    async with FormalooClient(pre_issued, transport=fake_api.transport) as client:
        await client.request("GET", "/v3.0/forms/")

    [request] = fake_api.requests
    assert request.headers["Authorization"] == "JWT pre-token-789"
    assert request.headers["X-Workspace"] == "ws-1"


def test_missing_credentials_fail_before_any_request():
    with pytest.raises(AuthenticationError):
        FormalooClient({})


@pytest.mark.asyncio
async def test_error_status_raises_api_request_error(fake_api, pre_issued):
    fake_api.add("GET", "/v3.0/forms/abc/", {"detail": "gone"}, status=410)

    async with FormalooClient(pre_issued, transport=fake_api.transport) as client:
        with pytest.raises(ApiRequestError) as exc_info:
            await client.request("GET", "/v3.0/forms/abc/")

    assert exc_info.value.status_code == 410
    assert exc_info.value.method == "GET"
    assert "gone" in exc_info.value.response_text


@pytest.mark.asyncio
async def test_transport_failure_raises_api_request_error(pre_issued):
    def fail(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async with FormalooClient(pre_issued, transport=httpx.MockTransport(fail)) as client:
        with pytest.raises(ApiRequestError) as exc_info:
            await client.request("GET", "/v3.0/forms/")

    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)


@pytest.mark.asyncio
async def test_non_json_body_raises_invalid_response(fake_api, pre_issued):
    fake_api.add("GET", "/v3.0/forms/", lambda request: httpx.Response(200, text="<html>"))

    async with FormalooClient(pre_issued, transport=fake_api.transport) as client:
        with pytest.raises(InvalidResponseError):
            await client.request("GET", "/v3.0/forms/")


@pytest.mark.asyncio
async def test_empty_body_decodes_to_empty_dict(fake_api, pre_issued):
    fake_api.add("DELETE", "/v3.0/forms/abc/webhooks/wh1/", None, status=204)

    async with FormalooClient(pre_issued, transport=fake_api.transport) as client:
        assert await client.request("DELETE", "/v3.0/forms/abc/webhooks/wh1/") == {}


@pytest.mark.asyncio
async def test_client_outside_context_manager_is_an_error(pre_issued):
    client = FormalooClient(pre_issued)
    with pytest.raises(RuntimeError):
        await client.request("GET", "/v3.0/forms/")
