"""Unit tests for the identity provider client"""

import asyncio
import httpx
import pytest
from deckvault.domain.exceptions import IdentityProviderError, UnauthenticatedError
from deckvault.infrastructure.clients.identity import IdentityClient


def make_client(handler) -> IdentityClient:
    return IdentityClient(
        base_url="http://auth.test",
        api_key="anon-key",
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )


def test_resolves_user():
    """Test bearer token and api key are forwarded, user parsed"""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["authorization"] = request.headers["Authorization"]
        seen["apikey"] = request.headers["apikey"]
        return httpx.Response(200, json={"id": "user_1", "email": "one@example.com"})

    user = asyncio.run(make_client(handler).get_current_user("tok"))

    assert user.user_id == "user_1"
    assert user.email == "one@example.com"
    assert seen == {"path": "/auth/v1/user", "authorization": "Bearer tok", "apikey": "anon-key"}


@pytest.mark.parametrize("status_code", [401, 403])
def test_rejected_token(status_code: int):
    client = make_client(lambda request: httpx.Response(status_code, json={"msg": "bad jwt"}))

    with pytest.raises(UnauthenticatedError):
        asyncio.run(client.get_current_user("expired"))


def test_empty_token_not_sent():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(UnauthenticatedError):
        asyncio.run(make_client(handler).get_current_user(""))


def test_server_error():
    client = make_client(lambda request: httpx.Response(502))

    with pytest.raises(IdentityProviderError, match="502"):
        asyncio.run(client.get_current_user("tok"))


def test_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(IdentityProviderError, match="timeout"):
        asyncio.run(make_client(handler).get_current_user("tok"))


def test_connection_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(IdentityProviderError, match="unreachable"):
        asyncio.run(make_client(handler).get_current_user("tok"))


def test_malformed_payload():
    client = make_client(lambda request: httpx.Response(200, json={"email": "no-id@example.com"}))

    with pytest.raises(IdentityProviderError, match="Invalid user payload"):
        asyncio.run(client.get_current_user("tok"))


def test_non_object_payload():
    client = make_client(lambda request: httpx.Response(200, json=[{"id": "user_1"}]))

    with pytest.raises(IdentityProviderError, match="Invalid user payload"):
        asyncio.run(client.get_current_user("tok"))
