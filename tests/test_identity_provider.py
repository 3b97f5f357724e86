import json

import httpx
import pytest

from app.core.errors import UpstreamError
from app.services.identity_provider import ClerkIdentityProvider, IdentityProvider


def clerk_user(user_id, email="someone@example.com", **metadata):
    return {
        "id": user_id,
        "first_name": "Grace",
        "last_name": "Hopper",
        "username": None,
        "email_addresses": [{"id": "idn_1", "email_address": email}],
        "public_metadata": metadata,
    }


def provider_for(handler):
    return ClerkIdentityProvider("sk_test", "https://clerk.test/v1", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_get_user_parses_identity():
    def handler(request):
        assert request.headers["Authorization"] == "Bearer sk_test"
        assert request.url.path == "/v1/users/user_1"
        return httpx.Response(200, json=clerk_user("user_1", role="member", department_id="dept-1"))

    identity = await provider_for(handler).get_user("user_1")

    assert identity.id == "user_1"
    assert identity.primary_email == "someone@example.com"
    assert identity.full_name == "Grace Hopper"
    assert identity.public_metadata["department_id"] == "dept-1"


@pytest.mark.asyncio
async def test_get_missing_user_is_none():
    identity = await provider_for(lambda request: httpx.Response(404, json={"errors": []})).get_user("user_x")
    assert identity is None


@pytest.mark.asyncio
async def test_server_error_raises_upstream():
    with pytest.raises(UpstreamError):
        await provider_for(lambda request: httpx.Response(503, text="down")).get_user("user_1")


@pytest.mark.asyncio
async def test_network_error_raises_upstream():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError):
        await provider_for(handler).list_users()


@pytest.mark.asyncio
async def test_list_users_follows_pages():
    seen_offsets = []

    def handler(request):
        offset = int(request.url.params["offset"])
        seen_offsets.append(offset)
        count = 100 if offset == 0 else 5
        return httpx.Response(200, json=[clerk_user(f"user_{offset + i}") for i in range(count)])

    users = await provider_for(handler).list_users()

    assert len(users) == 105
    assert seen_offsets == [0, 100]


@pytest.mark.asyncio
async def test_update_user_sends_only_given_fields():
    captured = {}

    def handler(request):
        captured["method"] = request.method
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=clerk_user("user_1", role="admin"))

    await provider_for(handler).update_user("user_1", public_metadata={"role": "admin"})

    assert captured["method"] == "PATCH"
    assert captured["body"] == {"public_metadata": {"role": "admin"}}


@pytest.mark.asyncio
async def test_delete_user():
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path))
        return httpx.Response(200, json={"id": "user_1", "deleted": True})

    await provider_for(handler).delete_user("user_1")

    assert calls == [("DELETE", "/v1/users/user_1")]


def test_provider_interface_cannot_be_instantiated():
    with pytest.raises(TypeError):
        IdentityProvider()


def test_partial_provider_cannot_be_instantiated():
    class ReadOnly(IdentityProvider):
        async def get_user(self, user_id):
            return None

    with pytest.raises(TypeError):
        ReadOnly()
