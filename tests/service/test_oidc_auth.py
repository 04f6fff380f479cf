"""Tests for the OIDC auth module."""

import types

import httpx
import pytest

from src.service.config import OIDCSettings
from src.service.exceptions import InvalidTokenError, OIDCProviderError
from src.service import oidc_auth
from src.service.oidc_auth import OIDCAuth, OIDCUser
from tests.oidc_provider import AUTHORITY, fake_oidc_provider


class CountingTransport(httpx.MockTransport):
    def __init__(self, handler):
        self.calls = []

        def counting(request):
            self.calls.append(str(request.url))
            return handler(request)

        super().__init__(counting)


def _auth(handler=fake_oidc_provider, **settings):
    transport = CountingTransport(handler)
    oidc = OIDCSettings(authority=AUTHORITY + "/", client_id="chefify-api", **settings)
    return OIDCAuth(oidc, client=httpx.AsyncClient(transport=transport)), transport


async def test_discover_fetches_once():
    auth, transport = _auth()

    first = await auth.discover()
    second = await auth.discover()

    assert first["issuer"] == AUTHORITY
    assert first is second
    assert transport.calls == [AUTHORITY + "/.well-known/openid-configuration"]


async def test_get_user_maps_claims():
    auth, _ = _auth()

    user = await auth.get_user("alice-token")

    assert user == OIDCUser(
        subject="alice-sub",
        email="alice@example.com",
        name="Alice Baker",
        roles=frozenset({"user"}),
    )


async def test_get_user_reads_realm_roles():
    auth, _ = _auth()

    user = await auth.get_user("bob-token")

    assert user.roles == frozenset({"user", "admin"})
    assert user.name is None
    assert user.has_roles(["admin"])
    assert not user.has_roles(["admin", "chef"])


async def test_get_user_caches_by_token():
    auth, transport = _auth()

    await auth.get_user("alice-token")
    await auth.get_user("alice-token")

    assert len(transport.calls) == 2  # discovery + one userinfo call


async def test_cache_evicts_oldest_entry():
    auth, transport = _auth(cache_max_size=1)

    await auth.get_user("alice-token")
    await auth.get_user("bob-token")
    await auth.get_user("alice-token")

    assert len(transport.calls) == 4


async def test_rejected_token_raises():
    auth, _ = _auth()

    with pytest.raises(InvalidTokenError, match="rejected"):
        await auth.get_user("unknown-token")


async def test_empty_token_raises():
    auth, _ = _auth()

    with pytest.raises(InvalidTokenError):
        await auth.get_user("")


async def test_userinfo_without_subject_raises():
    def handler(request):
        if request.url.path.endswith("userinfo"):
            return httpx.Response(200, json={"email": "nobody@example.com"})
        return fake_oidc_provider(request)

    auth, _ = _auth(handler)

    with pytest.raises(InvalidTokenError, match="subject"):
        await auth.get_user("token")


async def test_userinfo_server_error_raises_provider_error():
    def handler(request):
        if request.url.path.endswith("userinfo"):
            return httpx.Response(502)
        return fake_oidc_provider(request)

    auth, _ = _auth(handler)

    with pytest.raises(OIDCProviderError, match="502"):
        await auth.get_user("alice-token")


async def test_discovery_failure_raises_provider_error():
    auth, _ = _auth(lambda request: httpx.Response(500))

    with pytest.raises(OIDCProviderError, match="status 500"):
        await auth.discover()


async def test_discovery_transport_error_raises_provider_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    auth, _ = _auth(handler)

    with pytest.raises(OIDCProviderError, match="Could not contact"):
        await auth.get_user("alice-token")


async def test_discovery_requires_userinfo_endpoint():
    auth, _ = _auth(lambda request: httpx.Response(200, json={"issuer": AUTHORITY}))

    with pytest.raises(OIDCProviderError, match="userinfo_endpoint"):
        await auth.discover()


async def test_discovery_rejects_issuer_mismatch():
    doc = {"issuer": "https://evil.example.com", "userinfo_endpoint": AUTHORITY + "/userinfo"}
    auth, _ = _auth(lambda request: httpx.Response(200, json=doc))

    with pytest.raises(OIDCProviderError, match="does not match"):
        await auth.discover()


async def test_issuer_mismatch_allowed_without_https_metadata():
    doc = {"issuer": "http://keycloak:8080/realms/chefify", "userinfo_endpoint": AUTHORITY + "/userinfo"}
    auth, _ = _auth(lambda request: httpx.Response(200, json=doc), require_https_metadata=False)

    assert (await auth.discover())["issuer"] == doc["issuer"]


async def test_aclose_leaves_injected_client_open():
    auth, _ = _auth()
    client = auth._client

    await auth.aclose()

    assert not client.is_closed
    assert auth.authority == AUTHORITY
    assert auth.client_id == "chefify-api"


async def test_cached_user_expires(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(oidc_auth, "time", types.SimpleNamespace(monotonic=lambda: now[0]))
    auth, transport = _auth(cache_ttl_seconds=60)

    await auth.get_user("alice-token")
    now[0] += 59
    await auth.get_user("alice-token")
    assert len(transport.calls) == 2

    now[0] += 1
    user = await auth.get_user("alice-token")

    assert user.subject == "alice-sub"
    assert len(transport.calls) == 3  # discovery is not repeated
