"""A fake OpenID Connect provider served through httpx.MockTransport."""

import httpx

from src.service.config import Settings
from src.service.container import ServiceCollection
from src.service.oidc_auth import OIDCAuth

AUTHORITY = "https://auth.chefify.app/realms/chefify"
USERINFO_ENDPOINT = AUTHORITY + "/protocol/openid-connect/userinfo"

# token -> userinfo claims known to the fake provider
TOKENS = {
    "alice-token": {
        "sub": "alice-sub",
        "email": "alice@example.com",
        "name": "Alice Baker",
        "roles": ["user"],
    },
    "bob-token": {
        "sub": "bob-sub",
        "email": "bob@example.com",
        "realm_access": {"roles": ["user", "admin"]},
    },
}


def fake_oidc_provider(request: httpx.Request) -> httpx.Response:
    """Serve the discovery document and userinfo endpoint of the fake provider."""
    url = str(request.url)
    if url == AUTHORITY + "/.well-known/openid-configuration":
        return httpx.Response(
            200, json={"issuer": AUTHORITY, "userinfo_endpoint": USERINFO_ENDPOINT}
        )
    if url == USERINFO_ENDPOINT:
        scheme, _, token = request.headers.get("Authorization", "").partition(" ")
        if scheme != "Bearer" or token not in TOKENS:
            return httpx.Response(401, json={"error": "invalid_token"})
        return httpx.Response(200, json=TOKENS[token])
    return httpx.Response(404)


def use_fake_oidc_provider(services: ServiceCollection):
    """Replace the OIDCAuth registration with one talking to the fake provider."""
    services.add_singleton(
        OIDCAuth,
        lambda sp: OIDCAuth(
            sp.get_required_service(Settings).oidc,
            client=httpx.AsyncClient(transport=httpx.MockTransport(fake_oidc_provider)),
        ),
    )
