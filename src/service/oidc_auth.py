"""
Resolves bearer tokens to users through an OpenID Connect provider.

The provider's discovery document is fetched once from
``<authority>/.well-known/openid-configuration``; tokens are then resolved by calling the
provider's userinfo endpoint. Resolved users are cached by token hash.
"""

import asyncio
import hashlib
import logging
import time
from collections import OrderedDict
from typing import Any, NamedTuple

import httpx

from src.service.arg_checkers import not_falsy
from src.service.config import OIDCSettings
from src.service.exceptions import InvalidTokenError, OIDCProviderError

logger = logging.getLogger(__name__)

DISCOVERY_PATH = "/.well-known/openid-configuration"


class OIDCUser(NamedTuple):
    """An identity asserted by the OpenID Connect provider."""

    subject: str
    """ The provider's unique, stable identifier for the user (the ``sub`` claim). """
    email: str | None = None
    """ The user's email address, if released by the provider. """
    name: str | None = None
    """ The user's full name, if released by the provider. """
    roles: frozenset[str] = frozenset()
    """ The roles granted to the user. """

    def has_roles(self, roles) -> bool:
        return set(roles).issubset(self.roles)


def _roles_from_claims(claims: dict[str, Any]) -> frozenset[str]:
    roles = claims.get("roles")
    if not isinstance(roles, list):
        realm_access = claims.get("realm_access")
        roles = realm_access.get("roles") if isinstance(realm_access, dict) else None
    if not isinstance(roles, list):
        return frozenset()
    return frozenset(str(r) for r in roles)


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class OIDCAuth:
    """
    A client for an OpenID Connect provider.
    """

    def __init__(self, settings: OIDCSettings, client: httpx.AsyncClient | None = None):
        """
        Create the client.

        settings - the OIDC settings.
        client - the HTTP client to use. If None, a client is created and owned by this instance.
        """
        self._settings = not_falsy(settings, "settings")
        self._authority = settings.authority.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.timeout_seconds)
        self._metadata: dict[str, Any] | None = None
        self._metadata_lock = asyncio.Lock()
        self._cache: OrderedDict[str, tuple[OIDCUser, float]] = OrderedDict()

    @property
    def authority(self) -> str:
        return self._authority

    @property
    def client_id(self) -> str:
        return self._settings.client_id

    async def discover(self) -> dict[str, Any]:
        """
        Get the provider's discovery document, fetching it on first use.
        """
        if self._metadata is not None:
            return self._metadata
        async with self._metadata_lock:
            if self._metadata is None:
                self._metadata = await self._fetch_metadata()
        return self._metadata

    async def _fetch_metadata(self) -> dict[str, Any]:
        url = self._authority + DISCOVERY_PATH
        logger.info("Fetching OIDC discovery document from %s", url)
        try:
            res = await self._client.get(url)
        except httpx.HTTPError as e:
            raise OIDCProviderError(f"Could not contact the OIDC provider at {url}: {e}") from e
        if res.status_code != 200:
            raise OIDCProviderError(
                f"OIDC discovery at {url} failed with status {res.status_code}"
            )
        try:
            metadata = res.json()
        except ValueError as e:
            raise OIDCProviderError(f"OIDC discovery document at {url} is not JSON") from e
        if not isinstance(metadata, dict):
            raise OIDCProviderError(f"OIDC discovery document at {url} is not a JSON object")
        for key in ("issuer", "userinfo_endpoint"):
            if not metadata.get(key):
                raise OIDCProviderError(f"OIDC discovery document is missing '{key}'")
        if (
            self._settings.require_https_metadata
            and metadata["issuer"].rstrip("/") != self._authority
        ):
            raise OIDCProviderError(
                f"OIDC issuer {metadata['issuer']} does not match authority {self._authority}"
            )
        return metadata

    def _get_cached(self, key: str) -> OIDCUser | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        user, expires = entry
        if expires <= time.monotonic():
            del self._cache[key]
            return None
        return user

    def _put_cached(self, key: str, user: OIDCUser):
        self._cache[key] = (user, time.monotonic() + self._settings.cache_ttl_seconds)
        self._cache.move_to_end(key)
        while len(self._cache) > self._settings.cache_max_size:
            self._cache.popitem(last=False)

    async def get_user(self, token: str) -> OIDCUser:
        """
        Get the user for a bearer token.

        Raises InvalidTokenError if the provider rejects the token and OIDCProviderError if
        the provider cannot be used.
        """
        if not token:
            raise InvalidTokenError("Token is required")
        key = _hash_token(token)
        user = self._get_cached(key)
        if user:
            return user

        metadata = await self.discover()
        try:
            res = await self._client.get(
                metadata["userinfo_endpoint"],
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            raise OIDCProviderError(f"Could not contact the OIDC userinfo endpoint: {e}") from e
        if res.status_code in (401, 403):
            raise InvalidTokenError("The OIDC provider rejected the token")
        if not res.is_success:
            raise OIDCProviderError(
                f"OIDC userinfo request failed with status {res.status_code}"
            )
        try:
            claims = res.json()
        except ValueError as e:
            raise OIDCProviderError("OIDC userinfo response is not JSON") from e
        if not isinstance(claims, dict) or not claims.get("sub"):
            raise InvalidTokenError("OIDC userinfo response does not identify a subject")

        user = OIDCUser(
            subject=str(claims["sub"]),
            email=claims.get("email"),
            name=claims.get("name"),
            roles=_roles_from_claims(claims),
        )
        self._put_cached(key, user)
        return user

    async def aclose(self):
        """Close the HTTP client if it is owned by this instance."""
        if self._owns_client:
            await self._client.aclose()
