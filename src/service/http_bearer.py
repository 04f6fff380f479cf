"""
A FastAPI security dependency that returns the user authenticated by the OIDC provider.

The token itself is resolved by the authentication middleware. This dependency only makes
the requirement visible to routes and OpenAPI and enforces required roles.
"""

from typing import Iterable

from fastapi.openapi.models import HTTPBearer as HTTPBearerModel
from fastapi.requests import Request
from fastapi.security.http import HTTPBase

from src.service import app_state
from src.service.exceptions import MissingRoleError, MissingTokenError
from src.service.oidc_auth import OIDCUser


class OIDCHTTPBearer(HTTPBase):
    """
    An HTTP bearer scheme backed by an OpenID Connect provider.
    """

    def __init__(
        self,
        *,
        required_roles: Iterable[str] | None = None,
        bearerFormat: str | None = None,
        scheme_name: str | None = None,
        description: str | None = None,
        auto_error: bool = True,
    ):
        self.model = HTTPBearerModel(bearerFormat=bearerFormat, description=description)
        self.scheme_name = scheme_name or self.__class__.__name__
        self.auto_error = auto_error
        self._required_roles = frozenset(required_roles or [])

    async def __call__(self, request: Request) -> OIDCUser | None:
        user = app_state.get_request_user(request)
        if not user:
            if not self.auto_error:
                return None
            raise MissingTokenError("Authorization header required")
        if not user.has_roles(self._required_roles):
            raise MissingRoleError(
                f"Missing required role(s): {', '.join(sorted(self._required_roles - user.roles))}"
            )
        return user
