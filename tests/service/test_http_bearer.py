"""Tests for the OIDC HTTP bearer dependency."""

import pytest
from starlette.requests import Request

from src.service import app_state
from src.service.exceptions import MissingRoleError, MissingTokenError
from src.service.http_bearer import OIDCHTTPBearer
from src.service.oidc_auth import OIDCUser

CHEF = OIDCUser(subject="chef-sub", roles=frozenset({"user", "chef"}))


def _request(user=None) -> Request:
    request = Request({"type": "http", "method": "GET", "path": "/", "headers": []})
    app_state.set_request_user(request, user)
    return request


async def test_returns_request_user():
    assert await OIDCHTTPBearer()(_request(CHEF)) is CHEF


async def test_missing_user_raises():
    with pytest.raises(MissingTokenError):
        await OIDCHTTPBearer()(_request())


async def test_missing_user_without_auto_error():
    assert await OIDCHTTPBearer(auto_error=False)(_request()) is None


async def test_required_roles():
    assert await OIDCHTTPBearer(required_roles=["chef"])(_request(CHEF)) is CHEF
    with pytest.raises(MissingRoleError, match="admin"):
        await OIDCHTTPBearer(required_roles=["chef", "admin"])(_request(CHEF))


def test_request_user_defaults_to_none():
    request = Request({"type": "http", "method": "GET", "path": "/", "headers": []})

    assert app_state.get_request_user(request) is None
