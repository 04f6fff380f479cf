"""
Dependencies for FastAPI dependency injection.
"""

from typing import Iterator

from fastapi import Depends, Request

from src.service import app_state
from src.service.config import Settings
from src.service.container import ServiceScope
from src.service.http_bearer import OIDCHTTPBearer
from src.users.user_service import UserService

# Initialize the OIDC auth dependency for use in routes
auth = OIDCHTTPBearer()


def get_service_scope(request: Request) -> Iterator[ServiceScope]:
    """
    Get the service scope for the current request. The scope is closed when the request ends.
    """
    with app_state.get_app_state(request).services.create_scope() as scope:
        yield scope


def get_user_service(scope: ServiceScope = Depends(get_service_scope)) -> UserService:
    """
    Get the UserService instance for the current request.
    """
    return scope.service_provider.get_required_service(UserService)


def get_settings(request: Request) -> Settings:
    """
    Get the settings of the running application.
    """
    return app_state.get_app_state(request).settings
