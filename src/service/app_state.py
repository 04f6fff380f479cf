"""
Functions for creating and handling application state.

All functions assume that the application state has been appropriately initialized via
calling the build_app() method
"""

import logging
from typing import Callable, NamedTuple

from fastapi import FastAPI, Request

from src.service.config import Configuration, Settings, get_configuration
from src.service.container import ServiceCollection, ServiceProvider
from src.service.oidc_auth import OIDCAuth, OIDCUser
from src.users.user_service import DefaultUserService, UserService
from src.users.user_store import InMemoryUserRepository, UserRepository

logger = logging.getLogger(__name__)

ConfigureServices = Callable[[ServiceCollection], None]


class AppState(NamedTuple):
    """Holds application state."""

    settings: Settings
    configuration: Configuration
    services: ServiceProvider
    auth: OIDCAuth


class RequestState(NamedTuple):
    """Holds request specific state."""

    user: OIDCUser | None


def register_services(services: ServiceCollection, configuration: Configuration, settings: Settings):
    """
    Register the default application services.
    """
    services.add_singleton(Configuration, instance=configuration)
    services.add_singleton(Settings, instance=settings)
    services.add_singleton(OIDCAuth, lambda sp: OIDCAuth(sp.get_required_service(Settings).oidc))
    services.add_singleton(UserRepository, lambda sp: InMemoryUserRepository())
    services.add_scoped(
        UserService,
        lambda sp: DefaultUserService(sp.get_required_service(UserRepository)),
    )


async def build_app(
    app: FastAPI,
    configure_services: ConfigureServices | None = None,
    configuration: Configuration | None = None,
) -> None:
    """
    Build the application state.

    app - the FastAPI app.
    configure_services - a function that may add or replace service registrations after the
        defaults are registered.
    configuration - the configuration to use. If None, the configuration is loaded from the
        settings files and environment.
    """
    configuration = configuration or get_configuration()
    settings = Settings.from_configuration(configuration)
    logger.info(
        "Building application state for environment %s with OIDC authority %s",
        settings.environment,
        settings.oidc.authority,
    )
    services = ServiceCollection()
    register_services(services, configuration, settings)
    if configure_services:
        configure_services(services)
    provider = services.build_provider()
    auth = provider.get_required_service(OIDCAuth)
    app.state._chefify_state = AppState(
        settings=settings,
        configuration=configuration,
        services=provider,
        auth=auth,
    )


async def destroy_app_state(app: FastAPI):
    """
    Destroy the application state, shutting down services and releasing resources.
    """
    app_state = getattr(app.state, "_chefify_state", None)
    if app_state is None:
        return
    await app_state.auth.aclose()
    app_state.services.close()
    app.state._chefify_state = None


def get_app_state(r: Request) -> AppState:
    """
    Get the application state from a request.
    """
    return get_app_state_from_app(r.app)


def get_app_state_from_app(app: FastAPI) -> AppState:
    if not getattr(app.state, "_chefify_state", None):
        raise ValueError("App state has not been initialized")
    return app.state._chefify_state


def set_request_user(r: Request, user: OIDCUser | None):
    """Set the user for the current request."""
    r.state._chefify_request_state = RequestState(user=user)


def get_request_user(r: Request) -> OIDCUser | None:
    """Get the user for a request."""
    state = getattr(r.state, "_chefify_request_state", None)
    return state.user if state else None
