"""
Main application module for the Chefify API.
"""

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.security.utils import get_authorization_scheme_param
from fastapi_mcp import FastApiMCP
from starlette.middleware.base import BaseHTTPMiddleware

from src.routes import auth, health, users
from src.service import app_state
from src.service.config import Configuration, Settings, configure_logging, get_settings
from src.service.exception_handlers import (
    chefify_error_handler,
    universal_error_handler,
    validation_error_handler,
)
from src.service.exceptions import ChefifyError, InvalidAuthHeaderError
from src.service.models import ErrorResponse

# Configure logging
configure_logging()
logger = logging.getLogger(__name__)

# Middleware constants
_SCHEME = "Bearer"


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware to authenticate users and set them in the request state."""

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            request_user = await self._authenticate(request)
        except ChefifyError as e:
            # middleware runs outside the routers' exception handling
            return await chefify_error_handler(request, e)
        app_state.set_request_user(request, request_user)

        return await call_next(request)

    async def _authenticate(self, request: Request):
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return None

        scheme, credentials = get_authorization_scheme_param(auth_header)
        if not (scheme and credentials):
            raise InvalidAuthHeaderError(
                f"Authorization header requires {_SCHEME} scheme followed by token"
            )
        if scheme.lower() != _SCHEME.lower():
            # don't put the received scheme in the error message, might be a token
            raise InvalidAuthHeaderError(
                f"Authorization header requires {_SCHEME} scheme"
            )

        app_state_obj = app_state.get_app_state(request)
        return await app_state_obj.auth.get_user(credentials)


def create_application(
    configure_services: app_state.ConfigureServices | None = None,
    configuration: Configuration | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    configure_services - a function that may add or replace service registrations, e.g. to
        swap in test doubles.
    configuration - the configuration to use instead of the settings files and environment.
    """
    if configuration is not None:
        settings = Settings.from_configuration(configuration)
    else:
        settings = get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(_):
        logger.info("Starting application")
        await app_state.build_app(app, configure_services, configuration)
        logger.info("Application started")
        try:
            yield
        finally:
            logger.info("Shutting down application")
            await app_state.destroy_app_state(app)
            logger.info("Application shut down")

    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=settings.api_version,
        responses={
            "4XX": {"model": ErrorResponse},
            "5XX": {"model": ErrorResponse},
        },
        # when mounted under a root path, the root app owns the lifespan
        lifespan=None if settings.service_root_path else lifespan,
    )

    # Add exception handlers
    app.add_exception_handler(ChefifyError, chefify_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, universal_error_handler)

    # Add middleware
    app.add_middleware(GZipMiddleware)
    app.add_middleware(AuthMiddleware)

    # Include routers
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)

    # MCP Server Integration
    logger.info("Setting up MCP server...")
    mcp = FastApiMCP(
        app,
        name="ChefifyMCP",
        description="MCP Server for Chefify user operations",
        include_tags=["Users"],  # Only include endpoints tagged with "Users"
    )
    mcp.mount()
    logger.info("MCP server mounted")

    if settings.service_root_path:
        # Mount the app under the root path so the MCP client sees the prefix once,
        # e.g. /apis/chefify/mcp rather than /apis/chefify/apis/chefify/mcp
        root_app = FastAPI(lifespan=lifespan)
        root_app.mount(settings.service_root_path, app)
        return root_app

    return app


if __name__ == "__main__":
    app_instance = create_application()
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))

    uvicorn.run(app_instance, host=host, port=port)
