"""
Pydantic models for the Chefify API.
"""

import uuid
from datetime import datetime
from typing import Annotated, List

from pydantic import BaseModel, Field

from src.users.user_service import MAX_DISPLAY_NAME_LENGTH


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: Annotated[int | None, Field(description="Error code")] = None
    error_type: Annotated[str | None, Field(description="Error type")] = None
    message: Annotated[str | None, Field(description="Error message")] = None


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Annotated[str, Field(description="Health status")]


class OIDCConfigResponse(BaseModel):
    """Public OpenID Connect client configuration."""

    authority: Annotated[str, Field(description="Base URL of the OpenID Connect provider")]
    client_id: Annotated[str, Field(description="Client ID to use when logging in")]
    scopes: Annotated[List[str], Field(description="Scopes to request when logging in")]
    audience: Annotated[
        str | None, Field(description="Audience to request tokens for, if any")
    ] = None


class UserResponse(BaseModel):
    """Response model for a Chefify user."""

    id: Annotated[uuid.UUID, Field(description="The user's ID")]
    display_name: Annotated[str, Field(description="The user's display name")]
    email: Annotated[str | None, Field(description="The user's email address")] = None
    created_at: Annotated[datetime, Field(description="When the user first signed in")]
    last_login_at: Annotated[datetime, Field(description="When the user last signed in")]


class UpdateProfileRequest(BaseModel):
    """Request model for updating the caller's profile."""

    display_name: Annotated[
        str,
        Field(
            description="The new display name. Surrounding whitespace is stripped and at most "
            + f"{MAX_DISPLAY_NAME_LENGTH} characters may remain",
        ),
    ]
