"""
API routes for Chefify users.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, status

from src.service.dependencies import auth, get_user_service
from src.service.models import UpdateProfileRequest, UserResponse
from src.service.oidc_auth import OIDCUser
from src.users.user_service import UserService
from src.users.user_store import User

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["Users"])


def _to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        display_name=user.display_name,
        email=user.email,
        created_at=user.created_at,
        last_login_at=user.last_login_at,
    )


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get the current user",
    description="Signs in the caller, creating their Chefify user on first use, and returns it.",
    operation_id="get_current_user",
)
def get_current_user(
    user_service: UserService = Depends(get_user_service),
    identity: OIDCUser = Depends(auth),
) -> UserResponse:
    return _to_response(user_service.sign_in(identity))


@router.patch(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Update the current user's profile",
    description="Updates the display name of the caller.",
    operation_id="update_current_user",
)
def update_current_user(
    request: UpdateProfileRequest,
    user_service: UserService = Depends(get_user_service),
    identity: OIDCUser = Depends(auth),
) -> UserResponse:
    user = user_service.sign_in(identity)
    logger.info("Updating profile of user %s", user.id)
    return _to_response(user_service.update_profile(user.id, request.display_name))


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a user",
    description="Returns the Chefify user with the given ID.",
    operation_id="get_user",
)
def get_user(
    user_id: uuid.UUID,
    user_service: UserService = Depends(get_user_service),
    identity: OIDCUser = Depends(auth),
) -> UserResponse:
    return _to_response(user_service.get_user(user_id))
