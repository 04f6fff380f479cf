"""
API routes for client authentication configuration.
"""

from fastapi import APIRouter, Depends, status

from src.service.config import Settings
from src.service.dependencies import get_settings
from src.service.models import OIDCConfigResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get(
    "/oidc",
    response_model=OIDCConfigResponse,
    status_code=status.HTTP_200_OK,
    summary="Get the OpenID Connect client configuration",
    description="Returns the public settings a front end needs to start the OpenID Connect login flow.",
    operation_id="get_oidc_config",
)
def get_oidc_config(settings: Settings = Depends(get_settings)) -> OIDCConfigResponse:
    oidc = settings.oidc
    return OIDCConfigResponse(
        authority=oidc.authority,
        client_id=oidc.client_id,
        scopes=oidc.scopes,
        audience=oidc.audience,
    )
