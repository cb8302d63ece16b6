import logging

from fastapi import APIRouter

from app.api.schemas.auth import LoginRequest, TokenResponse
from app.core.errors import AuthError
from app.services.auth_service import login_admin

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(body: LoginRequest) -> TokenResponse:
    # Sync route: bcrypt verification runs in the threadpool
    result = login_admin(body.username, body.password)
    if not result:
        logger.warning("Failed admin login for username=%s", body.username)
        raise AuthError("Invalid credentials")
    access, expires_in = result
    return TokenResponse(access_token=access, expires_in=expires_in)
