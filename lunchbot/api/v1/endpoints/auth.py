"""Admin authentication endpoint."""

import logging

from fastapi import APIRouter, HTTPException, status

from lunchbot.core.security import ADMIN_SUBJECT, create_access_token, verify_admin_credentials
from lunchbot.schemas.auth import LoginRequest, TokenResponse

logger = logging.getLogger(__name__)

router: APIRouter = APIRouter()


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest) -> TokenResponse:
    """Exchange the configured admin credentials for a bearer token."""
    if not verify_admin_credentials(payload.username, payload.password):
        logger.warning("[AUTH] Failed admin login for username=%s", payload.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    token: str = create_access_token({"sub": ADMIN_SUBJECT})
    return TokenResponse(access_token=token)
