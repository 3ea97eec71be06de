"""Security utilities: admin JWT auth, webhook signatures and the settlement secret."""

import base64
import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from lunchbot.core.config import settings

bearer_scheme: HTTPBearer = HTTPBearer(auto_error=False)

ADMIN_SUBJECT: str = "admin"


def verify_admin_credentials(username: str, password: str) -> bool:
    """Compare against the configured admin account; unset credentials never match."""
    if not settings.admin_username or not settings.admin_password:
        return False
    username_ok = hmac.compare_digest(username.encode("utf-8"), settings.admin_username.encode("utf-8"))
    password_ok = hmac.compare_digest(password.encode("utf-8"), settings.admin_password.encode("utf-8"))
    return username_ok and password_ok


def create_access_token(data: dict[str, Any]) -> str:
    """Create a signed JWT access token from payload data."""
    to_encode: dict[str, Any] = data.copy()
    expire: datetime = datetime.now(timezone.utc) + timedelta(
        minutes=settings.jwt_expire_minutes
    )
    to_encode.update({"exp": expire})
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def verify_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT token payload."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from exc

    return payload


def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """Resolve the admin subject from the Authorization header."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin authentication required",
        )
    payload: dict[str, Any] = verify_token(credentials.credentials)
    if payload.get("sub") != ADMIN_SUBJECT:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions",
        )
    return ADMIN_SUBJECT


def verify_line_signature(channel_secret: str, body: bytes, signature: str) -> bool:
    """Check ``X-Line-Signature``: base64 HMAC-SHA256 of the raw body."""
    if not channel_secret or not signature:
        return False
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("utf-8")
    return hmac.compare_digest(expected, signature)


def require_settlement_secret(
    x_settlement_secret: str | None = Header(default=None),
) -> None:
    """Guard for the scheduler-facing settlement trigger."""
    if not settings.settlement_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Settlement trigger is not configured",
        )
    if x_settlement_secret is None or not hmac.compare_digest(x_settlement_secret, settings.settlement_secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid settlement secret",
        )
