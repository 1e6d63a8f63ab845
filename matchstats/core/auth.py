"""
HTTP basic authentication for the admin surface.

Credentials come from ADMIN_USERNAME / ADMIN_PASSWORD. When they are not
configured the gate is open in development and closed in production.
"""
import secrets
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from starlette.requests import Request

from matchstats.core.config import settings
from matchstats.core.logging import get_logger

logger = get_logger(__name__)

basic_auth = HTTPBasic(auto_error=False, realm="matchstats admin")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": 'Basic realm="matchstats admin"'},
    )


def require_admin(
    request: Request,
    credentials: Optional[HTTPBasicCredentials] = Security(basic_auth),
) -> str:
    """
    Validate admin basic-auth credentials.

    Returns:
        The authenticated username

    Raises:
        HTTPException: 401 if credentials are missing or invalid
    """
    if not settings.admin_auth_configured():
        if settings.is_production():
            logger.warning("Admin credentials not configured in production - rejecting request")
            raise _unauthorized("Admin credentials are not configured.")
        logger.debug("Admin credentials not configured - allowing request in development mode")
        return "_dev_skip_"

    if credentials is None:
        raise _unauthorized("Authentication required.")

    username_ok = secrets.compare_digest(
        credentials.username.encode("utf-8"), settings.ADMIN_USERNAME.encode("utf-8")
    )
    password_ok = secrets.compare_digest(
        credentials.password.encode("utf-8"), settings.ADMIN_PASSWORD.encode("utf-8")
    )
    if not (username_ok and password_ok):
        logger.warning(
            f"Invalid admin credentials from {request.client.host if request.client else 'unknown'}"
        )
        raise _unauthorized("Invalid credentials.")

    return credentials.username
