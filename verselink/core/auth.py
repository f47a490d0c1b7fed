"""Authentication dependencies for FastAPI routes.

Access tokens are HS256 (by default) JWTs signed with the shared
``JWT_SECRET``; the ``sub`` claim is the owner ID of every note and
collection the request touches.
"""

from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from verselink.core.config import settings
from verselink.schemas.auth import CurrentUser, JWTClaims
from verselink.utils.logging import get_logger

LOGGER = get_logger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> JWTClaims:
    """Verify a token's signature and expiry and return its claims.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired or no
            secret is configured
    """
    if not settings.auth.jwt_secret:
        raise jwt.InvalidTokenError("JWT_SECRET is not configured")

    options = {"require": ["sub"], "verify_aud": bool(settings.auth.jwt_audience)}
    payload = jwt.decode(
        token,
        settings.auth.jwt_secret,
        algorithms=[settings.auth.jwt_algorithm],
        audience=settings.auth.jwt_audience,
        options=options,
    )
    return JWTClaims(**payload)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> CurrentUser:
    """Get the current authenticated user from the Bearer token.

    Args:
        credentials: HTTP Authorization credentials (automatically injected)

    Returns:
        CurrentUser: Authenticated user information

    Raises:
        HTTPException: If token is missing, invalid, or expired
    """
    if not credentials:
        LOGGER.warning("No authorization credentials provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        claims = decode_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        LOGGER.warning(f"Invalid token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    user = CurrentUser(id=claims.sub, email=claims.email, role=claims.role or "user")
    LOGGER.debug(f"Authenticated user: {user.id}")
    return user
