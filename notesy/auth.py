"""
Notesy Backend - Authentication & Authorization
================================================

What:  The two capability checks the note routes depend on:
           authenticate(request) -> user | AuthenticationError
           authorize(user, role) -> None | PermissionDeniedError
How:   Bearer JWTs (HS256, shared secret) are verified with PyJWT; the `sub`
       claim names a row in `users`, whose `role` decides authorization.
Who:   Route dependencies: get_current_user, require_role("admin").

Tokens are issued by the identity service. create_access_token exists for
operational scripts and tests that need a token signed with the same secret.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notesy.config import settings
from notesy.database import get_db_session
from notesy.exceptions import AuthenticationError, PermissionDeniedError, StoreError
from notesy.models.user import User

logger = logging.getLogger(__name__)

# auto_error=False: a missing header reaches get_current_user, which raises
# AuthenticationError so the response uses the app's error envelope
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: uuid.UUID, expires_in: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    lifetime = expires_in if expires_in is not None else timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verify a token and return the user id it was issued for.

    Raises:
        AuthenticationError: bad signature, expired, malformed, or no
        usable `sub` claim.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(message="Token has expired, please log in again")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected token: %s", str(e))
        raise AuthenticationError(message="Not authorized, token failed")

    try:
        return uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise AuthenticationError(message="Not authorized, token failed")


async def authenticate(
    db: AsyncSession,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> User:
    """Resolve the user behind a bearer token."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Not authorized, no token")

    user_id = decode_access_token(credentials.credentials)
    try:
        result = await db.execute(select(User).where(User.id == user_id))
    except SQLAlchemyError as e:
        logger.error("User lookup failed for %s: %s", user_id, str(e))
        raise StoreError(context={"error_type": type(e).__name__})

    user = result.scalar_one_or_none()
    if user is None:
        raise AuthenticationError(message="User belonging to this token no longer exists")
    return user


def authorize(user: User, *roles: str) -> None:
    """Pass if `user.role` is one of `roles`."""
    if user.role not in roles:
        logger.warning("User %s (role=%s) denied; requires %s", user.id, user.role, roles)
        raise PermissionDeniedError(role=user.role)


# ── FastAPI Dependencies ──────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    user = await authenticate(db, credentials)
    # Read back by the access log
    request.state.user_id = str(user.id)
    return user


def require_role(*roles: str) -> Callable[..., object]:
    """
    Dependency factory: authenticated user holding one of `roles`.

    Example:
        @router.delete("/{note_id}")
        async def delete_note(user: User = Depends(require_role("admin"))): ...
    """

    async def dependency(user: User = Depends(get_current_user)) -> User:
        authorize(user, *roles)
        return user

    return dependency
