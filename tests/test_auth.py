"""
Notesy Backend - Authentication Tests
======================================

What we test:
    ✅ Token round trip resolves the user id
    ✅ Expired, forged and malformed tokens are rejected with distinct messages
    ✅ Missing token and deleted user
    ✅ Role check
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.security import HTTPAuthorizationCredentials

from notesy.auth import authenticate, authorize, create_access_token, decode_access_token
from notesy.config import settings
from notesy.exceptions import AuthenticationError, PermissionDeniedError
from notesy.models.user import ROLE_ADMIN


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestTokens:

    def test_round_trip(self):
        user_id = uuid.uuid4()
        assert decode_access_token(create_access_token(user_id)) == user_id

    def test_expired(self):
        token = create_access_token(uuid.uuid4(), expires_in=timedelta(seconds=-5))
        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.message == "Token has expired, please log in again"

    def test_wrong_secret(self):
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            "some-other-secret-of-reasonable-length",
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.message == "Not authorized, token failed"

    def test_missing_subject(self):
        token = jwt.encode(
            {"exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(AuthenticationError):
            decode_access_token(token)

    def test_subject_not_a_uuid(self):
        token = jwt.encode(
            {"sub": "42", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.message == "Not authorized, token failed"

    def test_garbage(self):
        with pytest.raises(AuthenticationError):
            decode_access_token("not.a.jwt")


class TestAuthenticate:

    @pytest.mark.asyncio
    async def test_resolves_user(self, db_session, student_user):
        user = await authenticate(db_session, _bearer(create_access_token(student_user.id)))
        assert user.id == student_user.id
        assert user.role == "student"

    @pytest.mark.asyncio
    async def test_no_token(self, db_session):
        with pytest.raises(AuthenticationError) as exc_info:
            await authenticate(db_session, None)
        assert exc_info.value.message == "Not authorized, no token"

    @pytest.mark.asyncio
    async def test_user_no_longer_exists(self, db_session):
        with pytest.raises(AuthenticationError) as exc_info:
            await authenticate(db_session, _bearer(create_access_token(uuid.uuid4())))
        assert exc_info.value.message == "User belonging to this token no longer exists"


class TestAuthorize:

    @pytest.mark.asyncio
    async def test_admin_allowed(self, admin_user):
        authorize(admin_user, ROLE_ADMIN)

    @pytest.mark.asyncio
    async def test_student_denied(self, student_user):
        with pytest.raises(PermissionDeniedError) as exc_info:
            authorize(student_user, ROLE_ADMIN)
        assert exc_info.value.message == "User role 'student' is not authorized to access this route"
