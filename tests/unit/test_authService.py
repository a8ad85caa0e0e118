"""
Unit tests for the authentication service.

Covers password hashing, token claims, and the failure paths of
``login`` / ``register`` against a mocked database session.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from manpower.core.config import settings
from manpower.services import auth_service
from manpower.services.auth_service import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidTokenError,
)
from tests.conftest import scalar_result


class TestPasswordHashing:

    def test_hash_and_verify(self):
        hashed = auth_service.hash_password("correct horse")
        assert hashed != "correct horse"
        assert auth_service.verify_password("correct horse", hashed) is True
        assert auth_service.verify_password("wrong horse", hashed) is False

    def test_hashes_are_salted(self):
        assert auth_service.hash_password("same") != auth_service.hash_password("same")


class TestTokens:

    def test_access_token_claims(self, sample_client):
        session_id = uuid.uuid4()
        token, expires_at = auth_service.create_access_token(sample_client, session_id)
        payload = auth_service.decode_token(token)

        assert payload["sub"] == str(sample_client.id)
        assert payload["sid"] == str(session_id)
        assert payload["role"] == "client"
        assert payload["type"] == "access"
        assert expires_at > datetime.now(timezone.utc)

    def test_refresh_token_outlives_access_token(self, sample_employee):
        session_id = uuid.uuid4()
        _, access_expires = auth_service.create_access_token(sample_employee, session_id)
        _, refresh_expires = auth_service.create_refresh_token(sample_employee, session_id)
        assert refresh_expires > access_expires

    def test_create_tokens_shape(self, sample_client):
        session_id = uuid.uuid4()
        tokens = auth_service.create_tokens(sample_client, session_id)
        assert set(tokens) == {"access_token", "refresh_token", "expires_at", "session_id"}
        assert tokens["session_id"] == session_id

    def test_expired_token_rejected(self):
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.ExpiredSignatureError):
            auth_service.decode_token(token)

    def test_foreign_signature_rejected(self):
        token = jwt.encode({"sub": "x"}, "some-other-secret", algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError):
            auth_service.decode_token(token)


@pytest.mark.asyncio
class TestTokenResolution:

    async def test_refresh_token_is_not_an_access_token(self, mock_db, sample_client):
        refresh, _ = auth_service.create_refresh_token(sample_client, uuid.uuid4())
        with pytest.raises(InvalidTokenError, match="expected 'access'"):
            await auth_service.get_current_user(mock_db, refresh)

    async def test_revoked_session_rejected(self, mock_db, sample_client):
        token, _ = auth_service.create_access_token(sample_client, uuid.uuid4())
        mock_db.execute.return_value = scalar_result(None)
        with pytest.raises(InvalidTokenError, match="signed out"):
            await auth_service.get_current_user(mock_db, token)

    async def test_unusable_token_resolves_to_none(self, mock_db):
        assert await auth_service.get_current_session(mock_db, None) is None
        assert await auth_service.get_current_session(mock_db, "garbage") is None


@pytest.mark.asyncio
class TestCredentials:

    async def test_unknown_email(self, mock_db):
        result = scalar_result(None)
        result.scalars.return_value.first.return_value = None
        mock_db.execute.return_value = result
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(mock_db, "nobody@example.com", "pw")

    async def test_wrong_password(self, mock_db, sample_client):
        sample_client.password_hash = auth_service.hash_password("right")
        result = scalar_result(sample_client)
        result.scalars.return_value.first.return_value = sample_client
        mock_db.execute.return_value = result
        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(mock_db, sample_client.email, "wrong")

    async def test_duplicate_email(self, mock_db, sample_client):
        result = scalar_result(sample_client)
        result.scalars.return_value.first.return_value = sample_client
        mock_db.execute.return_value = result
        with pytest.raises(EmailAlreadyRegisteredError):
            await auth_service.register(mock_db, "Client@Example.com", "pw", "Casey", "client")
        mock_db.add.assert_not_called()

    async def test_unknown_role(self, mock_db):
        with pytest.raises(ValueError, match="Invalid role"):
            await auth_service.register(mock_db, "a@example.com", "pw", "A", "admin")
