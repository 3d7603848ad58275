from datetime import datetime, timedelta, timezone

import jwt
import pytest

from trendcraft.services.auth_service import AuthError, AuthService, hash_password, verify_password
from tests.fakes import TEST_SECRET


class TestPasswords:
    @pytest.mark.unit
    def test_hash_and_verify(self):
        password_hash = hash_password("s3cret")
        assert password_hash != "s3cret"
        assert verify_password("s3cret", password_hash)
        assert not verify_password("wrong", password_hash)

    @pytest.mark.unit
    def test_malformed_hash_does_not_verify(self):
        assert not verify_password("s3cret", "not-a-bcrypt-hash")


class TestAuthService:
    """Test login and token handling."""

    @pytest.mark.unit
    def test_requires_secret(self, user_repository):
        with pytest.raises(ValueError):
            AuthService("", user_repository)

    @pytest.mark.unit
    def test_authenticate(self, auth_service, demo_user):
        assert auth_service.authenticate("demo@trendcraft.ai", "demo123").id == demo_user.id
        # Email lookup ignores case and surrounding whitespace
        assert auth_service.authenticate(" Demo@TrendCraft.ai ", "demo123").id == demo_user.id

    @pytest.mark.unit
    @pytest.mark.parametrize("email, password", [
        ("demo@trendcraft.ai", "wrong"),
        ("nobody@trendcraft.ai", "demo123"),
        ("demo@trendcraft.ai", ""),
        (None, "demo123"),
    ])
    def test_authenticate_rejects(self, auth_service, demo_user, email, password):
        with pytest.raises(AuthError, match="Invalid credentials"):
            auth_service.authenticate(email, password)

    @pytest.mark.unit
    def test_token_round_trip(self, auth_service, demo_user):
        token = auth_service.create_access_token(demo_user)
        payload = auth_service.verify_token(token)

        assert payload.id == demo_user.id
        assert payload.email == demo_user.email

    @pytest.mark.unit
    def test_token_expires_after_configured_hours(self, user_repository, demo_user):
        service = AuthService(TEST_SECRET, user_repository, expires_hours=2)
        claims = jwt.decode(service.create_access_token(demo_user), TEST_SECRET, algorithms=["HS256"])

        expires_in = claims["exp"] - datetime.now(timezone.utc).timestamp()
        assert timedelta(hours=1, minutes=59).total_seconds() < expires_in <= timedelta(hours=2).total_seconds()

    @pytest.mark.unit
    def test_expired_token(self, auth_service):
        token = jwt.encode(
            {"id": 1, "email": "demo@trendcraft.ai", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            TEST_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(AuthError, match="expired"):
            auth_service.verify_token(token)

    @pytest.mark.unit
    def test_wrong_signature(self, auth_service, demo_user):
        token = AuthService("another-signing-secret-abcdefghijklmnopqrstuvwxyz", auth_service.users).create_access_token(demo_user)
        with pytest.raises(AuthError):
            auth_service.verify_token(token)

    @pytest.mark.unit
    def test_garbage_token(self, auth_service):
        with pytest.raises(AuthError):
            auth_service.verify_token("not.a.jwt")

    @pytest.mark.unit
    def test_missing_claims(self, auth_service):
        token = jwt.encode({"sub": "1"}, TEST_SECRET, algorithm="HS256")
        with pytest.raises(AuthError, match="claims"):
            auth_service.verify_token(token)
