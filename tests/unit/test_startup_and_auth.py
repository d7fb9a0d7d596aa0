"""
Unit tests for shared/startup_validator.py and api/auth.py.
"""

import pytest
from fastapi import HTTPException
from jose import jwt

from api.auth import (
    JWT_ALGORITHM,
    create_access_token,
    hash_password,
    verify_password,
    verify_token,
)
from shared.config import Settings
from shared.startup_validator import StartupValidationError, validate_startup_config

GOOD_SECRET = "0123456789abcdef0123456789abcdef"


def make_settings(**overrides) -> Settings:
    data = {
        "DATABASE_URL": "postgresql+asyncpg://studio:pw@localhost:5432/studio",
        "JWT_SECRET": GOOD_SECRET,
        "STUDIO_TIMEZONE": "America/Lima",
        "CORS_ORIGINS": "http://localhost:5173",
    }
    data.update(overrides)
    return Settings(**data)


# ============================================================================
# Startup validation
# ============================================================================


class TestStartupValidation:
    def test_valid_configuration_passes(self):
        results = validate_startup_config(make_settings())

        assert all(results.values())

    def test_sync_driver_blocks_startup(self):
        with pytest.raises(StartupValidationError, match="asyncpg"):
            validate_startup_config(make_settings(DATABASE_URL="postgresql://u:p@localhost/db"))

    def test_placeholder_secret_blocks_startup(self):
        with pytest.raises(StartupValidationError, match="JWT_SECRET"):
            validate_startup_config(make_settings(JWT_SECRET="change-me"))

    def test_unknown_timezone_blocks_startup(self):
        with pytest.raises(StartupValidationError, match="STUDIO_TIMEZONE"):
            validate_startup_config(make_settings(STUDIO_TIMEZONE="Mars/Olympus_Mons"))

    def test_short_secret_and_wildcard_cors_only_warn(self):
        results = validate_startup_config(make_settings(JWT_SECRET="short-secret", CORS_ORIGINS="*"))

        assert results["jwt_secret"] is True
        assert results["jwt_secret_length"] is False
        assert results["cors_restricted"] is False


# ============================================================================
# Tokens and passwords
# ============================================================================


class TestAuth:
    def test_token_round_trip_carries_user(self):
        token, expires_in = create_access_token("ink-admin", "user-1")

        payload = verify_token(token)

        assert payload["sub"] == "ink-admin"
        assert payload["uid"] == "user-1"
        assert expires_in == 8 * 3600
        assert payload["exp"] - payload["iat"] == expires_in

    def test_tampered_token_rejected(self):
        token, _ = create_access_token("ink-admin", "user-1")

        with pytest.raises(HTTPException) as exc_info:
            verify_token(token + "x")

        assert exc_info.value.status_code == 401

    def test_foreign_secret_rejected(self):
        token = jwt.encode({"sub": "x", "type": "access"}, "another-secret", algorithm=JWT_ALGORITHM)

        with pytest.raises(HTTPException):
            verify_token(token)

    def test_expired_token_rejected(self):
        from shared.config import get_settings

        token = jwt.encode(
            {"sub": "x", "type": "access", "exp": 1, "iat": 0},
            get_settings().JWT_SECRET,
            algorithm=JWT_ALGORITHM,
        )

        with pytest.raises(HTTPException):
            verify_token(token)

    def test_password_hash_verifies(self):
        password_hash = hash_password("secret123")

        assert verify_password("secret123", password_hash) is True
        assert verify_password("wrong", password_hash) is False
        assert verify_password("secret123", "not-a-hash") is False
