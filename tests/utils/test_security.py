"""Tests for identity token verification."""

from datetime import timedelta

import pytest
from jose import jwt

from bookrats.config import Settings, get_settings
from bookrats.utils.security import (
    TokenError,
    create_identity_token,
    profile_from_claims,
    verify_identity_token,
)


class TestVerifyIdentityToken:

    def test_valid_token(self):
        token = create_identity_token("user-1", "a@example.com", name="Ada")

        claims = verify_identity_token(token)

        assert claims["sub"] == "user-1"
        assert claims["email"] == "a@example.com"
        assert claims["aud"] == "authenticated"

    def test_expired_token(self):
        token = create_identity_token("user-1", "a@example.com", expires_delta=timedelta(seconds=-10))

        with pytest.raises(TokenError) as exc_info:
            verify_identity_token(token)

        assert exc_info.value.code == "AUTH_TOKEN_EXPIRED"

    def test_wrong_secret(self):
        token = jwt.encode(
            {"sub": "user-1", "aud": "authenticated", "exp": 4102444800},
            "some-other-secret-that-is-long-enough!!",
            algorithm="HS256",
        )

        with pytest.raises(TokenError) as exc_info:
            verify_identity_token(token)

        assert exc_info.value.code == "AUTH_INVALID_TOKEN"

    def test_wrong_audience(self):
        secret = get_settings().identity_jwt_secret
        token = jwt.encode(
            {"sub": "user-1", "aud": "anon", "exp": 4102444800}, secret, algorithm="HS256"
        )

        with pytest.raises(TokenError) as exc_info:
            verify_identity_token(token)

        assert exc_info.value.code == "AUTH_INVALID_TOKEN"

    def test_audience_check_disabled(self):
        settings = Settings(
            database_url="sqlite+aiosqlite://",
            identity_jwt_secret=get_settings().identity_jwt_secret,
            identity_jwt_audience=None,
        )
        token = jwt.encode(
            {"sub": "user-1", "aud": "anything", "exp": 4102444800},
            settings.identity_jwt_secret,
            algorithm="HS256",
        )

        assert verify_identity_token(token, settings)["sub"] == "user-1"

    def test_missing_subject(self):
        secret = get_settings().identity_jwt_secret
        token = jwt.encode({"aud": "authenticated", "exp": 4102444800}, secret, algorithm="HS256")

        with pytest.raises(TokenError):
            verify_identity_token(token)

    @pytest.mark.parametrize("token", ["", "not.a.jwt", "garbage"])
    def test_malformed(self, token):
        with pytest.raises(TokenError) as exc_info:
            verify_identity_token(token)

        assert exc_info.value.code == "AUTH_INVALID_TOKEN"


class TestProfileFromClaims:

    def test_maps_metadata(self):
        profile = profile_from_claims(
            {
                "sub": "abc",
                "email": "a@example.com",
                "user_metadata": {"full_name": "Ada", "avatar_url": "https://x/a.png"},
            }
        )

        assert profile == {
            "auth_id": "abc",
            "email": "a@example.com",
            "name": "Ada",
            "avatar_url": "https://x/a.png",
        }

    def test_missing_metadata(self):
        profile = profile_from_claims({"sub": "abc", "email": "a@example.com"})

        assert profile["name"] is None
        assert profile["avatar_url"] is None
