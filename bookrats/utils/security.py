"""Identity token verification.

The identity provider (Google sign-in brokered by the provider) issues
HS256 JWT access tokens signed with a shared secret. This module verifies
them and extracts the profile claims used to mirror the user locally.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from bookrats.config import Settings, get_settings

logger = logging.getLogger(__name__)


class TokenError(Exception):
    """Token validation error with specific code."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


def verify_identity_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """Verify an identity provider access token and return its claims.

    Args:
        token: JWT access token from the Authorization header
        settings: Settings override (defaults to the cached settings)

    Returns:
        Token payload

    Raises:
        TokenError: AUTH_TOKEN_EXPIRED or AUTH_INVALID_TOKEN
    """
    settings = settings or get_settings()

    if not token:
        logger.debug("Identity token verification failed: empty token")
        raise TokenError("AUTH_INVALID_TOKEN", "Invalid or expired token")

    options = {"require_exp": True, "require_sub": True}
    if settings.identity_jwt_audience is None:
        options["verify_aud"] = False

    try:
        payload = jwt.decode(
            token,
            settings.identity_jwt_secret,
            algorithms=[settings.identity_jwt_algorithm],
            audience=settings.identity_jwt_audience,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Identity token verification failed: token expired")
        raise TokenError("AUTH_TOKEN_EXPIRED", "Token has expired")
    except jwt.JWTClaimsError as e:
        logger.debug(f"Identity token verification failed: invalid claims - {e}")
        raise TokenError("AUTH_INVALID_TOKEN", "Invalid token claims")
    except JWTError as e:
        logger.warning(f"Identity token verification failed: {type(e).__name__}")
        raise TokenError("AUTH_INVALID_TOKEN", "Invalid or expired token")

    if not payload.get("sub"):
        raise TokenError("AUTH_INVALID_TOKEN", "Invalid token payload")

    return payload


def profile_from_claims(claims: dict[str, Any]) -> dict[str, Any]:
    """Map provider claims to local user fields.

    Google puts the display name in `full_name` (or `name`) and the picture
    in `avatar_url` inside `user_metadata`.
    """
    metadata = claims.get("user_metadata") or {}
    return {
        "auth_id": str(claims["sub"]),
        "email": claims.get("email"),
        "name": metadata.get("full_name") or metadata.get("name"),
        "avatar_url": metadata.get("avatar_url"),
    }


def create_identity_token(
    auth_id: str,
    email: str,
    name: str | None = None,
    avatar_url: str | None = None,
    expires_delta: timedelta = timedelta(hours=1),
    settings: Settings | None = None,
) -> str:
    """Mint a provider-shaped token. Used by local tooling and tests.

    Args:
        auth_id: Provider user id (`sub`)
        email: Account email
        name: Display name
        avatar_url: Profile picture URL
        expires_delta: Token lifetime

    Returns:
        Encoded JWT string
    """
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)

    payload: dict[str, Any] = {
        "sub": auth_id,
        "email": email,
        "iat": now,
        "exp": now + expires_delta,
        "user_metadata": {"full_name": name, "avatar_url": avatar_url},
    }
    if settings.identity_jwt_audience:
        payload["aud"] = settings.identity_jwt_audience

    return jwt.encode(
        payload,
        settings.identity_jwt_secret,
        algorithm=settings.identity_jwt_algorithm,
    )
