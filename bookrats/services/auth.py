"""Identity sync service.

The OAuth code exchange happens at the identity provider. This service only
mirrors the authenticated account into the local `users` table so the rest
of the application can join on it.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bookrats.logging_config import get_logger
from bookrats.models.user import User
from bookrats.utils.db import is_unique_violation
from bookrats.utils.errors import BookRatsError, ErrorCode
from bookrats.utils.security import profile_from_claims

logger = get_logger(__name__)


class AuthError(BookRatsError):
    """Authentication error with code."""


class AuthService:
    """Service for identity operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_auth_id(self, auth_id: str) -> User | None:
        """Look up the local user for a provider subject."""
        result = await self.db.execute(select(User).where(User.auth_id == auth_id))
        return result.scalar_one_or_none()

    async def sync_user(self, claims: dict[str, Any]) -> User:
        """Create or refresh the local user from verified token claims.

        Profile fields (email, name, avatar) are overwritten on every sync so
        changes made at the provider show up on next sign-in. Two first
        sign-ins of the same account racing each other both end up with the
        one row that wins the insert.

        Args:
            claims: Verified identity token payload

        Returns:
            The up-to-date User

        Raises:
            AuthError: If the token carries no email, or the email belongs
                to another account
        """
        profile = profile_from_claims(claims)
        if not profile["email"]:
            raise AuthError(
                ErrorCode.AUTH_EMAIL_MISSING,
                "Identity token has no email address",
            )
        auth_id = profile["auth_id"]

        user = await self.get_user_by_auth_id(auth_id)
        creating = user is None
        if creating:
            user = User(**profile)
            self.db.add(user)
        else:
            user.email = profile["email"]
            user.name = profile["name"]
            user.avatar_url = profile["avatar_url"]

        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            if creating and await self.get_user_by_auth_id(auth_id) is not None:
                logger.info("user_sync_raced", auth_id=auth_id)
                return await self.sync_user(claims)
            if is_unique_violation(e, "ix_users_email", User.__tablename__, ("email",)):
                raise AuthError(
                    ErrorCode.AUTH_EMAIL_EXISTS,
                    "Email address is already linked to another account",
                    {"field": "email"},
                ) from e
            raise

        if creating:
            logger.info("user_created", user_id=str(user.id))
        else:
            logger.debug("user_synced", user_id=str(user.id))
        return user
