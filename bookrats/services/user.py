"""User profile service."""

from sqlalchemy.ext.asyncio import AsyncSession

from bookrats.models.user import User


class UserService:
    """Service for profile operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def dismiss_pwa_tutorial(self, user: User) -> User:
        """Mark the install-as-app tutorial as seen."""
        if not user.has_seen_pwa_tutorial:
            user.has_seen_pwa_tutorial = True
            await self.db.flush()
        return user
