"""Daily check-in service."""

import re
from dataclasses import dataclass
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bookrats.logging_config import get_logger
from bookrats.middleware.prometheus import CHECKINS_CREATED
from bookrats.models.checkin import CHECKIN_UNIQUE_CONSTRAINT, CheckIn
from bookrats.models.group import GroupMember
from bookrats.models.user import User
from bookrats.services.storage import PhotoStorage, PhotoUpload, build_object_key
from bookrats.services.streak import utc_today
from bookrats.utils.db import is_unique_violation
from bookrats.utils.errors import BookRatsError, ErrorCode

logger = get_logger(__name__)

ALREADY_CHECKED_IN_MESSAGE = (
    "You have already checked in for this group today. Come back tomorrow!"
)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class CheckinError(BookRatsError):
    """Check-in error with code."""


def parse_count(value: Any) -> int:
    """Parse a pages/chapters count.

    Takes the leading integer of the input; anything non-numeric or
    negative becomes 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    match = _LEADING_INT.match(str(value)) if value is not None else None
    if not match:
        return 0
    return max(0, int(match.group(1)))


def _clean(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


@dataclass
class CheckinForm:
    """Raw check-in input as submitted by the member."""

    title: str | None
    book_title: str | None = None
    description: str | None = None
    pages_read: Any = 0
    chapters_read: Any = 0
    photo: PhotoUpload | None = None


class CheckinService:
    """Service for recording and reading check-ins."""

    def __init__(self, db: AsyncSession, storage: PhotoStorage | None = None):
        self.db = db
        self.storage = storage

    async def _require_membership(self, group_id: UUID, user_id: UUID) -> GroupMember:
        result = await self.db.execute(
            select(GroupMember).where(
                GroupMember.group_id == group_id,
                GroupMember.user_id == user_id,
            )
        )
        membership = result.scalar_one_or_none()
        if membership is None:
            # Same answer as a missing group so membership is not leaked
            raise CheckinError(ErrorCode.GROUP_NOT_FOUND, "Group not found")
        return membership

    async def has_checked_in_today(
        self, group_id: UUID, user_id: UUID, day: date | None = None
    ) -> bool:
        """Whether the member already has a check-in for `day` (default: UTC today)."""
        result = await self.db.execute(
            select(CheckIn.id).where(
                CheckIn.group_id == group_id,
                CheckIn.user_id == user_id,
                CheckIn.date == (day or utc_today()),
            )
        )
        return result.scalar_one_or_none() is not None

    async def create_checkin(self, user: User, group_id: UUID, form: CheckinForm) -> CheckIn:
        """Record today's check-in for a member.

        Validation (title, photo) happens before any write. A photo upload
        failure aborts the check-in. The unique constraint on
        (group, user, date) is what guarantees one check-in per day; a
        violation is reported as CHECKIN_ALREADY_EXISTS and the photo
        uploaded for the rejected row is deleted again.

        Args:
            user: Authenticated member
            group_id: Target group
            form: Submitted fields

        Returns:
            The persisted CheckIn

        Raises:
            CheckinError: GROUP_NOT_FOUND, CHECKIN_TITLE_REQUIRED,
                CHECKIN_ALREADY_EXISTS
            PhotoError: Invalid photo or upload failure
        """
        user_id = user.id
        today = utc_today()
        title = _clean(form.title)
        if not title:
            raise CheckinError(
                ErrorCode.CHECKIN_TITLE_REQUIRED,
                "A check-in title is required.",
                {"field": "title"},
            )

        has_photo = form.photo is not None and form.photo.size > 0
        if has_photo:
            self.storage.validate(form.photo)

        await self._require_membership(group_id, user_id)

        if await self.has_checked_in_today(group_id, user_id, today):
            logger.info("checkin_conflict", group_id=str(group_id), user_id=str(user_id))
            raise CheckinError(ErrorCode.CHECKIN_ALREADY_EXISTS, ALREADY_CHECKED_IN_MESSAGE)

        picture_url = photo_key = None
        if has_photo:
            photo_key = build_object_key(user_id, group_id, extension=form.photo.extension)
            picture_url = await self.storage.upload(
                self.storage.checkin_bucket, photo_key, form.photo
            )

        checkin = CheckIn(
            group_id=group_id,
            user_id=user_id,
            date=today,
            title=title,
            book_title=_clean(form.book_title),
            description=_clean(form.description),
            picture_url=picture_url,
            pages_read=parse_count(form.pages_read),
            chapters_read=parse_count(form.chapters_read),
        )
        self.db.add(checkin)

        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            if photo_key is not None:
                await self.storage.discard(self.storage.checkin_bucket, photo_key)
            if is_unique_violation(
                e, CHECKIN_UNIQUE_CONSTRAINT, CheckIn.__tablename__, ("group_id", "user_id", "date")
            ):
                logger.info("checkin_conflict", group_id=str(group_id), user_id=str(user_id))
                raise CheckinError(
                    ErrorCode.CHECKIN_ALREADY_EXISTS, ALREADY_CHECKED_IN_MESSAGE
                ) from e
            raise

        await self.db.refresh(checkin, attribute_names=["user"])

        CHECKINS_CREATED.inc()
        logger.info(
            "checkin_created",
            group_id=str(group_id),
            user_id=str(user_id),
            date=checkin.date.isoformat(),
            pages_read=checkin.pages_read,
        )
        return checkin

    async def list_feed(self, group_id: UUID, limit: int = 20) -> list[CheckIn]:
        """Most recent check-ins of a group with their authors."""
        result = await self.db.execute(
            select(CheckIn)
            .where(CheckIn.group_id == group_id)
            .order_by(CheckIn.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_checkin_dates(self, group_id: UUID) -> list[tuple[UUID, date]]:
        """All (user_id, date) pairs of a group, most recent first."""
        result = await self.db.execute(
            select(CheckIn.user_id, CheckIn.date)
            .where(CheckIn.group_id == group_id)
            .order_by(CheckIn.date.desc())
        )
        return [(row[0], row[1]) for row in result.all()]
