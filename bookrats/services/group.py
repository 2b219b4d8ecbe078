"""Reading group and membership service."""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bookrats.logging_config import get_logger
from bookrats.middleware.prometheus import GROUPS_CREATED, MEMBERS_JOINED
from bookrats.models.checkin import CheckIn
from bookrats.models.group import Group, GroupMember
from bookrats.models.user import User
from bookrats.services.checkin import CheckinService
from bookrats.services.ranking import RankingEntry, find_entry, leader, rank_members
from bookrats.services.storage import PhotoStorage, PhotoUpload
from bookrats.services.streak import utc_today
from bookrats.utils.db import is_unique_violation
from bookrats.utils.errors import BookRatsError, ErrorCode

logger = get_logger(__name__)


class GroupError(BookRatsError):
    """Group operation error with code."""


def _clean(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


@dataclass
class GroupSummary:
    """Dashboard row."""

    group: Group
    member_count: int
    checked_in_today: bool


@dataclass
class InvitePreview:
    group: Group
    creator_name: str
    member_count: int


@dataclass
class JoinResult:
    membership: GroupMember
    already_member: bool


@dataclass
class GroupOverview:
    """Everything the group page shows."""

    group: Group
    rankings: list[RankingEntry]
    leader: RankingEntry | None
    viewer: RankingEntry | None
    feed: list[CheckIn]
    checked_in_today: bool


class GroupService:
    """Service for group management operations."""

    def __init__(self, db: AsyncSession, storage: PhotoStorage | None = None):
        self.db = db
        self.storage = storage

    async def _upload_cover(self, user_id: UUID, photo: PhotoUpload | None) -> str | None:
        if photo is None or photo.size == 0:
            return None
        return await self.storage.store(self.storage.group_bucket, photo, user_id)

    async def create_group(
        self,
        user: User,
        title: str | None,
        description: str | None = None,
        photo: PhotoUpload | None = None,
    ) -> Group:
        """Create a group with its creator as first member.

        The cover photo is stored before anything is written. Group and
        membership are flushed in the caller's transaction, so either both
        rows commit or neither does.

        Raises:
            GroupError: GROUP_TITLE_REQUIRED
            PhotoError: Invalid photo or upload failure
        """
        title = _clean(title)
        if not title:
            raise GroupError(
                ErrorCode.GROUP_TITLE_REQUIRED,
                "A group title is required.",
                {"field": "title"},
            )
        if photo is not None and photo.size > 0:
            self.storage.validate(photo)

        photo_url = await self._upload_cover(user.id, photo)

        group = Group(
            title=title,
            description=_clean(description),
            photo_url=photo_url,
            created_by=user.id,
        )
        self.db.add(group)
        await self.db.flush()

        self.db.add(GroupMember(group_id=group.id, user_id=user.id))
        await self.db.flush()

        GROUPS_CREATED.inc()
        logger.info("group_created", group_id=str(group.id), user_id=str(user.id))
        return group

    async def edit_group(
        self,
        user: User,
        group_id: UUID,
        title: str | None,
        description: str | None = None,
        photo: PhotoUpload | None = None,
    ) -> Group:
        """Update title, description and optionally the cover photo.

        Only the creator may edit. Without a new photo the existing one
        stays.

        Raises:
            GroupError: GROUP_TITLE_REQUIRED, GROUP_NOT_OWNER
        """
        title = _clean(title)
        if not title:
            raise GroupError(
                ErrorCode.GROUP_TITLE_REQUIRED,
                "A group title is required.",
                {"field": "title"},
            )

        group = await self.db.get(Group, group_id)
        if group is None or group.created_by != user.id:
            raise GroupError(
                ErrorCode.GROUP_NOT_OWNER,
                "Only the group creator can edit this group.",
            )

        if photo is not None and photo.size > 0:
            self.storage.validate(photo)
            group.photo_url = await self._upload_cover(user.id, photo)

        group.title = title
        group.description = _clean(description)
        await self.db.flush()

        logger.info("group_edited", group_id=str(group.id))
        return group

    async def get_membership(self, group_id: UUID, user_id: UUID) -> GroupMember | None:
        result = await self.db.execute(
            select(GroupMember).where(
                GroupMember.group_id == group_id,
                GroupMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_member_group(self, user: User, group_id: UUID) -> Group:
        """Load a group with its members for one of its members.

        Missing groups and groups the user does not belong to look the same.

        Raises:
            GroupError: GROUP_NOT_FOUND
        """
        result = await self.db.execute(
            select(Group)
            .where(Group.id == group_id)
            .options(selectinload(Group.members).selectinload(GroupMember.user))
            .execution_options(populate_existing=True)
        )
        group = result.scalar_one_or_none()
        if group is None or not any(m.user_id == user.id for m in group.members):
            raise GroupError(ErrorCode.GROUP_NOT_FOUND, "Group not found")
        return group

    async def _get_by_invite(self, invite_code: str) -> Group:
        result = await self.db.execute(select(Group).where(Group.invite_code == invite_code))
        group = result.scalar_one_or_none()
        if group is None:
            raise GroupError(
                ErrorCode.INVITE_NOT_FOUND,
                "This invite link is invalid or has expired.",
            )
        return group

    async def _member_count(self, group_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(GroupMember.id)).where(GroupMember.group_id == group_id)
        )
        return result.scalar_one()

    async def get_invite_preview(self, invite_code: str) -> InvitePreview:
        """Public view of an invite.

        Raises:
            GroupError: INVITE_NOT_FOUND
        """
        group = await self._get_by_invite(invite_code)
        return InvitePreview(
            group=group,
            creator_name=group.creator.display_name,
            member_count=await self._member_count(group.id),
        )

    async def join_by_invite(self, user: User, invite_code: str) -> JoinResult:
        """Join the group behind an invite code. Idempotent.

        Raises:
            GroupError: INVITE_NOT_FOUND
        """
        group = await self._get_by_invite(invite_code)
        group_id, user_id = group.id, user.id

        existing = await self.get_membership(group_id, user_id)
        if existing is not None:
            return JoinResult(membership=existing, already_member=True)

        membership = GroupMember(group_id=group_id, user_id=user_id)
        self.db.add(membership)
        try:
            await self.db.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent join of the same user
            await self.db.rollback()
            if not is_unique_violation(
                e, "uq_group_member", GroupMember.__tablename__, ("group_id", "user_id")
            ):
                raise
            existing = await self.get_membership(group_id, user_id)
            return JoinResult(membership=existing, already_member=True)

        MEMBERS_JOINED.inc()
        logger.info("member_joined", group_id=str(group_id), user_id=str(user_id))
        return JoinResult(membership=membership, already_member=False)

    async def leave_group(self, user: User, group_id: UUID) -> None:
        """Remove the user's membership. Their check-ins are kept.

        Raises:
            GroupError: GROUP_NOT_FOUND
        """
        result = await self.db.execute(
            delete(GroupMember).where(
                GroupMember.group_id == group_id,
                GroupMember.user_id == user.id,
            )
        )
        if result.rowcount == 0:
            raise GroupError(ErrorCode.GROUP_NOT_FOUND, "Group not found")
        logger.info("member_left", group_id=str(group_id), user_id=str(user.id))

    async def list_user_groups(self, user: User) -> list[GroupSummary]:
        """Groups the user belongs to, most recently joined first."""
        result = await self.db.execute(
            select(Group)
            .join(GroupMember, GroupMember.group_id == Group.id)
            .where(GroupMember.user_id == user.id)
            .order_by(GroupMember.joined_at.desc(), GroupMember.id.desc())
        )
        groups = list(result.scalars().all())
        if not groups:
            return []

        group_ids = [g.id for g in groups]
        counts = dict(
            (await self.db.execute(
                select(GroupMember.group_id, func.count(GroupMember.id))
                .where(GroupMember.group_id.in_(group_ids))
                .group_by(GroupMember.group_id)
            )).all()
        )
        checked_in = set(
            (await self.db.execute(
                select(CheckIn.group_id).where(
                    CheckIn.group_id.in_(group_ids),
                    CheckIn.user_id == user.id,
                    CheckIn.date == utc_today(),
                )
            )).scalars().all()
        )

        return [
            GroupSummary(
                group=g,
                member_count=counts.get(g.id, 0),
                checked_in_today=g.id in checked_in,
            )
            for g in groups
        ]

    async def get_rankings(self, user: User, group_id: UUID) -> list[RankingEntry]:
        """Ranked members of a group the user belongs to."""
        group = await self.get_member_group(user, group_id)
        dates = await CheckinService(self.db).list_checkin_dates(group.id)
        return rank_members(group.members, dates)

    async def get_group_overview(
        self, user: User, group_id: UUID, feed_limit: int = 20
    ) -> GroupOverview:
        """Group page: rankings, leader, viewer standing and recent feed."""
        group = await self.get_member_group(user, group_id)
        checkins = CheckinService(self.db)

        rankings = rank_members(group.members, await checkins.list_checkin_dates(group.id))

        return GroupOverview(
            group=group,
            rankings=rankings,
            leader=leader(rankings),
            viewer=find_entry(rankings, user.id),
            feed=await checkins.list_feed(group.id, limit=feed_limit),
            checked_in_today=await checkins.has_checked_in_today(group.id, user.id),
        )
