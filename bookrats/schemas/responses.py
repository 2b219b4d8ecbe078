"""API response schemas."""

import datetime
from uuid import UUID

from pydantic import Field

from bookrats.schemas.common import BaseSchema


# =============================================================================
# User Responses
# =============================================================================


class UserBasicResponse(BaseSchema):
    """Author / member identity shown next to content."""

    id: UUID
    name: str | None = None
    email: str
    avatar_url: str | None = Field(default=None, alias="avatarUrl")


class UserProfileResponse(UserBasicResponse):
    """Current user profile."""

    has_seen_pwa_tutorial: bool = Field(..., alias="hasSeenPwaTutorial")
    created_at: datetime.datetime = Field(..., alias="createdAt")


# =============================================================================
# Group Responses
# =============================================================================


class GroupResponse(BaseSchema):
    id: UUID
    title: str
    description: str | None = None
    photo_url: str | None = Field(default=None, alias="photoUrl")
    invite_code: str = Field(..., alias="inviteCode")
    created_by: UUID = Field(..., alias="createdBy")
    created_at: datetime.datetime = Field(..., alias="createdAt")


class GroupSummaryResponse(BaseSchema):
    """Dashboard entry."""

    group: GroupResponse
    member_count: int = Field(..., alias="memberCount")
    checked_in_today: bool = Field(..., alias="checkedInToday")


class GroupListResponse(BaseSchema):
    groups: list[GroupSummaryResponse]


class RankingEntryResponse(BaseSchema):
    user_id: UUID = Field(..., alias="userId")
    name: str
    email: str
    avatar_url: str | None = Field(default=None, alias="avatarUrl")
    check_ins: int = Field(..., alias="checkIns")
    streak: int
    rank: int


class MembersResponse(BaseSchema):
    """Members page: everyone ranked by check-ins."""

    group_id: UUID = Field(..., alias="groupId")
    member_count: int = Field(..., alias="memberCount")
    members: list[RankingEntryResponse]


class CheckinResponse(BaseSchema):
    id: UUID
    group_id: UUID = Field(..., alias="groupId")
    user: UserBasicResponse
    date: datetime.date
    title: str
    book_title: str | None = Field(default=None, alias="bookTitle")
    description: str | None = None
    picture_url: str | None = Field(default=None, alias="pictureUrl")
    pages_read: int = Field(..., alias="pagesRead")
    chapters_read: int = Field(..., alias="chaptersRead")
    created_at: datetime.datetime = Field(..., alias="createdAt")


class CheckinFeedResponse(BaseSchema):
    items: list[CheckinResponse]


class GroupOverviewResponse(BaseSchema):
    """Group page."""

    group: GroupResponse
    is_creator: bool = Field(..., alias="isCreator")
    invite_path: str = Field(..., alias="invitePath")
    checked_in_today: bool = Field(..., alias="checkedInToday")
    leader: RankingEntryResponse | None = None
    viewer: RankingEntryResponse | None = None
    rankings: list[RankingEntryResponse]
    feed: list[CheckinResponse]


class InvitePreviewResponse(BaseSchema):
    """Public invite landing data."""

    group_id: UUID = Field(..., alias="groupId")
    title: str
    description: str | None = None
    photo_url: str | None = Field(default=None, alias="photoUrl")
    creator_name: str = Field(..., alias="creatorName")
    member_count: int = Field(..., alias="memberCount")


class JoinGroupResponse(BaseSchema):
    group_id: UUID = Field(..., alias="groupId")
    already_member: bool = Field(..., alias="alreadyMember")
