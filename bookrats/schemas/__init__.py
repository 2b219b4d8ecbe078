"""API schemas."""

from bookrats.schemas.common import (
    BaseSchema,
    ErrorDetail,
    ErrorResponse,
    SuccessResponse,
)
from bookrats.schemas.responses import (
    CheckinFeedResponse,
    CheckinResponse,
    GroupListResponse,
    GroupOverviewResponse,
    GroupResponse,
    GroupSummaryResponse,
    InvitePreviewResponse,
    JoinGroupResponse,
    MembersResponse,
    RankingEntryResponse,
    UserBasicResponse,
    UserProfileResponse,
)

__all__ = [
    # Common
    "BaseSchema",
    "ErrorDetail",
    "ErrorResponse",
    "SuccessResponse",
    # Users
    "UserBasicResponse",
    "UserProfileResponse",
    # Groups
    "GroupResponse",
    "GroupSummaryResponse",
    "GroupListResponse",
    "GroupOverviewResponse",
    "MembersResponse",
    "RankingEntryResponse",
    "InvitePreviewResponse",
    "JoinGroupResponse",
    # Check-ins
    "CheckinResponse",
    "CheckinFeedResponse",
]
