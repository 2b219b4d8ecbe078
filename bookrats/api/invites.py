"""Invite API endpoints."""

from fastapi import APIRouter

from bookrats.api.deps import CurrentUser, DbSession
from bookrats.schemas import ErrorResponse, InvitePreviewResponse, JoinGroupResponse
from bookrats.services.group import GroupService

router = APIRouter(prefix="/invites", tags=["Invites"])


@router.get(
    "/{invite_code}",
    response_model=InvitePreviewResponse,
    responses={404: {"model": ErrorResponse, "description": "Unknown invite"}},
)
async def get_invite(invite_code: str, db: DbSession):
    """Public invite landing data. No authentication required."""
    preview = await GroupService(db).get_invite_preview(invite_code)
    group = preview.group
    return InvitePreviewResponse(
        group_id=group.id,
        title=group.title,
        description=group.description,
        photo_url=group.photo_url,
        creator_name=preview.creator_name,
        member_count=preview.member_count,
    )


@router.post(
    "/{invite_code}/join",
    response_model=JoinGroupResponse,
    responses={404: {"model": ErrorResponse, "description": "Unknown invite"}},
)
async def join_group(invite_code: str, current_user: CurrentUser, db: DbSession):
    """Join the group behind an invite. Joining twice is a no-op."""
    result = await GroupService(db).join_by_invite(current_user, invite_code)
    return JoinGroupResponse(
        group_id=result.membership.group_id,
        already_member=result.already_member,
    )
