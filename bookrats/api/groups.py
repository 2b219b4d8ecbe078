"""Group API endpoints."""

from uuid import UUID

from fastapi import APIRouter, File, Form, UploadFile, status

from bookrats.api.deps import AppSettings, CurrentUser, DbSession, Storage, read_photo
from bookrats.schemas import (
    CheckinResponse,
    ErrorResponse,
    GroupListResponse,
    GroupOverviewResponse,
    GroupResponse,
    GroupSummaryResponse,
    MembersResponse,
    RankingEntryResponse,
    SuccessResponse,
)
from bookrats.services.group import GroupService

router = APIRouter(prefix="/groups", tags=["Groups"])


@router.get("", response_model=GroupListResponse)
async def list_my_groups(current_user: CurrentUser, db: DbSession):
    """Dashboard: the groups the current user belongs to."""
    summaries = await GroupService(db).list_user_groups(current_user)
    return GroupListResponse(
        groups=[
            GroupSummaryResponse(
                group=GroupResponse.model_validate(s.group),
                member_count=s.member_count,
                checked_in_today=s.checked_in_today,
            )
            for s in summaries
        ]
    )


@router.post(
    "",
    response_model=GroupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Missing title or invalid photo"},
        502: {"model": ErrorResponse, "description": "Photo upload failed"},
    },
)
async def create_group(
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    photo: UploadFile | None = File(default=None),
):
    """Create a group. The creator becomes its first member."""
    group = await GroupService(db, storage).create_group(
        current_user,
        title=title,
        description=description,
        photo=await read_photo(photo),
    )
    return GroupResponse.model_validate(group)


@router.get(
    "/{group_id}",
    response_model=GroupOverviewResponse,
    responses={404: {"model": ErrorResponse, "description": "Group not found"}},
)
async def get_group(
    group_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    settings: AppSettings,
):
    """Group page: leaderboard, the viewer's standing and the recent feed."""
    overview = await GroupService(db).get_group_overview(
        current_user, group_id, feed_limit=settings.feed_page_size
    )
    group = overview.group
    return GroupOverviewResponse(
        group=GroupResponse.model_validate(group),
        is_creator=group.created_by == current_user.id,
        invite_path=f"/invite/{group.invite_code}",
        checked_in_today=overview.checked_in_today,
        leader=RankingEntryResponse.model_validate(overview.leader) if overview.leader else None,
        viewer=RankingEntryResponse.model_validate(overview.viewer) if overview.viewer else None,
        rankings=[RankingEntryResponse.model_validate(r) for r in overview.rankings],
        feed=[CheckinResponse.model_validate(c) for c in overview.feed],
    )


@router.patch(
    "/{group_id}",
    response_model=GroupResponse,
    responses={403: {"model": ErrorResponse, "description": "Not the group creator"}},
)
async def edit_group(
    group_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    photo: UploadFile | None = File(default=None),
):
    """Edit a group (creator only). Omit the photo to keep the current one."""
    group = await GroupService(db, storage).edit_group(
        current_user,
        group_id,
        title=title,
        description=description,
        photo=await read_photo(photo),
    )
    return GroupResponse.model_validate(group)


@router.get(
    "/{group_id}/members",
    response_model=MembersResponse,
    responses={404: {"model": ErrorResponse, "description": "Group not found"}},
)
async def list_members(group_id: UUID, current_user: CurrentUser, db: DbSession):
    """Members ranked by number of check-ins."""
    rankings = await GroupService(db).get_rankings(current_user, group_id)
    return MembersResponse(
        group_id=group_id,
        member_count=len(rankings),
        members=[RankingEntryResponse.model_validate(r) for r in rankings],
    )


@router.delete(
    "/{group_id}/membership",
    response_model=SuccessResponse,
    responses={404: {"model": ErrorResponse, "description": "Group not found"}},
)
async def leave_group(group_id: UUID, current_user: CurrentUser, db: DbSession):
    """Leave a group."""
    await GroupService(db).leave_group(current_user, group_id)
    return SuccessResponse(message="Left the group")
