"""Check-in API endpoints."""

from uuid import UUID

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from bookrats.api.deps import CurrentUser, DbSession, Storage, read_photo
from bookrats.schemas import CheckinFeedResponse, CheckinResponse, ErrorResponse
from bookrats.services.checkin import CheckinForm, CheckinService
from bookrats.services.group import GroupService

router = APIRouter(prefix="/groups/{group_id}/checkins", tags=["Check-ins"])


@router.post(
    "",
    response_model=CheckinResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Missing title or invalid photo"},
        404: {"model": ErrorResponse, "description": "Group not found"},
        409: {"model": ErrorResponse, "description": "Already checked in today"},
        502: {"model": ErrorResponse, "description": "Photo upload failed"},
    },
)
async def create_checkin(
    group_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
    title: str | None = Form(default=None),
    book_title: str | None = Form(default=None, alias="bookTitle"),
    description: str | None = Form(default=None),
    pages_read: str | None = Form(default=None, alias="pagesRead"),
    chapters_read: str | None = Form(default=None, alias="chaptersRead"),
    photo: UploadFile | None = File(default=None),
):
    """Record today's reading check-in (one per group per UTC day).

    Page and chapter counts that are negative or not numbers are stored as 0.
    """
    form = CheckinForm(
        title=title,
        book_title=book_title,
        description=description,
        pages_read=pages_read,
        chapters_read=chapters_read,
        photo=await read_photo(photo),
    )
    checkin = await CheckinService(db, storage).create_checkin(current_user, group_id, form)
    return CheckinResponse.model_validate(checkin)


@router.get(
    "",
    response_model=CheckinFeedResponse,
    responses={404: {"model": ErrorResponse, "description": "Group not found"}},
)
async def list_checkins(
    group_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(default=20, ge=1, le=100),
):
    """Most recent check-ins of the group."""
    await GroupService(db).get_member_group(current_user, group_id)
    items = await CheckinService(db).list_feed(group_id, limit=limit)
    return CheckinFeedResponse(items=[CheckinResponse.model_validate(c) for c in items])
