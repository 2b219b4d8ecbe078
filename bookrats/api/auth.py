"""Identity sync API endpoints."""

from fastapi import APIRouter

from bookrats.api.deps import DbSession, IdentityClaims
from bookrats.schemas import ErrorResponse, UserProfileResponse
from bookrats.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/sync",
    response_model=UserProfileResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Token has no email"},
        401: {"model": ErrorResponse, "description": "Invalid token"},
        409: {"model": ErrorResponse, "description": "Email linked to another account"},
    },
)
async def sync_user(claims: IdentityClaims, db: DbSession):
    """Mirror the signed-in account into the local user table.

    Called by the client right after the provider's OAuth redirect and on
    any AUTH_USER_NOT_SYNCED response. Name and avatar are refreshed from
    the provider on every call.
    """
    user = await AuthService(db).sync_user(claims)
    return UserProfileResponse.model_validate(user)
