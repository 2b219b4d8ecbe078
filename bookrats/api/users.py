"""User profile API endpoints."""

from fastapi import APIRouter

from bookrats.api.deps import CurrentUser, DbSession
from bookrats.schemas import UserProfileResponse
from bookrats.services.user import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserProfileResponse)
async def get_me(current_user: CurrentUser):
    """Get the current user's profile."""
    return UserProfileResponse.model_validate(current_user)


@router.post("/me/pwa-tutorial/dismiss", response_model=UserProfileResponse)
async def dismiss_pwa_tutorial(current_user: CurrentUser, db: DbSession):
    """Stop showing the install-as-app tutorial."""
    user = await UserService(db).dismiss_pwa_tutorial(current_user)
    return UserProfileResponse.model_validate(user)
