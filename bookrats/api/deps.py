"""API dependencies for authentication and common utilities."""

from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, UploadFile, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from bookrats.config import Settings, get_settings
from bookrats.logging_config import bind_context
from bookrats.models.user import User
from bookrats.services.auth import AuthService
from bookrats.services.storage import PhotoStorage, PhotoUpload
from bookrats.utils.db import get_db
from bookrats.utils.security import TokenError, verify_identity_token

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "error": {
                "code": code,
                "message": message,
                "details": {},
            }
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_identity_claims(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, Any]:
    """Verified identity provider claims (required auth).

    Raises:
        HTTPException: If no token is sent or the token is invalid
    """
    if not credentials:
        raise _unauthorized("AUTH_REQUIRED", "Authentication required")

    try:
        return verify_identity_token(credentials.credentials, settings)
    except TokenError as e:
        raise _unauthorized(e.code, e.message)


async def get_current_user(
    claims: Annotated[dict[str, Any], Depends(get_identity_claims)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get the local user for the token subject (required auth).

    Raises:
        HTTPException: If the account was never synced locally
    """
    user = await AuthService(db).get_user_by_auth_id(str(claims["sub"]))
    if not user:
        # Authenticated at the provider but not synced yet: client calls /auth/sync
        raise _unauthorized("AUTH_USER_NOT_SYNCED", "User not synced, call /auth/sync first")

    bind_context(user_id=str(user.id))
    return user


def get_storage(request: Request) -> PhotoStorage:
    """Process-wide photo storage attached by the lifespan."""
    return request.app.state.storage


async def read_photo(photo: UploadFile | None) -> PhotoUpload | None:
    """Buffer an optional multipart photo field."""
    if photo is None:
        return None
    data = await photo.read()
    if not data:
        return None
    return PhotoUpload(filename=photo.filename, content_type=photo.content_type, data=data)


# Type aliases for cleaner annotations
CurrentUser = Annotated[User, Depends(get_current_user)]
IdentityClaims = Annotated[dict[str, Any], Depends(get_identity_claims)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Storage = Annotated[PhotoStorage, Depends(get_storage)]
AppSettings = Annotated[Settings, Depends(get_settings)]
