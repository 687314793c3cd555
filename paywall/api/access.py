"""Access check endpoints called by the GPT action."""

from fastapi import APIRouter, Depends, Query

from paywall.api.deps import PROTECTED, get_directory
from paywall.directory import UserDirectory
from paywall.schemas.access import AccessResponse, UserDetailResponse
from paywall.services.access_service import check_access, get_user

router = APIRouter(tags=["access"], dependencies=PROTECTED)


@router.get("/access", response_model=AccessResponse)
async def get_access(
    email: str | None = Query(None, description="Email to check (case-insensitive)"),
    directory: UserDirectory = Depends(get_directory),
) -> AccessResponse:
    """Return whether ``email`` has an active, unexpired subscription."""
    return await check_access(directory, email)


@router.get("/users/{email}", response_model=UserDetailResponse)
async def get_user_detail(
    email: str,
    directory: UserDirectory = Depends(get_directory),
) -> UserDetailResponse:
    return await get_user(directory, email)
