"""Admin API router: directory CRUD, bulk actions and analytics."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from paywall.api.deps import PROTECTED, get_directory
from paywall.directory import UserDirectory
from paywall.schemas.analytics import AnalyticsResponse
from paywall.schemas.common import MessageResponse
from paywall.schemas.users import (
    BulkRequest,
    BulkResponse,
    UserListResponse,
    UserUpsert,
    UserUpsertResponse,
)
from paywall.services import user_service

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=PROTECTED)


@router.get("/users", response_model=UserListResponse, summary="List users")
async def list_users(
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: int = Query(10, ge=1, le=100, description="Page size"),
    status: str | None = Query(None, description="Filter by subscription status"),
    plan: str | None = Query(None, description="Filter by plan"),
    directory: UserDirectory = Depends(get_directory),
) -> UserListResponse:
    """Return users newest first, optionally filtered by status and plan."""
    return await user_service.list_users(directory, page, limit, status, plan)


@router.post("/users", response_model=UserUpsertResponse, summary="Create or update a user")
async def upsert_user(
    body: UserUpsert,
    directory: UserDirectory = Depends(get_directory),
) -> UserUpsertResponse:
    return await user_service.upsert_user(directory, body)


@router.post(
    "/users/bulk",
    response_model=BulkResponse,
    response_model_exclude_none=True,
    summary="Bulk update or delete users",
)
async def bulk_users(
    body: BulkRequest,
    directory: UserDirectory = Depends(get_directory),
) -> BulkResponse:
    """Apply one action to many emails; each email gets its own result."""
    return BulkResponse(results=await user_service.bulk_apply(directory, body))


@router.delete("/users/{email}", response_model=MessageResponse, summary="Delete a user")
async def delete_user(
    email: str,
    directory: UserDirectory = Depends(get_directory),
) -> MessageResponse:
    await user_service.delete_user(directory, email)
    return MessageResponse(message="User deleted successfully")


@router.get("/analytics", response_model=AnalyticsResponse, summary="Directory analytics")
async def analytics(
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    directory: UserDirectory = Depends(get_directory),
) -> AnalyticsResponse:
    """Counts by status and plan plus a revenue estimate, by creation date."""
    return await user_service.get_analytics(directory, start_date, end_date)
