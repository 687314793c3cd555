"""Pydantic v2 schemas for the admin user endpoints."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class UserUpsert(BaseModel):
    """Create a user, or update the one with the same email."""

    model_config = ConfigDict(populate_by_name=True)

    email: str = Field(..., min_length=1)
    plan: str | None = None
    status: str | None = None
    custom_fields: dict[str, Any] = Field(default_factory=dict, alias="customFields")


class BulkRequest(BaseModel):
    """Apply one action to a list of emails."""

    action: Literal["update", "delete"]
    emails: list[str]
    updates: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    has_more: bool = Field(alias="hasMore")


class UserListResponse(BaseModel):
    """Page of raw directory rows (store column names) plus pagination info."""

    users: list[dict[str, Any]]
    pagination: Pagination


class UserUpsertResponse(BaseModel):
    action: Literal["created", "updated"]
    user: dict[str, Any]


class BulkItemResult(BaseModel):
    email: str
    status: Literal["updated", "deleted", "not_found", "error"]
    error: str | None = None


class BulkResponse(BaseModel):
    results: list[BulkItemResult]
