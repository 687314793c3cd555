"""Pydantic v2 response schemas for the access check and user lookup."""

from datetime import datetime

from pydantic import BaseModel


class AccessResponse(BaseModel):
    """Whether an email currently has paid access."""

    has_access: bool
    plan: str | None = None
    status: str | None = None
    current_period_end: datetime | None = None


class UserDetailResponse(BaseModel):
    """Directory record for one user."""

    id: str
    email: str
    plan: str | None = None
    status: str | None = None
    customer_id: str | None = None
    subscription_id: str | None = None
    current_period_end: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
