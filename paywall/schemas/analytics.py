"""Pydantic v2 schemas for the admin analytics endpoint."""

from pydantic import BaseModel


class AnalyticsResponse(BaseModel):
    """Aggregate counts over the directory."""

    total_users: int
    active_subscriptions: int
    pending_users: int
    canceled_users: int
    by_status: dict[str, int]
    by_plan: dict[str, int]
    revenue_estimate: int  # USD per month, active records only
