"""Admin operations over the user directory: CRUD, bulk actions, analytics."""

import logging
from collections import Counter
from datetime import datetime
from typing import Any

from paywall.billing.plans import DEFAULT_PLAN, monthly_price
from paywall.directory import (
    Before,
    Eq,
    OnOrAfter,
    Sort,
    UserDirectory,
    UserField,
    UserRecord,
    all_of,
    utc_now,
)
from paywall.errors import BadRequest, NotFound, PaywallError
from paywall.schemas.analytics import AnalyticsResponse
from paywall.schemas.users import (
    BulkItemResult,
    BulkRequest,
    Pagination,
    UserListResponse,
    UserUpsert,
    UserUpsertResponse,
)
from paywall.services.access_service import require_email

logger = logging.getLogger(__name__)

_NEWEST_FIRST = (Sort(UserField.CREATED_AT, descending=True),)
_CANCELED_STATUSES = {"canceled", "cancelled"}


def serialize(record: UserRecord) -> dict[str, Any]:
    """Record as store columns (``Email``, ``Plan``, ...) plus its id."""
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)


def _newest_first_key(record: UserRecord) -> tuple[float, str]:
    created = record.created_at.timestamp() if record.created_at else float("-inf")
    return -created, record.id


async def list_users(
    directory: UserDirectory,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    plan: str | None = None,
) -> UserListResponse:
    """Filtered, newest-first page of users.

    Filtering and sorting run in the store; the page is cut here because the
    store paginates with opaque offset tokens.  Equal creation times fall back
    to record id so pages are stable.
    """
    where = all_of(
        Eq(UserField.STATUS, status) if status else None,
        Eq(UserField.PLAN, plan) if plan else None,
    )
    records = await directory.list_records(where, sort=_NEWEST_FIRST)
    records.sort(key=_newest_first_key)

    start = (page - 1) * limit
    window = records[start : start + limit]
    return UserListResponse(
        users=[serialize(r) for r in window],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=len(records),
            has_more=len(records) > start + limit,
        ),
    )


async def upsert_user(directory: UserDirectory, body: UserUpsert) -> UserUpsertResponse:
    """Create the user, or update plan/status/custom columns of the existing one."""
    email = require_email(body.email)
    now = utc_now()

    update_fields: dict[str, Any] = {UserField.UPDATED_AT: now}
    if body.plan:
        update_fields[UserField.PLAN] = body.plan
    if body.status:
        update_fields[UserField.STATUS] = body.status
    update_fields.update(body.custom_fields)

    create_fields: dict[str, Any] = {
        UserField.EMAIL: email,
        UserField.PLAN: body.plan or DEFAULT_PLAN,
        UserField.STATUS: body.status or "pending",
        UserField.CREATED_AT: now,
        UserField.UPDATED_AT: now,
        **body.custom_fields,
    }

    action, record = await directory.upsert_by_email(
        email, create_fields=create_fields, update_fields=update_fields
    )
    logger.info("Admin %s user record %s", action, record.id)
    return UserUpsertResponse(action=action, user=serialize(record))


async def delete_user(directory: UserDirectory, email: str | None) -> None:
    record = await directory.find_by_email(require_email(email))
    if record is None:
        raise NotFound("User not found")
    await directory.delete(record.id)


async def bulk_apply(directory: UserDirectory, body: BulkRequest) -> list[BulkItemResult]:
    """Apply ``body.action`` to each email independently.

    A failure for one email is reported in its own result entry and never
    stops the remaining emails from being processed.
    """
    if body.action == "update" and not body.updates:
        raise BadRequest("updates are required for the update action")

    results: list[BulkItemResult] = []
    for email in body.emails:
        try:
            record = await directory.find_by_email(require_email(email))
            if record is None:
                results.append(BulkItemResult(email=email, status="not_found"))
            elif body.action == "update":
                await directory.update(
                    record.id, {**body.updates, UserField.UPDATED_AT: utc_now()}
                )
                results.append(BulkItemResult(email=email, status="updated"))
            else:
                await directory.delete(record.id)
                results.append(BulkItemResult(email=email, status="deleted"))
        except PaywallError as e:
            logger.warning("Bulk %s failed for one email: %s", body.action, e.detail)
            results.append(BulkItemResult(email=email, status="error", error=e.detail))
        except Exception:
            logger.exception("Bulk %s raised unexpectedly for one email", body.action)
            results.append(
                BulkItemResult(email=email, status="error", error="Unexpected error")
            )
    return results


async def get_analytics(
    directory: UserDirectory,
    start: datetime | None = None,
    end: datetime | None = None,
) -> AnalyticsResponse:
    """Counts by status and plan, plus monthly revenue from active records."""
    where = all_of(
        OnOrAfter(UserField.CREATED_AT, start) if start else None,
        Before(UserField.CREATED_AT, end) if end else None,
    )
    records = await directory.list_records(where)

    by_status = Counter(r.status or "unknown" for r in records)
    by_plan = Counter(r.plan or DEFAULT_PLAN for r in records)
    revenue = sum(monthly_price(r.plan) for r in records if r.status == "active")

    return AnalyticsResponse(
        total_users=len(records),
        active_subscriptions=by_status.get("active", 0),
        pending_users=by_status.get("pending", 0),
        canceled_users=sum(by_status.get(s, 0) for s in _CANCELED_STATUSES),
        by_status=dict(by_status),
        by_plan=dict(by_plan),
        revenue_estimate=revenue,
    )
