"""Access check: does an email currently hold an active, unexpired subscription?"""

import logging
from datetime import datetime

from paywall.directory import UserDirectory, UserRecord, normalize_email, utc_now
from paywall.errors import BadRequest, NotFound
from paywall.schemas.access import AccessResponse, UserDetailResponse

logger = logging.getLogger(__name__)


def require_email(email: str | None) -> str:
    """Normalize ``email`` or raise BadRequest when it is missing/blank."""
    normalized = normalize_email(email)
    if not normalized:
        raise BadRequest("Email is required")
    return normalized


async def check_access(
    directory: UserDirectory,
    email: str | None,
    now: datetime | None = None,
) -> AccessResponse:
    """Derive access from the directory record; recomputed on every call.

    An unknown email is not an error, it simply has no access.
    """
    normalized = require_email(email)
    record = await directory.find_by_email(normalized)
    if record is None:
        return AccessResponse(has_access=False)

    return AccessResponse(
        has_access=record.has_access(now or utc_now()),
        plan=record.plan,
        status=record.status,
        current_period_end=record.current_period_end,
    )


async def get_user(directory: UserDirectory, email: str | None) -> UserDetailResponse:
    record = await directory.find_by_email(require_email(email))
    if record is None:
        raise NotFound("User not found")
    return to_detail(record)


def to_detail(record: UserRecord) -> UserDetailResponse:
    return UserDetailResponse(
        id=record.id,
        email=record.email,
        plan=record.plan,
        status=record.status,
        customer_id=record.stripe_customer_id,
        subscription_id=record.subscription_id,
        current_period_end=record.current_period_end,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )
