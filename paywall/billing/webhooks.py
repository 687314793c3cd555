"""Stripe webhook event handlers: reconcile billing state into the directory.

The webhook is the authoritative reconciler.  Directory writes made at
checkout time are advisory; whatever they missed is corrected here.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import stripe

from paywall.billing.plans import PLANS
from paywall.billing.stripe_client import get_subscription, retrieve_customer
from paywall.directory import UserDirectory, UserField, utc_now

logger = logging.getLogger(__name__)

WebhookHandler = Callable[[UserDirectory, stripe.Event], Awaitable[None]]


def _ts_to_datetime(ts: int | None) -> datetime | None:
    """Convert a Stripe Unix timestamp to an aware UTC datetime."""
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def _get_first_item(stripe_sub: Any):
    """Get the first subscription item, using bracket notation to avoid
    collision with Python dict .items() in newer Stripe API versions.
    """
    try:
        sub_items = stripe_sub["items"]
    except (KeyError, AttributeError):
        return None
    if sub_items and sub_items.data:
        return sub_items.data[0]
    return None


def _get_period_end(stripe_sub: Any) -> datetime | None:
    """Current period end of a subscription.

    In Stripe API 2025-08-27 (basil), current_period_end moved from the
    subscription object to the subscription item; older versions have it on
    the subscription.
    """
    item = _get_first_item(stripe_sub)
    ts = getattr(item, "current_period_end", None) if item else None
    if ts is None:
        ts = getattr(stripe_sub, "current_period_end", None)
    return _ts_to_datetime(ts)


def _customer_email(customer: Any) -> str | None:
    if getattr(customer, "deleted", False):
        return None
    return getattr(customer, "email", None)


async def handle_checkout_session_completed(
    directory: UserDirectory, event: stripe.Event
) -> None:
    """Handle checkout.session.completed: activate the buyer's directory record."""
    session = event.data.object
    customer_id = session.customer
    subscription_id = getattr(session, "subscription", None)

    if not subscription_id:
        logger.info("Checkout session %s has no subscription (one-time?), skipping", session.id)
        return

    customer = await retrieve_customer(customer_id)
    stripe_sub = await get_subscription(subscription_id)

    email = _customer_email(customer)
    if not email:
        logger.warning("Stripe customer %s has no email (checkout %s)", customer_id, session.id)
        return

    record = await directory.find_by_email(email)
    if record is None:
        # Known gap: a checkout for an email we never mirrored is not auto-created.
        logger.warning(
            "No directory record for Stripe customer %s (checkout %s)",
            customer_id,
            session.id,
        )
        return

    fields: dict[str, Any] = {
        UserField.STATUS: "active",
        UserField.SUBSCRIPTION_ID: stripe_sub.id,
        UserField.CURRENT_PERIOD_END: _get_period_end(stripe_sub),
        UserField.UPDATED_AT: utc_now(),
    }
    metadata = getattr(session, "metadata", None) or {}
    if metadata.get("plan") in PLANS:
        fields[UserField.PLAN] = metadata["plan"]

    await directory.update(record.id, fields)
    logger.info(
        "Checkout completed: record %s activated with subscription %s",
        record.id,
        stripe_sub.id,
    )


async def handle_subscription_changed(
    directory: UserDirectory, event: stripe.Event
) -> None:
    """Handle customer.subscription.updated/deleted: mirror status and period."""
    stripe_sub = event.data.object
    customer_id = stripe_sub.customer

    customer = await retrieve_customer(customer_id)

    fields: dict[str, Any] = {
        UserField.STATUS: stripe_sub.status,
        UserField.CURRENT_PERIOD_END: _get_period_end(stripe_sub),
        UserField.UPDATED_AT: utc_now(),
    }

    record = await directory.find_by_customer_id(customer_id)
    if record is None:
        email = _customer_email(customer)
        record = await directory.find_by_email(email) if email else None
        if record is not None:
            fields[UserField.STRIPE_CUSTOMER_ID] = customer_id

    if record is None:
        logger.warning(
            "No directory record for Stripe customer %s (subscription %s, %s)",
            customer_id,
            stripe_sub.id,
            event.type,
        )
        return

    await directory.update(record.id, fields)
    logger.info(
        "Subscription %s for record %s → status=%s",
        stripe_sub.id,
        record.id,
        stripe_sub.status,
    )


EVENT_HANDLERS: dict[str, WebhookHandler] = {
    "checkout.session.completed": handle_checkout_session_completed,
    "customer.subscription.updated": handle_subscription_changed,
    "customer.subscription.deleted": handle_subscription_changed,
}
