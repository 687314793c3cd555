"""Checkout and portal orchestration.

The Stripe session is the source of truth.  The directory write that follows
a checkout is best-effort: it only pre-creates the record (status "pending")
and links the customer id so the webhook can find it later.
"""

import logging

import stripe

from paywall.billing.plans import PAID_PLAN_NAMES, price_id_for
from paywall.billing.stripe_client import (
    create_checkout_session,
    create_portal_session,
    find_customer_by_email,
    get_or_create_customer,
)
from paywall.directory import UserDirectory, UserField, utc_now
from paywall.errors import BadRequest, BillingError, NotFound, PaywallError, ServerMisconfigured
from paywall.schemas.billing import CheckoutResponse, PortalResponse
from paywall.services.access_service import require_email

logger = logging.getLogger(__name__)


async def mirror_checkout_customer(
    directory: UserDirectory, email: str, customer_id: str, plan: str
) -> None:
    """Record the customer in the directory; failures are logged, never raised."""
    now = utc_now()
    try:
        action, record = await directory.upsert_by_email(
            email,
            create_fields={
                UserField.EMAIL: email,
                UserField.STRIPE_CUSTOMER_ID: customer_id,
                UserField.STATUS: "pending",
                UserField.PLAN: plan,
                UserField.CREATED_AT: now,
                UserField.UPDATED_AT: now,
            },
            update_fields={
                UserField.STRIPE_CUSTOMER_ID: customer_id,
                UserField.UPDATED_AT: now,
            },
        )
    except PaywallError as e:
        logger.error("Directory mirror failed for customer %s: %s", customer_id, e.detail)
        return
    except Exception:
        logger.exception("Unexpected error mirroring customer %s to the directory", customer_id)
        return
    logger.info("Directory record %s %s for customer %s", record.id, action, customer_id)


async def start_checkout(
    directory: UserDirectory, email: str | None, plan: str
) -> CheckoutResponse:
    """Find or create the Stripe customer and open a subscription checkout."""
    normalized = require_email(email)
    if plan not in PAID_PLAN_NAMES:
        raise BadRequest(f"Invalid plan. Choose one of: {', '.join(sorted(PAID_PLAN_NAMES))}")

    price_id = price_id_for(plan)
    if not price_id:
        raise ServerMisconfigured(f"No Stripe price configured for plan {plan!r}")

    try:
        customer = await get_or_create_customer(email.strip())
        session = await create_checkout_session(
            customer_id=customer.id,
            email=normalized,
            plan=plan,
            price_id=price_id,
        )
    except stripe.StripeError as e:
        logger.error("Stripe checkout error: %s", e)
        raise BillingError("Failed to create checkout session") from e

    await mirror_checkout_customer(directory, normalized, customer.id, plan)

    return CheckoutResponse(session_id=session.id, checkout_url=session.url)


async def open_portal(email: str | None) -> PortalResponse:
    """Open the Stripe Customer Portal for an existing customer."""
    normalized = require_email(email)
    try:
        customer = await find_customer_by_email(email.strip())
        if customer is None:
            raise NotFound("No subscription found for this email")
        session = await create_portal_session(customer.id)
    except stripe.StripeError as e:
        logger.error("Stripe portal error: %s", e)
        raise BillingError("Failed to create portal session") from e

    return PortalResponse(portal_url=session.url)
