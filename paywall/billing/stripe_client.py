"""Async Stripe API wrapper for the paywall."""

import logging

import stripe
from stripe import StripeClient

from paywall.config import settings

logger = logging.getLogger(__name__)


def get_stripe_client() -> StripeClient:
    """StripeClient on the async httpx transport, bounded by the shared timeout."""
    return StripeClient(
        settings.stripe_secret_key,
        http_client=stripe.HTTPXClient(timeout=settings.http_timeout_seconds),
    )


async def find_customer_by_email(email: str) -> stripe.Customer | None:
    """Return the first Stripe customer registered with ``email``.

    Stripe matches emails case-sensitively, so the address is tried as given
    and then lowercased.
    """
    client = get_stripe_client()
    for candidate in dict.fromkeys((email.strip(), email.strip().lower())):
        customers = await client.v1.customers.list_async(
            params={"email": candidate, "limit": 1}
        )
        if customers.data:
            return customers.data[0]
    return None


async def create_customer(email: str) -> stripe.Customer:
    """Create a Stripe customer tagged with the paywall source marker."""
    client = get_stripe_client()
    customer = await client.v1.customers.create_async(
        params={
            "email": email,
            "metadata": {"source": settings.customer_source_tag},
        }
    )
    logger.info("Created Stripe customer %s", customer.id)
    return customer


async def get_or_create_customer(email: str) -> stripe.Customer:
    customer = await find_customer_by_email(email)
    if customer is not None:
        return customer
    return await create_customer(email.strip().lower())


async def retrieve_customer(customer_id: str) -> stripe.Customer:
    """Retrieve a Stripe customer (may come back flagged ``deleted``)."""
    client = get_stripe_client()
    return await client.v1.customers.retrieve_async(customer_id)


async def get_subscription(subscription_id: str) -> stripe.Subscription:
    """Fetch a subscription; used to read status and period end."""
    client = get_stripe_client()
    return await client.v1.subscriptions.retrieve_async(subscription_id)


async def create_checkout_session(
    customer_id: str,
    email: str,
    plan: str,
    price_id: str,
) -> stripe.checkout.Session:
    """Create a subscription-mode Checkout Session for ``price_id``."""
    client = get_stripe_client()
    logger.info(
        "Creating checkout session for customer %s, plan %s, price %s",
        customer_id,
        plan,
        price_id,
    )
    return await client.v1.checkout.sessions.create_async(
        params={
            "mode": "subscription",
            "customer": customer_id,
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": f"{settings.success_url}?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": settings.cancel_url,
            "metadata": {"email": email, "plan": plan},
        }
    )


async def create_portal_session(customer_id: str) -> stripe.billing_portal.Session:
    """Portal session where the customer manages or cancels the subscription."""
    client = get_stripe_client()
    logger.info("Creating portal session for customer %s", customer_id)
    return await client.v1.billing_portal.sessions.create_async(
        params={
            "customer": customer_id,
            "return_url": settings.return_url,
        }
    )


def construct_webhook_event(payload: bytes, sig_header: str) -> stripe.Event:
    """Check the Stripe-Signature header against the raw body and parse the event.

    Raises ``stripe.SignatureVerificationError`` or ``ValueError``.
    """
    client = get_stripe_client()
    return client.construct_event(payload, sig_header, settings.stripe_webhook_secret)
