"""Stripe webhook endpoint: receives and processes Stripe events.

Not behind the API key or the rate limiters; the Stripe signature over the
raw body is the only credential.
"""

import logging

import stripe
from fastapi import APIRouter, Depends, Request

from paywall.api.deps import get_directory
from paywall.billing.stripe_client import construct_webhook_event
from paywall.billing.webhooks import EVENT_HANDLERS
from paywall.config import settings
from paywall.directory import UserDirectory
from paywall.errors import InvalidSignature, ServerMisconfigured, UpstreamFailure
from paywall.schemas.billing import WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["webhooks"])


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    directory: UserDirectory = Depends(get_directory),
) -> WebhookAck:
    """Receive and process Stripe webhook events."""
    if not settings.stripe_webhook_secret:
        raise ServerMisconfigured("STRIPE_WEBHOOK_SECRET is not set")

    # 1. Read raw body (MUST be raw bytes for signature verification)
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature", "")

    # 2. Verify signature before touching anything
    try:
        event = construct_webhook_event(payload, sig_header)
    except stripe.SignatureVerificationError as e:
        logger.warning("Webhook signature verification failed")
        raise InvalidSignature("Invalid signature") from e
    except ValueError as e:
        logger.warning("Invalid webhook payload")
        raise InvalidSignature("Invalid payload") from e

    # 3. Dispatch to handler
    handler = EVENT_HANDLERS.get(event.type)
    if handler is None:
        logger.info("Unhandled webhook event type: %s", event.type)
        return WebhookAck()

    logger.info("Processing webhook event: %s (id=%s)", event.type, event.id)

    # 4. Any failure after verification is a 500 so Stripe retries delivery
    try:
        await handler(directory, event)
    except Exception as e:
        logger.exception("Error processing webhook event %s", event.id)
        raise UpstreamFailure("Webhook processing failed") from e

    return WebhookAck()
