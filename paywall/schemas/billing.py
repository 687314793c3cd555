"""Pydantic v2 request/response schemas for billing endpoints."""

from pydantic import BaseModel, Field

from paywall.billing.plans import DEFAULT_CHECKOUT_PLAN

# --- Request schemas ---


class CheckoutRequest(BaseModel):
    """Request to create a Stripe Checkout session."""

    email: str = Field(..., min_length=1)
    plan: str = DEFAULT_CHECKOUT_PLAN


class PortalRequest(BaseModel):
    """Request to create a Stripe Customer Portal session."""

    email: str = Field(..., min_length=1)


# --- Response schemas ---


class CheckoutResponse(BaseModel):
    """Stripe Checkout session returned to the GPT."""

    session_id: str
    checkout_url: str


class PortalResponse(BaseModel):
    """Stripe Customer Portal URL returned to the GPT."""

    portal_url: str


class WebhookAck(BaseModel):
    received: bool = True
