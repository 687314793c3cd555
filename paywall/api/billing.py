"""Billing API endpoints: Stripe Checkout and Customer Portal."""

from fastapi import APIRouter, Depends

from paywall.api.deps import PROTECTED, get_directory
from paywall.directory import UserDirectory
from paywall.schemas.billing import (
    CheckoutRequest,
    CheckoutResponse,
    PortalRequest,
    PortalResponse,
)
from paywall.services.billing_service import open_portal, start_checkout

router = APIRouter(prefix="/billing", tags=["billing"], dependencies=PROTECTED)


@router.post("/checkout-session", response_model=CheckoutResponse)
async def create_checkout(
    body: CheckoutRequest,
    directory: UserDirectory = Depends(get_directory),
) -> CheckoutResponse:
    """Create a Stripe Checkout session for a subscription."""
    return await start_checkout(directory, body.email, body.plan)


@router.post("/portal-session", response_model=PortalResponse)
async def create_portal(body: PortalRequest) -> PortalResponse:
    """Create a Stripe Customer Portal session for subscription management."""
    return await open_portal(body.email)
