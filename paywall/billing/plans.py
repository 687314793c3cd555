"""Plan definitions: price table and Stripe price lookup."""

from dataclasses import dataclass

from paywall.config import settings


@dataclass(frozen=True)
class PlanPrice:
    """Monthly list price of a plan, used for checkout and revenue estimates."""

    name: str
    display_name: str
    price_monthly_usd: int
    paid: bool


PLANS: dict[str, PlanPrice] = {
    "free": PlanPrice(name="free", display_name="Free", price_monthly_usd=0, paid=False),
    "pro": PlanPrice(name="pro", display_name="Pro", price_monthly_usd=29, paid=True),
    "premium": PlanPrice(name="premium", display_name="Premium", price_monthly_usd=49, paid=True),
    "enterprise": PlanPrice(
        name="enterprise", display_name="Enterprise", price_monthly_usd=99, paid=True
    ),
}

DEFAULT_PLAN = "free"
DEFAULT_CHECKOUT_PLAN = "pro"
PAID_PLAN_NAMES: set[str] = {p.name for p in PLANS.values() if p.paid}


def monthly_price(plan_name: str | None) -> int:
    """Monthly price in USD; unknown plans count as zero."""
    plan = PLANS.get(plan_name or DEFAULT_PLAN)
    return plan.price_monthly_usd if plan else 0


def price_id_for(plan_name: str) -> str | None:
    """Stripe price for a plan: per-plan override first, then the default price."""
    return settings.stripe_price_ids.get(plan_name) or settings.stripe_price_id or None
