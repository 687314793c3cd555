"""Create the Stripe product and monthly prices for the paywall (test mode).

Run once:
    python -m paywall.billing.scripts.create_stripe_price

Outputs the price IDs to set in .env:
    STRIPE_PRICE_ID=price_xxx
    STRIPE_PRICE_IDS={"premium": "price_xxx", ...}
"""

import asyncio
import json

import stripe
from stripe import StripeClient

from paywall.billing.plans import DEFAULT_CHECKOUT_PLAN, PLANS
from paywall.config import settings


async def main() -> None:
    if not settings.stripe_secret_key:
        print("ERROR: STRIPE_SECRET_KEY is not set in .env")
        return

    client = StripeClient(
        settings.stripe_secret_key,
        http_client=stripe.HTTPXClient(),
    )

    product = await client.v1.products.create_async(
        params={
            "name": settings.app_name,
            "description": "Subscription access to the paid GPT tool",
            "metadata": {"source": settings.customer_source_tag},
        }
    )
    print(f"Created product: {product.name} ({product.id})")

    price_ids: dict[str, str] = {}
    for plan in PLANS.values():
        if not plan.paid:
            continue
        price = await client.v1.prices.create_async(
            params={
                "product": product.id,
                "unit_amount": plan.price_monthly_usd * 100,
                "currency": "usd",
                "recurring": {"interval": "month"},
                "nickname": plan.display_name,
                "metadata": {"plan": plan.name},
            }
        )
        price_ids[plan.name] = price.id
        print(f"  {plan.display_name}: ${plan.price_monthly_usd}.00/mo ({price.id})")

    print("\n--- Add these to your .env ---")
    print(f"STRIPE_PRICE_ID={price_ids[DEFAULT_CHECKOUT_PLAN]}")
    print(f"STRIPE_PRICE_IDS={json.dumps(price_ids)}")


if __name__ == "__main__":
    asyncio.run(main())
