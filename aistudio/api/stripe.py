"""
Stripe routes.

- POST /api/stripe/checkout: card-setup checkout for the anonymous session
- POST /api/stripe/webhook: verified Stripe events

A saved card lifts every usage limit for the session.
"""
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from aistudio.api.deps import get_usage_gate
from aistudio.core.middleware.session import get_session_id
from aistudio.features.billing.service import process_webhook_event, start_checkout
from aistudio.features.usage.service import UsageGate

router = APIRouter(prefix="/stripe", tags=["billing"])


class CheckoutResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    session_id: str


@router.post("/checkout", response_model=CheckoutResponse)
def create_checkout(session_id: str = Depends(get_session_id)):
    """
    Create a setup-mode Checkout session.

    Success and cancel URLs always point at BASE_URL/dashboard.

    Errors:
        500: Stripe not configured, or Stripe rejected the request
    """
    checkout = start_checkout(session_id)
    return CheckoutResponse(url=checkout.url, session_id=checkout.session_id)


@router.post("/webhook")
async def handle_webhook(request: Request, gate: UsageGate = Depends(get_usage_gate)):
    """
    Handle Stripe webhook events.

    Errors:
        400: missing stripe-signature header or invalid signature
        500: STRIPE_SECRET_KEY or STRIPE_WEBHOOK_SECRET not set
    """
    # Raw body; signature covers the exact bytes
    body = await request.body()
    process_webhook_event(gate, dict(request.headers), body)
    return {"received": True}
