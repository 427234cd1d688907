"""
Billing service orchestrator.

Coordinates:
- Card-setup checkout for anonymous sessions
- Webhook processing (card saved -> unlimited usage)

All Stripe-specific code is in stripe_provider.py.
"""
import os
from typing import Optional
from urllib.parse import urljoin

from aistudio.core.config import settings
from aistudio.core.errors import ConfigurationError, SignatureVerificationError, UpstreamError
from aistudio.core.logging import log_event
from aistudio.features.billing.provider import (
    BillingProvider,
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
    CheckoutSession,
)
from aistudio.features.billing.stripe_provider import StripeProvider
from aistudio.features.usage.service import UsageGate


def billing_enabled() -> bool:
    """Check if billing is enabled (Stripe configured)."""
    return bool(os.getenv("STRIPE_SECRET_KEY"))


def webhooks_enabled() -> bool:
    return billing_enabled() and bool(os.getenv("STRIPE_WEBHOOK_SECRET"))


def get_provider() -> Optional[BillingProvider]:
    """Get billing provider if billing is enabled."""
    if not billing_enabled():
        return None
    try:
        return StripeProvider()
    except BillingProviderError:
        return None


def _dashboard_urls() -> tuple:
    base = (os.getenv("BASE_URL") or settings.BASE_URL).rstrip("/") + "/"
    dashboard = urljoin(base, "dashboard")
    success_url = f"{dashboard}?setup=success&session_id={{CHECKOUT_SESSION_ID}}"
    cancel_url = f"{dashboard}?setup=cancelled"
    return success_url, cancel_url


def start_checkout(anon_session_id: str) -> CheckoutSession:
    """
    Start a setup-mode checkout for the anonymous session.

    Raises:
        ConfigurationError: Stripe not configured (500)
        UpstreamError: Stripe rejected the request
    """
    provider = get_provider()
    if not provider:
        raise ConfigurationError("Stripe not configured. Add STRIPE_SECRET_KEY to environment.")

    success_url, cancel_url = _dashboard_urls()
    try:
        checkout = provider.create_setup_session(anon_session_id, success_url, cancel_url)
    except BillingProviderError as e:
        raise UpstreamError("Failed to create checkout session", vendor="stripe", vendor_error=str(e))

    log_event("info", "billing.checkout_started", session_id=anon_session_id, event_type="billing.checkout")
    return checkout


def process_webhook_event(gate: UsageGate, headers, body: bytes) -> BillingWebhookResult:
    """
    Verify and apply a Stripe webhook.

    checkout.session.completed marks the session's payment method as on
    file; every other event type is logged and acknowledged.

    Raises:
        ConfigurationError: Stripe or the webhook secret not configured (500)
        SignatureVerificationError: missing or invalid signature (400)
    """
    if not webhooks_enabled():
        raise ConfigurationError("Stripe webhook not configured")
    provider = get_provider()
    if not provider:
        raise ConfigurationError("Stripe webhook not configured")

    try:
        result = provider.handle_webhook(headers, body)
    except BillingWebhookError as e:
        raise SignatureVerificationError(str(e))

    if result.event_type == "checkout.session.completed" and result.anon_session_id:
        gate.set_payment_status(result.anon_session_id, result.customer_id)
        log_event(
            "info",
            "billing.payment_method_saved",
            session_id=result.anon_session_id,
            event_type=result.event_type,
            extra={"event_id": result.event_id},
        )
    else:
        log_event(
            "info",
            "billing.webhook_ignored",
            event_type=result.event_type,
            extra={"event_id": result.event_id},
        )
    return result
