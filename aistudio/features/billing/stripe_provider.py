"""
Stripe billing provider implementation.

Implements BillingProvider protocol using Stripe API.
Handles webhook signature verification and event parsing.
"""
import json
import os
from typing import Dict, Any, Optional
import stripe

from aistudio.features.billing.provider import (
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
    CheckoutSession,
)


class StripeProvider:
    """Stripe implementation of BillingProvider protocol."""

    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        """
        Initialize Stripe provider.

        Args:
            secret_key: Stripe secret key (defaults to STRIPE_SECRET_KEY env var)
            webhook_secret: Stripe webhook secret (defaults to STRIPE_WEBHOOK_SECRET env var)
        """
        self.secret_key = secret_key or os.getenv("STRIPE_SECRET_KEY")
        self.webhook_secret = webhook_secret or os.getenv("STRIPE_WEBHOOK_SECRET")

        if not self.secret_key:
            raise BillingProviderError("STRIPE_SECRET_KEY not configured")

        stripe.api_key = self.secret_key

    def create_setup_session(self, anon_session_id: str, success_url: str, cancel_url: str) -> CheckoutSession:
        """Create a setup-mode Stripe Checkout session (card on file, no charge)."""
        try:
            session = stripe.checkout.Session.create(
                mode="setup",
                payment_method_types=["card"],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata={"anon_session_id": anon_session_id},
                customer_creation="always",
            )
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session creation failed: {e}")
        return CheckoutSession(session_id=session.id, url=session.url)

    def handle_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
        """Verify Stripe webhook signature and parse event."""
        if not self.webhook_secret:
            raise BillingProviderError("STRIPE_WEBHOOK_SECRET not configured")

        sig_header = headers.get("stripe-signature") or headers.get("Stripe-Signature")
        if not sig_header:
            raise BillingWebhookError("Missing stripe-signature header")

        try:
            stripe.Webhook.construct_event(body, sig_header, self.webhook_secret)
            event = json.loads(body)
        except ValueError as e:
            raise BillingWebhookError(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise BillingWebhookError(f"Invalid signature: {e}")

        return self._parse_event(event)

    def _parse_event(self, event: Dict[str, Any]) -> BillingWebhookResult:
        """Parse Stripe event into normalized BillingWebhookResult."""
        data = (event.get("data") or {}).get("object") or {}
        metadata = dict(data.get("metadata") or {})

        customer_id = None
        anon_session_id = None
        if event["type"] == "checkout.session.completed":
            customer_id = data.get("customer")
            anon_session_id = metadata.get("anon_session_id")

        return BillingWebhookResult(
            event_id=event["id"],
            event_type=event["type"],
            anon_session_id=anon_session_id,
            customer_id=customer_id,
            metadata=metadata,
        )
