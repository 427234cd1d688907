"""
Billing provider protocol.

Defines the interface for billing providers (Stripe, etc.).
This allows swapping providers without changing business logic.
"""
from typing import Protocol, Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass
class CheckoutSession:
    """A hosted card-setup page for one anonymous session."""
    session_id: str
    url: str


@dataclass
class BillingWebhookResult:
    """Result of verifying and parsing a billing webhook."""
    event_id: str
    event_type: str
    anon_session_id: Optional[str]
    customer_id: Optional[str]
    metadata: Dict[str, Any] = field(default_factory=dict)


class BillingProvider(Protocol):
    """
    Protocol for billing providers.

    Implementations must handle:
    - Setup-mode checkout session creation (card on file, no charge)
    - Webhook signature verification and parsing
    """

    def create_setup_session(self, anon_session_id: str, success_url: str, cancel_url: str) -> CheckoutSession:
        """
        Create a checkout session that saves a card for the anonymous session.

        Raises:
            BillingProviderError: If session creation fails
        """
        ...

    def handle_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
        """
        Verify webhook signature and parse event.

        Args:
            headers: HTTP headers (must include signature header)
            body: Raw webhook body (for signature verification)

        Raises:
            BillingWebhookError: If signature invalid or parsing fails
        """
        ...


class BillingProviderError(Exception):
    """Base exception for billing provider errors."""
    pass


class BillingWebhookError(BillingProviderError):
    """Exception for webhook processing errors."""
    pass
