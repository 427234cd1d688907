"""
aistudio/features/usage/service.py

Usage gate for anonymous sessions.

Handles:
- Free allowance checks per usage kind (calendar month, UTC)
- Usage tracking (counter + accumulated vendor cost)
- Payment status (card on file = unlimited)

check_usage and track_usage are separate calls; two concurrent requests
can both pass the check before either is tracked.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, Mapping, Optional

from aistudio.core.errors import QuotaExceededError, ValidationError
from aistudio.core.logging import log_event
from aistudio.core.store import KeyValueStore
from aistudio.models.usage import (
    USAGE_KINDS,
    PaymentStatus,
    UsageCheck,
    UsageKindSummary,
    UsageSummary,
)

FREE_LIMITS: Dict[str, int] = {
    "lyric_generations": 5,
    "cover_art": 3,
    "video_generations": 0,
    "chat_messages": 10,
    "image_edits": 5,
    "agent_calls": 5,
    "sandbox_hours": 0,
    "ai_assists": 10,
}

# Vendor cost per unit, USD
COSTS: Dict[str, float] = {
    "lyric_generations": 0.02,
    "cover_art": 0.04,
    "video_generations": 0.50,
    "chat_messages": 0.002,
    "image_edits": 0.01,
    "agent_calls": 0.005,
    "sandbox_hours": 0.05,
    "ai_assists": 0.003,
}

UPGRADE_URL = "/dashboard"

# Counters outlive their month by a few days, then expire
USAGE_KEY_TTL_SECONDS = 60 * 60 * 24 * 40

_KIND_LABELS = {
    "lyric_generations": "lyric generations",
    "cover_art": "cover art generations",
    "video_generations": "video generations",
    "chat_messages": "chat messages",
    "image_edits": "image edits",
    "agent_calls": "agent calls",
    "sandbox_hours": "sandbox hours",
    "ai_assists": "AI assists",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def usage_period(now: datetime) -> str:
    """Calendar month bucket, e.g. 2026-10."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y-%m")


def usage_key(session_id: str, period: str, kind: str) -> str:
    return f"usage:{session_id}:{period}:{kind}"


def cost_key(session_id: str, period: str) -> str:
    return f"usage:{session_id}:{period}:cost"


def payment_key(session_id: str) -> str:
    return f"payment:{session_id}"


class UsageGate:
    """Per-session metering over an injected key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        limits: Optional[Mapping[str, int]] = None,
        costs: Optional[Mapping[str, float]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.limits = dict(FREE_LIMITS)
        if limits:
            self.limits.update(limits)
        self.costs = dict(COSTS)
        if costs:
            self.costs.update(costs)
        self._clock = clock

    def _require_kind(self, kind: str) -> None:
        if kind not in USAGE_KINDS:
            raise ValidationError(f"Unknown usage kind: {kind}")

    def _used(self, session_id: str, period: str, kind: str) -> int:
        value = self.store.get(usage_key(session_id, period, kind))
        return int(value or 0)

    def get_payment_status(self, session_id: str) -> PaymentStatus:
        raw = self.store.get(payment_key(session_id))
        if not raw:
            return PaymentStatus()
        return PaymentStatus.model_validate(raw)

    def check_usage(self, session_id: str, kind: str) -> UsageCheck:
        """Whether the session may perform one more `kind` action this month."""
        self._require_kind(kind)
        period = usage_period(self._clock())
        used = self._used(session_id, period, kind)

        if self.get_payment_status(session_id).has_payment:
            return UsageCheck(allowed=True, limit=None, used=used, remaining=None)

        limit = self.limits[kind]
        remaining = max(0, limit - used)
        if used < limit:
            return UsageCheck(allowed=True, limit=limit, used=used, remaining=remaining)

        label = _KIND_LABELS.get(kind, kind)
        if limit == 0:
            reason = f"{label.capitalize()} require a payment method on file."
        else:
            reason = f"Free limit of {limit} {label} reached for this month. Add a payment method to continue."
        return UsageCheck(
            allowed=False,
            reason=reason,
            limit=limit,
            used=used,
            remaining=0,
            upgrade_url=UPGRADE_URL,
        )

    def require_usage(self, session_id: str, kind: str) -> UsageCheck:
        """check_usage, raising QuotaExceededError (429) when refused."""
        check = self.check_usage(session_id, kind)
        if not check.allowed:
            log_event(
                "warning",
                "usage.refused",
                session_id=session_id,
                event_type="usage.refused",
                error_code=QuotaExceededError.code,
                extra={"kind": kind, "used": check.used, "limit": check.limit},
            )
            raise QuotaExceededError(
                check.reason or "Usage limit reached",
                limit=check.limit,
                used=check.used,
                remaining=check.remaining or 0,
                upgrade_url=check.upgrade_url or UPGRADE_URL,
            )
        return check

    def track_usage(self, session_id: str, kind: str, quantity: int = 1) -> int:
        """Record `quantity` units of `kind`; returns the new monthly count."""
        self._require_kind(kind)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity must be a positive integer")

        period = usage_period(self._clock())
        count = self.store.incr_by(usage_key(session_id, period, kind), quantity, ttl_seconds=USAGE_KEY_TTL_SECONDS)
        cost = self.costs.get(kind, 0.0) * quantity
        if cost:
            self.store.incr_by_float(cost_key(session_id, period), cost, ttl_seconds=USAGE_KEY_TTL_SECONDS)

        log_event(
            "info",
            "usage.tracked",
            session_id=session_id,
            event_type="usage.tracked",
            extra={"kind": kind, "quantity": quantity, "count": count},
        )
        return count

    def set_payment_status(self, session_id: str, customer_id: Optional[str]) -> PaymentStatus:
        status = PaymentStatus(
            has_payment=True,
            stripe_customer_id=customer_id,
            added_at=self._clock(),
        )
        self.store.set(payment_key(session_id), status.model_dump(mode="json"))
        log_event("info", "usage.payment_added", session_id=session_id, event_type="payment.added")
        return status

    def get_usage_summary(self, session_id: str) -> UsageSummary:
        period = usage_period(self._clock())
        has_payment = self.get_payment_status(session_id).has_payment
        usage: Dict[str, UsageKindSummary] = {}
        for kind in USAGE_KINDS:
            used = self._used(session_id, period, kind)
            if has_payment:
                usage[kind] = UsageKindSummary(used=used)
            else:
                limit = self.limits[kind]
                usage[kind] = UsageKindSummary(used=used, limit=limit, remaining=max(0, limit - used))
        cost = float(self.store.get(cost_key(session_id, period)) or 0.0)
        return UsageSummary(
            session_id=session_id,
            period=period,
            has_payment=has_payment,
            cost=round(cost, 4),
            usage=usage,
        )
