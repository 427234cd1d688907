"""
aistudio/models/usage.py

Usage metering models: per-session monthly counters, gate decisions and
payment status.
"""

from datetime import datetime
from typing import Dict, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field

UsageKind = Literal[
    "lyric_generations",
    "cover_art",
    "video_generations",
    "chat_messages",
    "image_edits",
    "agent_calls",
    "sandbox_hours",
    "ai_assists",
]

USAGE_KINDS = get_args(UsageKind)


class UsageCheck(BaseModel):
    """
    Gate decision for one usage kind.

    limit and remaining are None when a payment method is on file (unlimited).
    reason and upgrade_url are only set when allowed is False.
    """
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[str] = None
    limit: Optional[int] = None
    used: int = Field(ge=0)
    remaining: Optional[int] = None
    upgrade_url: Optional[str] = None


class PaymentStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_payment: bool = False
    stripe_customer_id: Optional[str] = None
    added_at: Optional[datetime] = None


class UsageKindSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    used: int = Field(ge=0)
    limit: Optional[int] = None
    remaining: Optional[int] = None


class UsageSummary(BaseModel):
    """Dashboard view of a session's current month."""
    model_config = ConfigDict(frozen=True)

    session_id: str
    period: str = Field(description="Calendar month, YYYY-MM (UTC)")
    has_payment: bool
    cost: float = Field(ge=0, description="Accumulated vendor cost this month, USD")
    usage: Dict[str, UsageKindSummary]


class TrackUsageRequest(BaseModel):
    kind: UsageKind
    quantity: int = 1
