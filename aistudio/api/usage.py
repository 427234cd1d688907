"""
Usage API routes.

- GET  /api/usage/me: monthly counters, cost and payment status
- GET  /api/usage/can-use?kind=: gate decision for one usage kind
- POST /api/usage/track: record usage for the current session
"""
from fastapi import APIRouter, Depends

from aistudio.api.deps import get_usage_gate
from aistudio.core.middleware.session import get_session_id
from aistudio.features.usage.service import UsageGate
from aistudio.models.usage import TrackUsageRequest, UsageCheck, UsageKind, UsageSummary

router = APIRouter(prefix="/usage", tags=["usage"])


@router.get("/me", response_model=UsageSummary)
def usage_me(session_id: str = Depends(get_session_id), gate: UsageGate = Depends(get_usage_gate)):
    return gate.get_usage_summary(session_id)


@router.get("/can-use", response_model=UsageCheck)
def can_use(kind: UsageKind, session_id: str = Depends(get_session_id), gate: UsageGate = Depends(get_usage_gate)):
    return gate.check_usage(session_id, kind)


@router.post("/track")
def track(body: TrackUsageRequest, session_id: str = Depends(get_session_id), gate: UsageGate = Depends(get_usage_gate)):
    count = gate.track_usage(session_id, body.kind, body.quantity)
    return {"success": True, "kind": body.kind, "used": count}
