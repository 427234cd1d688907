"""
Health and diagnostics API.

Lightweight endpoints for operational monitoring; nothing here returns a
secret value.
"""

import logging
import os

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from aistudio.core.config import settings
from aistudio.core.database import get_engine
from aistudio.core.logging import get_request_id

logger = logging.getLogger("aistudio")

router = APIRouter(prefix="/health", tags=["health"])
root_router = APIRouter(tags=["health"])

REQUIRED_TABLES = ["generations"]

VENDOR_KEYS = {
    "openai": "OPENAI_API_KEY",
    "xai": "XAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "luma": "LUMA_API_KEY",
    "freeimage": "FREEIMAGE_API_KEY",
    "elevenlabs": "ELEVENLABS_API_KEY",
    "seoproai": "SEOPROAI_API_KEY",
    "daytona": "DAYTONA_API_KEY",
    "stripe": "STRIPE_SECRET_KEY",
    "stripeWebhook": "STRIPE_WEBHOOK_SECRET",
}


@root_router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz():
    """Readiness check: DB connectivity + required tables."""
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")

        inspector = inspect(engine)
        missing = [t for t in REQUIRED_TABLES if not inspector.has_table(t)]
        if missing:
            detail = f"missing tables: {', '.join(missing)}"
            logger.warning(f"[readyz] {detail}")
            return JSONResponse(status_code=503, content={"status": "error", "detail": detail})

        return {"status": "ok"}
    except Exception as e:
        logger.error(f"[readyz] readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})


@router.get("/vendors")
def vendors(request: Request):
    """Which vendor keys are configured (booleans only) and whether usage survives restarts."""
    configured = {name: bool(os.getenv(key) or getattr(settings, key, None)) for name, key in VENDOR_KEYS.items()}
    store = request.app.state.store
    persistent = bool(getattr(store, "persistent", False))
    logger.info(
        "health.vendors",
        extra={"request_id": get_request_id(), "configured": sum(configured.values())},
    )
    return {"vendors": configured, "usageStore": {"persistent": persistent, "reachable": store.ping()}}
