import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Callable, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

# Load env from aistudio/.env
app_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(app_dir, ".env"))

# Import after dotenv is loaded
from aistudio.api import agents, feeds, generations, health, stripe, usage, video
from aistudio.core.config import settings, validate_config
from aistudio.core.database import create_all_tables
from aistudio.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from aistudio.core.logging import configure_logging
from aistudio.core.middleware.request_id import RequestIdMiddleware
from aistudio.core.middleware.session import AnonymousSessionMiddleware
from aistudio.core.store import KeyValueStore, build_store
from aistudio.core.validation import validate_env
from aistudio.features.agents.store import AgentStore
from aistudio.features.feeds.aggregator import FeedAggregator
from aistudio.features.usage.service import UsageGate
from aistudio.features.video.job_store import JobStore, run_sweeper
from aistudio.features.video.runner import PipelineFactory, VideoJobRunner, default_pipeline_factory

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))

logger = logging.getLogger("aistudio")


def _default_chat_client():
    from aistudio.services.xai_client import XaiChatClient

    return XaiChatClient()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting AI Studio backend...")
    try:
        create_all_tables()
    except Exception as e:
        # readyz reports the missing table; the rest of the app still serves
        logger.error(f"[startup] create_all_tables failed: {e}")
    sweeper = asyncio.create_task(run_sweeper(app.state.job_store, settings.VIDEO_JOB_SWEEP_SECONDS))
    try:
        yield
    finally:
        sweeper.cancel()
        await asyncio.gather(sweeper, return_exceptions=True)
        await app.state.video_runner.shutdown()
        logger.info("Stopping AI Studio backend...")


def create_app(
    store: Optional[KeyValueStore] = None,
    job_store: Optional[JobStore] = None,
    pipeline_factory: Optional[PipelineFactory] = None,
    feed_aggregator: Optional[FeedAggregator] = None,
    agent_store: Optional[AgentStore] = None,
    chat_client_factory: Optional[Callable] = None,
) -> FastAPI:
    app = FastAPI(title="AI Studio - Backend", lifespan=lifespan)

    app.state.store = store if store is not None else build_store(settings.REDIS_URL)
    app.state.usage_gate = UsageGate(app.state.store)
    app.state.job_store = job_store if job_store is not None else JobStore(ttl_seconds=settings.VIDEO_JOB_TTL_SECONDS)
    app.state.video_runner = VideoJobRunner(
        app.state.job_store,
        app.state.usage_gate,
        pipeline_factory=pipeline_factory or default_pipeline_factory,
        timeout_seconds=settings.VIDEO_JOB_TIMEOUT_SECONDS,
    )
    app.state.agent_store = agent_store if agent_store is not None else AgentStore(os.getenv("AGENTS_DIR") or settings.AGENTS_DIR)
    app.state.feed_aggregator = feed_aggregator if feed_aggregator is not None else FeedAggregator()
    app.state.chat_client_factory = chat_client_factory or _default_chat_client

    # Middlewares (last added runs first)
    app.add_middleware(
        AnonymousSessionMiddleware,
        cookie_name=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_COOKIE_MAX_AGE,
        secure=settings.ENV == "production",
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    for module in (agents, video, usage, stripe, feeds, generations, health):
        app.include_router(module.router, prefix="/api")
    app.include_router(health.root_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("aistudio.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
