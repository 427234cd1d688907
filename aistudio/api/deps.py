"""FastAPI dependencies resolving the app-owned stores and clients."""

from fastapi import Request

from aistudio.features.agents.store import AgentStore
from aistudio.features.feeds.aggregator import FeedAggregator
from aistudio.features.usage.service import UsageGate
from aistudio.features.video.job_store import JobStore
from aistudio.features.video.runner import VideoJobRunner


def get_usage_gate(request: Request) -> UsageGate:
    return request.app.state.usage_gate


def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


def get_video_runner(request: Request) -> VideoJobRunner:
    return request.app.state.video_runner


def get_agent_store(request: Request) -> AgentStore:
    return request.app.state.agent_store


def get_feed_aggregator(request: Request) -> FeedAggregator:
    return request.app.state.feed_aggregator


def get_chat_client(request: Request):
    """Built per request so a missing XAI_API_KEY only fails agent runs."""
    return request.app.state.chat_client_factory()
