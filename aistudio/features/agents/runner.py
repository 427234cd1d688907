r"""
Agent runs: quota gate, agent lookup and the SSE relay of the xAI stream.

Wire format, one event per content delta:

    data: {"content": "..."}\n\n
    ...
    data: [DONE]\n\n

A vendor error after the stream opened is sent in-band as
``data: {"error": "..."}`` before the terminator.
"""

import json
import logging
from typing import AsyncIterator, Optional

import httpx
from openai import OpenAIError

from aistudio.core.errors import NotFoundError, ValidationError
from aistudio.core.logging import log_event
from aistudio.features.agents.store import AgentStore
from aistudio.features.usage.service import UsageGate
from aistudio.models.agent import AgentConfig, AgentRunRequest

SSE_DONE = "data: [DONE]\n\n"

logger = logging.getLogger("aistudio")


def format_sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def prepare_agent_run(gate: UsageGate, agents: AgentStore, session_id: str, body: Optional[AgentRunRequest]) -> AgentConfig:
    """Gate, validate and load, in that order; charges one agent call on success."""
    gate.require_usage(session_id, "agent_calls")

    if body is None or not body.agent_id or not body.user_message:
        raise ValidationError("Agent ID and message required")

    config = agents.load(body.agent_id)
    if config is None:
        raise NotFoundError("Agent not found")

    gate.track_usage(session_id, "agent_calls", 1)
    return config


async def stream_agent_reply(chat, config: AgentConfig, user_message: str, session_id: Optional[str] = None) -> AsyncIterator[str]:
    """Relay the chat stream as SSE lines; always ends with [DONE]."""
    chunks = 0
    try:
        async for token in chat.stream_chat(
            system_prompt=config.system_prompt,
            user_message=user_message,
            model=config.model,
            temperature=config.temperature,
        ):
            chunks += 1
            yield format_sse({"content": token})
    except (OpenAIError, httpx.HTTPError) as e:
        log_event(
            "error",
            "agents.stream_error",
            session_id=session_id,
            error_code="upstream_error",
            extra={"agent_id": config.id, "error": e},
        )
        yield format_sse({"error": str(e)})
    else:
        log_event(
            "info",
            "agents.stream_complete",
            session_id=session_id,
            event_type="agents.run",
            extra={"agent_id": config.id, "chunks": chunks},
        )
    yield SSE_DONE
