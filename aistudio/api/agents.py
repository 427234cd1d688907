"""
Agent API routes.

- GET    /api/agents: list agents (newest update first)
- POST   /api/agents: create an agent
- GET    /api/agents/{agent_id}
- PUT    /api/agents/{agent_id}
- DELETE /api/agents/{agent_id}
- POST   /api/agents/run: stream an agent reply as server-sent events
"""
import json
from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError as PydanticValidationError

from aistudio.api.deps import get_agent_store, get_chat_client, get_usage_gate
from aistudio.core.errors import NotFoundError, ValidationError
from aistudio.core.middleware.session import get_session_id
from aistudio.features.agents.runner import prepare_agent_run, stream_agent_reply
from aistudio.features.agents.store import AgentStore
from aistudio.features.usage.service import UsageGate
from aistudio.models.agent import AgentConfig, AgentCreate, AgentRunRequest

router = APIRouter(prefix="/agents", tags=["agents"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("", response_model=List[AgentConfig])
def list_agents(agents: AgentStore = Depends(get_agent_store)):
    return agents.list()


@router.post("", response_model=AgentConfig, status_code=201)
def create_agent(body: AgentCreate, agents: AgentStore = Depends(get_agent_store)):
    return agents.create(body)


async def _read_run_request(request: Request) -> AgentRunRequest:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return AgentRunRequest()
    if not isinstance(payload, dict):
        return AgentRunRequest()
    try:
        return AgentRunRequest.model_validate(payload)
    except PydanticValidationError:
        raise ValidationError("Agent ID and message required")


@router.post("/run")
async def run_agent(
    request: Request,
    session_id: str = Depends(get_session_id),
    gate: UsageGate = Depends(get_usage_gate),
    agents: AgentStore = Depends(get_agent_store),
):
    """
    Run an agent against one user message.

    Order: quota check (429), body validation (400), agent lookup (404),
    usage tracking, then the stream.
    """
    body = await _read_run_request(request)
    config = prepare_agent_run(gate, agents, session_id, body)
    chat = get_chat_client(request)
    return StreamingResponse(
        stream_agent_reply(chat, config, body.user_message, session_id=session_id),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/{agent_id}", response_model=AgentConfig)
def get_agent(agent_id: str, agents: AgentStore = Depends(get_agent_store)):
    config = agents.load(agent_id)
    if config is None:
        raise NotFoundError("Agent not found")
    return config


@router.put("/{agent_id}", response_model=AgentConfig)
def update_agent(agent_id: str, body: AgentCreate, agents: AgentStore = Depends(get_agent_store)):
    return agents.update(agent_id, body)


@router.delete("/{agent_id}")
def delete_agent(agent_id: str, agents: AgentStore = Depends(get_agent_store)):
    agents.delete(agent_id)
    return {"success": True}
