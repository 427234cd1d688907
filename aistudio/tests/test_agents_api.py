"""Agent CRUD and the SSE run endpoint."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from aistudio.models.agent import AgentCreate
from aistudio.tests.mocks import FakeChatClient


def _events(text):
    return [line[len("data: "):] for line in text.split("\n\n") if line.startswith("data: ")]


@pytest.fixture
def chat():
    return FakeChatClient(tokens=["Hi", " there"])


@pytest.fixture
def agents_client(make_app, agent_store, chat):
    agent_store.create(AgentCreate(id="helper", name="Helper", system_prompt="Be brief.", temperature=0.2))
    app = make_app(chat_client_factory=lambda: chat)
    with TestClient(app) as client:
        yield client


def test_run_streams_sse_and_terminates(agents_client, chat):
    resp = agents_client.post("/api/agents/run", json={"agentId": "helper", "userMessage": "hello"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    events = _events(resp.text)
    assert [json.loads(e)["content"] for e in events[:-1]] == ["Hi", " there"]
    assert events[-1] == "[DONE]"
    assert chat.calls[0]["system_prompt"] == "Be brief."
    assert chat.calls[0]["temperature"] == 0.2


def test_run_tracks_one_agent_call(agents_client):
    agents_client.post("/api/agents/run", json={"agentId": "helper", "userMessage": "hello"})
    usage = agents_client.get("/api/usage/me").json()
    assert usage["usage"]["agent_calls"]["used"] == 1


def test_run_requires_agent_and_message(agents_client):
    resp = agents_client.post("/api/agents/run", json={"agentId": "helper"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Agent ID and message required"

    resp = agents_client.post("/api/agents/run", content=b"not json", headers={"content-type": "application/json"})
    assert resp.status_code == 400


def test_run_unknown_agent_is_404_and_not_charged(agents_client):
    resp = agents_client.post("/api/agents/run", json={"agentId": "ghost", "userMessage": "hello"})
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Agent not found"
    assert agents_client.get("/api/usage/me").json()["usage"]["agent_calls"]["used"] == 0


def test_quota_is_checked_before_body(agents_client):
    for _ in range(5):
        agents_client.post("/api/usage/track", json={"kind": "agent_calls"})

    resp = agents_client.post("/api/agents/run", json={})
    assert resp.status_code == 429
    body = resp.json()
    assert body["error"]["code"] == "quota_exceeded"
    assert body["limit"] == 5
    assert body["used"] == 5
    assert body["remaining"] == 0


def test_vendor_error_mid_stream_is_sent_in_band(make_app, agent_store):
    agent_store.create(AgentCreate(id="helper", name="Helper", system_prompt="x"))
    failing = FakeChatClient(tokens=["partial"], error=httpx.ConnectError("connection reset"))
    with TestClient(make_app(chat_client_factory=lambda: failing)) as client:
        resp = client.post("/api/agents/run", json={"agentId": "helper", "userMessage": "hi"})

    events = _events(resp.text)
    assert json.loads(events[0]) == {"content": "partial"}
    assert "connection reset" in json.loads(events[1])["error"]
    assert events[-1] == "[DONE]"


def test_crud_roundtrip(agents_client):
    created = agents_client.post(
        "/api/agents",
        json={"id": "writer", "name": "Writer", "systemPrompt": "Write songs."},
    )
    assert created.status_code == 201
    assert created.json()["systemPrompt"] == "Write songs."

    updated = agents_client.put("/api/agents/writer", json={"name": "Lyricist", "systemPrompt": "Write lyrics."})
    assert updated.json()["name"] == "Lyricist"

    ids = [agent["id"] for agent in agents_client.get("/api/agents").json()]
    assert set(ids) == {"helper", "writer"}

    assert agents_client.delete("/api/agents/writer").status_code == 200
    assert agents_client.get("/api/agents/writer").status_code == 404


def test_create_duplicate_is_409(agents_client):
    resp = agents_client.post("/api/agents", json={"id": "helper", "name": "Helper", "systemPrompt": "x"})
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "conflict"
