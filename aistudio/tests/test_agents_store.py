import json
import time

import pytest

from aistudio.core.errors import ConflictError, NotFoundError, ValidationError
from aistudio.models.agent import AgentCreate


def test_create_writes_camel_case_json(agent_store, agents_dir):
    agent = agent_store.create(AgentCreate(id="helper", name="Helper", system_prompt="Be brief."))

    payload = json.loads((agents_dir / "helper.json").read_text())
    assert payload["systemPrompt"] == "Be brief."
    assert payload["model"] == "grok-4-1-fast"
    assert "createdAt" in payload and "updatedAt" in payload
    assert agent_store.load("helper") == agent


def test_load_missing_returns_none(agent_store):
    assert agent_store.load("nobody") is None


@pytest.mark.parametrize("agent_id", ["../etc/passwd", "a b", "x" * 65, ""])
def test_invalid_ids_rejected(agent_store, agent_id):
    with pytest.raises(ValidationError):
        agent_store.load(agent_id)


def test_duplicate_create_conflicts(agent_store):
    agent_store.create(AgentCreate(id="helper", name="Helper", system_prompt="x"))
    with pytest.raises(ConflictError):
        agent_store.create(AgentCreate(id="helper", name="Again", system_prompt="y"))


def test_list_newest_update_first(agent_store):
    agent_store.create(AgentCreate(id="first", name="First", system_prompt="x"))
    time.sleep(0.01)
    agent_store.create(AgentCreate(id="second", name="Second", system_prompt="x"))
    time.sleep(0.01)
    agent_store.update("first", AgentCreate(name="First v2", system_prompt="x"))

    assert [agent.id for agent in agent_store.list()] == ["first", "second"]


def test_unreadable_files_are_skipped(agent_store, agents_dir):
    agent_store.create(AgentCreate(id="good", name="Good", system_prompt="x"))
    (agents_dir / "broken.json").write_text("{not json")
    assert [agent.id for agent in agent_store.list()] == ["good"]


def test_delete(agent_store):
    agent_store.create(AgentCreate(id="helper", name="Helper", system_prompt="x"))
    agent_store.delete("helper")
    assert agent_store.load("helper") is None
    with pytest.raises(NotFoundError):
        agent_store.delete("helper")
