# aistudio/conftest.py
import os
import tempfile
from pathlib import Path

import pytest

# Must run before aistudio.core.config is imported anywhere
_TMP_ROOT = Path(tempfile.mkdtemp(prefix="aistudio-tests-"))
os.environ["SKIP_ENV_VALIDATION"] = "1"
os.environ.setdefault("TEST_DATABASE_URL", f"sqlite:///{_TMP_ROOT / 'test.db'}")
os.environ.setdefault("AGENTS_DIR", str(_TMP_ROOT / "agents"))
os.environ.pop("REDIS_URL", None)
for _key in ("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "XAI_API_KEY", "OPENAI_API_KEY"):
    os.environ.pop(_key, None)


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    """Create the generation history table once per test session."""
    from aistudio.core.database import create_all_tables

    create_all_tables()
    yield


@pytest.fixture(scope="function")
def reset_db():
    """Empty every table before and after the test."""
    from aistudio.core.database import get_engine, metadata

    def _truncate():
        with get_engine().begin() as conn:
            for table in reversed(metadata.sorted_tables):
                conn.execute(table.delete())

    _truncate()
    yield
    _truncate()


@pytest.fixture
def memory_store():
    from aistudio.core.store import InMemoryStore

    return InMemoryStore()


@pytest.fixture
def usage_gate(memory_store):
    from aistudio.features.usage.service import UsageGate

    return UsageGate(memory_store)


@pytest.fixture
def agents_dir(tmp_path):
    path = tmp_path / "agents"
    path.mkdir()
    return path


@pytest.fixture
def agent_store(agents_dir):
    from aistudio.features.agents.store import AgentStore

    return AgentStore(agents_dir)


@pytest.fixture
def make_app(memory_store, agent_store):
    """Build a fresh app around the test's in-memory store and agents dir."""
    from aistudio.main import create_app

    def _make(**overrides):
        overrides.setdefault("store", memory_store)
        overrides.setdefault("agent_store", agent_store)
        return create_app(**overrides)

    return _make


@pytest.fixture
def client(make_app):
    from fastapi.testclient import TestClient

    with TestClient(make_app()) as test_client:
        yield test_client
