"""
File-backed agent configurations: one pretty-printed <id>.json per agent.
"""

import json
import logging
import os
import re
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from aistudio.core.config import settings
from aistudio.core.errors import ConflictError, NotFoundError, ValidationError
from aistudio.models.agent import AgentConfig, AgentCreate

logger = logging.getLogger("aistudio")

AGENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def new_agent_id() -> str:
    return f"agent_{int(datetime.now(timezone.utc).timestamp() * 1000)}_{secrets.token_hex(3)}"


class AgentStore:
    def __init__(self, directory: Union[str, Path, None] = None):
        self.directory = Path(directory or settings.AGENTS_DIR)

    def _path(self, agent_id: str) -> Path:
        # Ids become file names
        if not AGENT_ID_PATTERN.match(agent_id or ""):
            raise ValidationError(f"Invalid agent id: {agent_id!r}")
        return self.directory / f"{agent_id}.json"

    def save(self, config: AgentConfig) -> AgentConfig:
        path = self._path(config.id)
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = config.model_dump(mode="json", by_alias=True)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp_path, path)
        logger.info(f"agents.saved id={config.id}")
        return config

    def load(self, agent_id: str) -> Optional[AgentConfig]:
        path = self._path(agent_id)
        if not path.exists():
            return None
        return self._read(path)

    def _read(self, path: Path) -> Optional[AgentConfig]:
        try:
            return AgentConfig.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, PydanticValidationError) as e:
            logger.warning(f"agents.unreadable file={path.name}: {e}")
            return None

    def list(self) -> List[AgentConfig]:
        """All readable agents, most recently updated first."""
        if not self.directory.exists():
            return []
        configs = [config for config in (self._read(path) for path in self.directory.glob("*.json")) if config]
        return sorted(configs, key=lambda config: config.updated_at, reverse=True)

    def delete(self, agent_id: str) -> None:
        path = self._path(agent_id)
        if not path.exists():
            raise NotFoundError(f"Agent {agent_id} not found")
        path.unlink()
        logger.info(f"agents.deleted id={agent_id}")

    def create(self, data: AgentCreate) -> AgentConfig:
        agent_id = data.id or new_agent_id()
        if self.load(agent_id) is not None:
            raise ConflictError(f"Agent {agent_id} already exists")
        now = datetime.now(timezone.utc)
        config = AgentConfig(
            id=agent_id,
            name=data.name,
            system_prompt=data.system_prompt,
            model=data.model or settings.XAI_DEFAULT_MODEL,
            temperature=data.temperature,
            tools=data.tools,
            created_at=now,
            updated_at=now,
        )
        return self.save(config)

    def update(self, agent_id: str, data: AgentCreate) -> AgentConfig:
        existing = self.load(agent_id)
        if existing is None:
            raise NotFoundError(f"Agent {agent_id} not found")
        updated = existing.model_copy(
            update={
                "name": data.name,
                "system_prompt": data.system_prompt,
                "model": data.model or existing.model,
                "temperature": data.temperature,
                "tools": data.tools,
                "updated_at": datetime.now(timezone.utc),
            }
        )
        return self.save(updated)
