"""
aistudio/models/agent.py

Chat agent configuration as stored on disk (camelCase JSON).
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AgentConfig(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(pattern=r"^[A-Za-z0-9_-]{1,64}$")
    name: str = Field(min_length=1)
    system_prompt: str
    model: str = "grok-4-1-fast"
    provider: Literal["xai"] = "xai"
    temperature: float = Field(default=0.7, ge=0, le=2)
    tools: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class AgentCreate(BaseModel):
    """Body for creating or replacing an agent; timestamps are server-side."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = Field(default=None, pattern=r"^[A-Za-z0-9_-]{1,64}$")
    name: str = Field(min_length=1)
    system_prompt: str
    model: Optional[str] = None
    temperature: float = Field(default=0.7, ge=0, le=2)
    tools: List[str] = Field(default_factory=list)


class AgentRunRequest(BaseModel):
    # Optional so the quota check runs before field validation
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    agent_id: Optional[str] = None
    user_message: Optional[str] = None
