"""
aistudio/models/generation.py

Entries in a session's generation history.
"""

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

GenerationType = Literal["video", "cover_art"]


class Generation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    type: GenerationType
    image_url: Optional[str] = None
    prompt: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class GenerationCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: GenerationType
    image_url: Optional[str] = None
    prompt: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
