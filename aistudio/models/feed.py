"""
aistudio/models/feed.py

RSS sources and normalized feed items.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class FeedSource:
    name: str
    url: str
    category: str
    description: str


class FeedItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = "Untitled"
    url: str
    source: str
    published: datetime
    tags: List[str] = Field(default_factory=list)
    category: str


class FeedResponse(BaseModel):
    feeds: List[FeedItem]
    count: int
