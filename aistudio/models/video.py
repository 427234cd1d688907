"""
aistudio/models/video.py

Multi-segment video generation: requests, rendered segments, pipeline
results and the job records polled by clients.

Job records are frozen; every update replaces the whole record.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SegmentDuration = Literal["5s", "9s"]
PipelineVariant = Literal["keyframes", "concepts"]
JobStatus = Literal["queued", "processing", "completed", "failed"]

SEGMENT_SECONDS: Dict[str, int] = {"5s": 5, "9s": 9}

DEFAULT_STYLE = "hyper realistic, photorealistic, cinematic lighting"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VideoRequest(_CamelModel):
    prompt: str
    duration: int = Field(default=30, gt=0, le=600, description="Target length in seconds")
    style: str = DEFAULT_STYLE
    segment_duration: SegmentDuration = "9s"

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("prompt is required")
        return value

    @property
    def segment_seconds(self) -> int:
        return SEGMENT_SECONDS[self.segment_duration]


class VideoSegment(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    index: int = Field(ge=0)
    start_time: float = Field(ge=0)
    end_time: float = Field(ge=0)
    duration: float = Field(gt=0)
    start_frame_url: str
    end_frame_url: Optional[str] = None
    video_url: str
    thumbnail_url: Optional[str] = None
    motion_description: str
    end_state: Optional[str] = None
    camera_concepts: Optional[List[str]] = None
    narrative_context: str


class PipelineResult(_CamelModel):
    success: bool
    message: str
    job_id: Optional[str] = None
    segments: List[VideoSegment] = Field(default_factory=list)
    total_duration: float = 0
    cost: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None


class JobProgress(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    current_segment: int = Field(default=0, ge=0)
    total_segments: int = Field(ge=0)
    message: str = "Queued"


class VideoJob(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    status: JobStatus = "queued"
    progress: JobProgress
    segments: List[VideoSegment] = Field(default_factory=list)
    error: Optional[str] = None
    total_cost: Optional[str] = None
    total_duration: Optional[float] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class StartJobResponse(_CamelModel):
    job_id: str
    status: JobStatus
    segment_count: int
    estimated_time: str
