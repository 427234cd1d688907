"""
Multi-segment video pipeline.

Each segment is one vendor round trip chain:

    start keyframe -> motion prediction -> upload -> synthesis -> last frame

and the last frame of segment k is the start keyframe of segment k+1, so
segments are strictly sequential. Two variants share the loop:

- keyframes: the vision model predicts an end state, an end keyframe is
  rendered from the current frame, and synthesis morphs between both.
- concepts: the vision model picks camera-concept tags, synthesis gets the
  start keyframe only.

A vendor failure aborts the run; the segments finished so far are returned
with the error. Frame extraction is the one step with a fallback.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Protocol

from aistudio.models.video import PipelineResult, PipelineVariant, VideoRequest, VideoSegment

logger = logging.getLogger("aistudio")

CAMERA_CONCEPTS = (
    "push_in", "pull_out", "orbit_left", "orbit_right", "pan_left", "pan_right",
    "crane_up", "crane_down", "pedestal_up", "pedestal_down", "tilt_up", "tilt_down",
    "handheld", "static", "bolt_cam", "aerial_drone", "dolly_zoom",
    "low_angle", "high_angle", "eye_level", "overhead", "ground_level", "pov",
    "zoom_in", "zoom_out", "truck_left", "truck_right", "roll_left", "roll_right",
)
DEFAULT_CAMERA_CONCEPTS = ["push_in", "handheld"]

# One image + one synthesis per segment (concepts), two images + one synthesis (keyframes)
IMAGE_COST = 0.08
SYNTHESIS_COST = 0.25
SEGMENT_COST = {
    "keyframes": IMAGE_COST * 2 + SYNTHESIS_COST,
    "concepts": IMAGE_COST + SYNTHESIS_COST,
}

STYLE_REQUIREMENTS = """
CRITICAL STYLE REQUIREMENTS:
- Photorealistic rendering with real-world physics
- Natural lighting with proper shadows and reflections
- Realistic textures on all surfaces
- Cinematic composition with professional depth of field
- Characters with realistic proportions and anatomy

ABSOLUTELY AVOID:
- Cartoon or animated style
- Stylized or artistic rendering
- Flat colors or cel shading
- Exaggerated proportions"""

ProgressCallback = Callable[[int, str], Awaitable[None]]


class PipelineError(Exception):
    """A pipeline step failed; the run stops at the current segment."""


class FrameExtractionError(PipelineError):
    """Last frame could not be pulled from a rendered clip."""


@dataclass
class MotionPrediction:
    motion_description: str
    narrative: str
    end_state: Optional[str] = None
    camera_concepts: List[str] = field(default_factory=list)


@dataclass
class SynthesisResult:
    video_url: str
    thumbnail_url: Optional[str] = None


class KeyframeGenerator(Protocol):
    async def generate(self, prompt: str, reference_image: Optional[bytes] = None) -> bytes:
        ...


class MotionPredictor(Protocol):
    async def predict(
        self,
        image: bytes,
        *,
        prompt: str,
        narrative: str,
        segment_index: int,
        segment_seconds: int,
        variant: PipelineVariant,
    ) -> MotionPrediction:
        ...


class ImageHost(Protocol):
    async def upload(self, image: bytes) -> str:
        ...


class VideoSynthesizer(Protocol):
    async def synthesize(
        self,
        prompt: str,
        *,
        start_image_url: str,
        end_image_url: Optional[str] = None,
        camera_concepts: Optional[List[str]] = None,
        duration: str = "9s",
    ) -> SynthesisResult:
        ...


class FrameExtractor(Protocol):
    async def extract_last_frame(self, video_url: str) -> bytes:
        ...


def segment_count(duration_seconds: float, segment_seconds: int) -> int:
    return max(1, math.ceil(duration_seconds / segment_seconds))


def estimate_cost(request: VideoRequest, variant: PipelineVariant) -> str:
    total = segment_count(request.duration, request.segment_seconds) * SEGMENT_COST[variant]
    return f"${total:.2f}"


def normalize_camera_concepts(raw) -> List[str]:
    """Keep known tags (at most two, in order); default when none survive."""
    if not isinstance(raw, (list, tuple)):
        return list(DEFAULT_CAMERA_CONCEPTS)
    valid = []
    for concept in raw:
        if isinstance(concept, str) and concept in CAMERA_CONCEPTS and concept not in valid:
            valid.append(concept)
    return valid[:2] or list(DEFAULT_CAMERA_CONCEPTS)


def keyframe_prompt(prompt: str, style: str) -> str:
    return f"{prompt}\n\nStyle: {style}\n{STYLE_REQUIREMENTS}"


def end_frame_prompt(request: VideoRequest, prediction: MotionPrediction, narrative: str, segment_index: int) -> str:
    seconds_later = (segment_index + 1) * request.segment_seconds
    return (
        f"Transform this image to show the scene {seconds_later} seconds later:\n\n"
        f"VISUAL STATE:\n{prediction.end_state or prediction.motion_description}\n\n"
        f"NARRATIVE CONTEXT:\n{narrative}\n\n"
        f"MOTION THAT OCCURRED:\n{prediction.motion_description}\n\n"
        "Keep the exact same rendering style, lighting, camera angle and character appearance.\n"
        f"{STYLE_REQUIREMENTS}\n\n"
        f"Original scene: {request.prompt}\nStyle: {request.style}"
    )


def synthesis_prompt(request: VideoRequest, prediction: MotionPrediction) -> str:
    return (
        f"{request.prompt}\n\n"
        f"ACTION: {prediction.motion_description}\n\n"
        f"Style: {request.style}\n"
        "Natural, fluid motion with realistic physics. Smooth continuous movement."
    )


def join_narrative(previous: str, new: str) -> str:
    if not new:
        return previous
    return f"{previous} → {new}" if previous else new


async def _no_progress(current_segment: int, message: str) -> None:
    return None


class VideoPipeline:
    """Runs one multi-segment generation against injected vendor clients."""

    def __init__(
        self,
        *,
        keyframes: KeyframeGenerator,
        motion: MotionPredictor,
        image_host: ImageHost,
        synthesizer: VideoSynthesizer,
        frames: FrameExtractor,
        variant: PipelineVariant = "concepts",
    ):
        self.keyframes = keyframes
        self.motion = motion
        self.image_host = image_host
        self.synthesizer = synthesizer
        self.frames = frames
        self.variant = variant

    async def run(self, request: VideoRequest, on_progress: Optional[ProgressCallback] = None) -> PipelineResult:
        progress = on_progress or _no_progress
        seconds = request.segment_seconds
        total = segment_count(request.duration, seconds)
        cost = {"estimated": estimate_cost(request, self.variant)}
        segments: List[VideoSegment] = []
        narrative = ""

        logger.info(
            f"video.pipeline_start variant={self.variant} segments={total} segment_seconds={seconds}",
            extra={"event_type": "pipeline.start"},
        )

        await progress(0, "Generating initial keyframe")
        try:
            current_frame = await self.keyframes.generate(keyframe_prompt(request.prompt, request.style))
        except Exception as exc:
            logger.error(f"video.initial_keyframe_failed: {exc}", extra={"event_type": "pipeline.failed"})
            return self._result(request, segments, cost, error=f"Initial keyframe failed: {exc}")

        for index in range(total):
            await progress(index + 1, f"Generating segment {index + 1} of {total}")
            try:
                segment, next_frame, narrative = await self._render_segment(
                    request, index, total, current_frame, narrative
                )
            except Exception as exc:
                logger.error(
                    f"video.segment_failed index={index}: {exc}",
                    extra={"event_type": "pipeline.segment_failed"},
                )
                return self._result(request, segments, cost, error=f"Segment {index + 1} failed: {exc}")
            segments.append(segment)
            if next_frame is not None:
                current_frame = next_frame

        logger.info(
            f"video.pipeline_complete segments={len(segments)}",
            extra={"event_type": "pipeline.complete"},
        )
        return self._result(request, segments, cost)

    async def _render_segment(self, request: VideoRequest, index: int, total: int, frame: bytes, narrative: str):
        seconds = request.segment_seconds
        prediction = await self.motion.predict(
            frame,
            prompt=request.prompt,
            narrative=narrative,
            segment_index=index,
            segment_seconds=seconds,
            variant=self.variant,
        )
        narrative = join_narrative(narrative, prediction.narrative)
        start_url = await self.image_host.upload(frame)

        end_frame: Optional[bytes] = None
        end_url: Optional[str] = None
        concepts: Optional[List[str]] = None
        if self.variant == "keyframes":
            end_frame = await self.keyframes.generate(
                end_frame_prompt(request, prediction, narrative, index),
                reference_image=frame,
            )
            end_url = await self.image_host.upload(end_frame)
        else:
            concepts = normalize_camera_concepts(prediction.camera_concepts)

        clip = await self.synthesizer.synthesize(
            synthesis_prompt(request, prediction),
            start_image_url=start_url,
            end_image_url=end_url,
            camera_concepts=concepts,
            duration=request.segment_duration,
        )

        segment = VideoSegment(
            index=index,
            start_time=index * seconds,
            end_time=(index + 1) * seconds,
            duration=seconds,
            start_frame_url=start_url,
            end_frame_url=end_url,
            video_url=clip.video_url,
            thumbnail_url=clip.thumbnail_url,
            motion_description=prediction.motion_description,
            end_state=prediction.end_state if self.variant == "keyframes" else None,
            camera_concepts=concepts,
            narrative_context=prediction.narrative,
        )

        next_frame = None
        if index < total - 1:
            next_frame = await self._next_start_frame(request, clip.video_url, end_frame, narrative)
        return segment, next_frame, narrative

    async def _next_start_frame(
        self, request: VideoRequest, video_url: str, end_frame: Optional[bytes], narrative: str
    ) -> bytes:
        try:
            return await self.frames.extract_last_frame(video_url)
        except FrameExtractionError as exc:
            logger.warning(f"video.frame_extraction_fallback: {exc}", extra={"event_type": "pipeline.fallback"})
        if end_frame is not None:
            return end_frame
        return await self.keyframes.generate(keyframe_prompt(f"{request.prompt}. {narrative}", request.style))

    def _result(self, request: VideoRequest, segments: List[VideoSegment], cost: dict, error: Optional[str] = None) -> PipelineResult:
        total_duration = float(sum(segment.duration for segment in segments))
        if error:
            message = f"Generated {len(segments)} segment(s) before failing"
        else:
            message = f"Generated {len(segments)} segments ({total_duration:.0f}s)"
        return PipelineResult(
            success=error is None,
            message=message,
            segments=segments,
            total_duration=total_duration,
            cost=cost,
            error=error,
        )
