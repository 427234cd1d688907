"""Motion prediction from the current keyframe with Gemini vision."""

import json
import logging
import os
import re
from typing import Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from aistudio.core.config import settings
from aistudio.core.errors import ConfigurationError, UpstreamError
from aistudio.features.video.pipeline import MotionPrediction

logger = logging.getLogger("aistudio")

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

DEFAULT_MOTION = "The scene unfolds naturally with subtle character movement and environmental motion."

CONCEPTS_PROMPT = """You are an expert cinematographer planning a {seconds}-second video shot.

SCENE: {prompt}
STORY SO FAR: {narrative}
SEGMENT: {segment}

Analyze this frame and plan the MOTION and ACTION for the next {seconds} seconds.
Do NOT describe an end state. Describe CONTINUOUS MOTION and ACTION.

Available camera concepts (pick 1-2 that fit): push_in, pull_out, orbit_left,
orbit_right, pan_left, pan_right, crane_up, crane_down, handheld, static,
dolly_zoom, tilt_up, tilt_down.

Output JSON:
{{
  "motionDescription": "the continuous action during the shot",
  "cameraConcepts": ["push_in", "handheld"],
  "narrativeProgression": "how the story or emotion advances during this shot"
}}

Output ONLY valid JSON."""

KEYFRAMES_PROMPT = """You are an expert cinematographer and storyteller analyzing a video frame.

ORIGINAL PREMISE: {prompt}
STORY SO FAR: {narrative}
CURRENT TIME: {start} seconds into the video
TARGET TIME: {end} seconds ({seconds} seconds later)

Analyze this frame and provide THREE outputs in JSON format:

{{
  "visualPrediction": "detailed description of the scene {seconds} seconds later: character positions, poses, expressions, lighting, environment",
  "narrativeEvolution": "how the story has progressed, expanding on the premise",
  "motionDescription": "the specific movements that occur during these {seconds} seconds"
}}

Keep the same characters and the same photorealistic style.
Output ONLY valid JSON, no markdown or explanation."""


def parse_prediction(text: str, *, variant: str, segment_index: int) -> MotionPrediction:
    """Parse the model's JSON; unparseable output falls back to a default motion."""
    match = _JSON_OBJECT.search(text or "")
    parsed = None
    if match:
        try:
            parsed = json.loads(match.group(0))
        except ValueError:
            parsed = None
    if not isinstance(parsed, dict):
        logger.warning("gemini.prediction_unparsed, using defaults")
        if variant == "keyframes":
            return MotionPrediction(
                motion_description=DEFAULT_MOTION,
                narrative=f"Segment {segment_index + 1} of the story",
                end_state=(text or "").strip() or None,
            )
        return MotionPrediction(
            motion_description=DEFAULT_MOTION,
            narrative=f"Segment {segment_index + 1} continues the story",
        )

    if variant == "keyframes":
        return MotionPrediction(
            motion_description=parsed.get("motionDescription") or DEFAULT_MOTION,
            narrative=parsed.get("narrativeEvolution") or "",
            end_state=parsed.get("visualPrediction") or None,
        )
    concepts = parsed.get("cameraConcepts")
    return MotionPrediction(
        motion_description=parsed.get("motionDescription") or "Natural movement and subtle environmental motion",
        narrative=parsed.get("narrativeProgression") or "",
        camera_concepts=concepts if isinstance(concepts, list) else [],
    )


class GeminiMotionPredictor:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client: Optional[genai.Client] = None):
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        if client is None and not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY not configured")
        self.model = model or settings.GEMINI_VISION_MODEL
        self.client = client or genai.Client(api_key=self.api_key)

    def _prompt(self, *, prompt: str, narrative: str, segment_index: int, segment_seconds: int, variant: str) -> str:
        if variant == "keyframes":
            return KEYFRAMES_PROMPT.format(
                prompt=prompt,
                narrative=narrative or "This is the opening scene.",
                start=segment_index * segment_seconds,
                end=(segment_index + 1) * segment_seconds,
                seconds=segment_seconds,
            )
        return CONCEPTS_PROMPT.format(
            prompt=prompt,
            narrative=narrative or "Opening scene.",
            segment=segment_index + 1,
            seconds=segment_seconds,
        )

    async def predict(
        self,
        image: bytes,
        *,
        prompt: str,
        narrative: str,
        segment_index: int,
        segment_seconds: int,
        variant: str,
    ) -> MotionPrediction:
        instruction = self._prompt(
            prompt=prompt,
            narrative=narrative,
            segment_index=segment_index,
            segment_seconds=segment_seconds,
            variant=variant,
        )
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=image, mime_type="image/png"),
                    instruction,
                ],
            )
        except genai_errors.APIError as e:
            raise UpstreamError("Motion prediction failed", vendor="gemini", vendor_error=str(e))

        return parse_prediction(getattr(response, "text", None) or "", variant=variant, segment_index=segment_index)
