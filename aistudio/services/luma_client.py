"""Luma Dream Machine video synthesis: submit, then poll until the clip is ready."""

import asyncio
import logging
import os
from typing import Awaitable, Callable, List, Optional

import httpx

from aistudio.core.config import settings
from aistudio.core.errors import ConfigurationError, UpstreamError
from aistudio.features.video.pipeline import SynthesisResult
from aistudio.services.http import vendor_http

logger = logging.getLogger("aistudio")


class LumaClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        resolution: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api_key = api_key or os.getenv("LUMA_API_KEY")
        if not self.api_key:
            raise ConfigurationError("LUMA_API_KEY not configured")
        self.base_url = (base_url or settings.LUMA_BASE_URL).rstrip("/")
        self.model = model or settings.LUMA_MODEL
        self.resolution = resolution or settings.LUMA_RESOLUTION
        self.poll_interval = settings.LUMA_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.max_attempts = max_attempts or settings.LUMA_MAX_POLL_ATTEMPTS
        self._http_client = http_client
        self._sleep = sleep

    @property
    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

    def build_payload(
        self,
        prompt: str,
        *,
        start_image_url: str,
        end_image_url: Optional[str] = None,
        camera_concepts: Optional[List[str]] = None,
        duration: str = "9s",
    ) -> dict:
        keyframes = {"frame0": {"type": "image", "url": start_image_url}}
        if end_image_url:
            keyframes["frame1"] = {"type": "image", "url": end_image_url}
        payload = {
            "prompt": prompt,
            "model": self.model,
            "duration": duration,
            "resolution": self.resolution,
            "keyframes": keyframes,
        }
        if camera_concepts:
            payload["concepts"] = [{"key": concept} for concept in camera_concepts]
        return payload

    async def synthesize(
        self,
        prompt: str,
        *,
        start_image_url: str,
        end_image_url: Optional[str] = None,
        camera_concepts: Optional[List[str]] = None,
        duration: str = "9s",
    ) -> SynthesisResult:
        payload = self.build_payload(
            prompt,
            start_image_url=start_image_url,
            end_image_url=end_image_url,
            camera_concepts=camera_concepts,
            duration=duration,
        )
        async with vendor_http(self._http_client) as client:
            try:
                response = await client.post(f"{self.base_url}/generations", json=payload, headers=self._headers)
            except httpx.HTTPError as e:
                raise UpstreamError("Luma request failed", vendor="luma", vendor_error=str(e))
            if response.status_code >= 400:
                raise UpstreamError(f"Luma error: {response.text}", vendor="luma", vendor_error=response.text)

            generation_id = response.json().get("id")
            if not generation_id:
                raise UpstreamError("Luma returned no generation id", vendor="luma", vendor_error=response.text)
            logger.info(f"luma.generation_started id={generation_id} duration={duration}")
            return await self._poll(client, generation_id)

    async def _poll(self, client: httpx.AsyncClient, generation_id: str) -> SynthesisResult:
        for attempt in range(self.max_attempts):
            await self._sleep(self.poll_interval)
            try:
                response = await client.get(f"{self.base_url}/generations/{generation_id}", headers=self._headers)
            except httpx.HTTPError as e:
                logger.warning(f"luma.poll_error id={generation_id} attempt={attempt + 1}: {e}")
                continue
            if response.status_code >= 400:
                continue

            data = response.json()
            state = data.get("state")
            assets = data.get("assets") or {}
            if state == "completed" and assets.get("video"):
                logger.info(f"luma.generation_completed id={generation_id} attempts={attempt + 1}")
                return SynthesisResult(video_url=assets["video"], thumbnail_url=assets.get("thumbnail"))
            if state == "failed":
                reason = data.get("failure_reason") or "unknown"
                raise UpstreamError(f"Generation failed: {reason}", vendor="luma", vendor_error=reason)

        raise UpstreamError("Generation timeout", vendor="luma")
