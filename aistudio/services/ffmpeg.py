"""Pull the last frame of a rendered clip so the next segment starts where it ended."""

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Optional

import httpx

from aistudio.core.config import settings
from aistudio.features.video.pipeline import FrameExtractionError
from aistudio.services.http import vendor_http

logger = logging.getLogger("aistudio")


def last_frame_command(binary: str, video_path: Path, frame_path: Path) -> list:
    return [binary, "-sseof", "-0.1", "-i", str(video_path), "-update", "1", "-q:v", "2", str(frame_path), "-y"]


class FfmpegFrameExtractor:
    def __init__(
        self,
        binary: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.binary = binary or settings.FFMPEG_BINARY
        self.timeout_seconds = timeout_seconds or settings.FFMPEG_TIMEOUT_SECONDS
        self._http_client = http_client

    async def _download(self, video_url: str, target: Path) -> None:
        async with vendor_http(self._http_client) as client:
            response = await client.get(video_url)
        if response.status_code >= 400:
            raise FrameExtractionError(f"video download returned {response.status_code}")
        target.write_bytes(response.content)

    async def _run_ffmpeg(self, video_path: Path, frame_path: Path) -> None:
        process = await asyncio.create_subprocess_exec(
            *last_frame_command(self.binary, video_path, frame_path),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise FrameExtractionError(f"ffmpeg timed out after {self.timeout_seconds}s")
        if process.returncode != 0:
            logger.error(f"[ffmpeg] last frame extraction failed: {stderr.decode(errors='replace')[-500:]}")
            raise FrameExtractionError(f"ffmpeg exited with {process.returncode}")

    async def extract_last_frame(self, video_url: str) -> bytes:
        with tempfile.TemporaryDirectory(prefix="aistudio_frames_") as tmp:
            video_path = Path(tmp) / "clip.mp4"
            frame_path = Path(tmp) / "last_frame.png"
            try:
                await self._download(video_url, video_path)
                await self._run_ffmpeg(video_path, frame_path)
            except FrameExtractionError:
                raise
            except (httpx.HTTPError, OSError) as e:
                raise FrameExtractionError(f"Frame extraction failed: {e}")
            if not frame_path.exists():
                raise FrameExtractionError("ffmpeg produced no frame")
            frame = frame_path.read_bytes()
        logger.info("ffmpeg.last_frame_extracted")
        return frame
