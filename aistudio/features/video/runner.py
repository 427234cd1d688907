"""
Runs video pipelines against job records.

A run owns one job: it moves the job to processing, forwards pipeline
progress, and always ends it in completed or failed, including when the
deadline passes or the run is cancelled.
"""

import asyncio
import logging
from typing import Callable, Dict, Optional, Set

from aistudio.core.errors import NotFoundError
from aistudio.core.logging import log_event
from aistudio.features.generations.service import save_generation
from aistudio.features.usage.service import UsageGate
from aistudio.features.video.job_store import JobStore, TERMINAL_STATUSES
from aistudio.features.video.pipeline import VideoPipeline, segment_count
from aistudio.models.generation import GenerationCreate
from aistudio.models.video import PipelineResult, PipelineVariant, VideoJob, VideoRequest

logger = logging.getLogger("aistudio")

PipelineFactory = Callable[[PipelineVariant], VideoPipeline]


def default_pipeline_factory(variant: PipelineVariant) -> VideoPipeline:
    """Wire the production vendor clients; raises ConfigurationError when a key is missing."""
    from aistudio.services.ffmpeg import FfmpegFrameExtractor
    from aistudio.services.gemini_vision import GeminiMotionPredictor
    from aistudio.services.image_host import FreeImageHost
    from aistudio.services.luma_client import LumaClient
    from aistudio.services.openai_images import OpenAIImageGenerator

    return VideoPipeline(
        keyframes=OpenAIImageGenerator(),
        motion=GeminiMotionPredictor(),
        image_host=FreeImageHost(),
        synthesizer=LumaClient(),
        frames=FfmpegFrameExtractor(),
        variant=variant,
    )


class VideoJobRunner:
    def __init__(
        self,
        job_store: JobStore,
        usage: UsageGate,
        pipeline_factory: PipelineFactory = default_pipeline_factory,
        timeout_seconds: float = 300.0,
    ):
        self.job_store = job_store
        self.usage = usage
        self.pipeline_factory = pipeline_factory
        self.timeout_seconds = timeout_seconds
        self._tasks: Dict[str, asyncio.Task] = {}
        self._cancel_requested: Set[str] = set()

    def create_job(self, request: VideoRequest) -> VideoJob:
        return self.job_store.create_job(segment_count(request.duration, request.segment_seconds))

    async def start(self, request: VideoRequest, session_id: str, variant: PipelineVariant = "concepts") -> VideoJob:
        """Create a job and run it in the background; returns the queued record."""
        pipeline = self.pipeline_factory(variant)
        job = self.create_job(request)
        task = asyncio.create_task(self._run(job.id, pipeline, request, session_id, variant))
        self._tasks[job.id] = task
        task.add_done_callback(lambda _t, job_id=job.id: self._forget(job_id))
        return job

    async def execute(self, request: VideoRequest, session_id: str, variant: PipelineVariant = "concepts") -> PipelineResult:
        """Run a job inline and return the pipeline result with its job id."""
        pipeline = self.pipeline_factory(variant)
        job = self.create_job(request)
        task = asyncio.create_task(self._run(job.id, pipeline, request, session_id, variant))
        self._tasks[job.id] = task
        try:
            result = await task
        except asyncio.CancelledError:
            # cancel() on this job yields a result; caller cancellation propagates
            if job.id not in self._cancel_requested:
                raise
            result = PipelineResult(success=False, message="Generation cancelled", error="cancelled")
        finally:
            self._forget(job.id)
        return result.model_copy(update={"job_id": job.id})

    def _forget(self, job_id: str) -> None:
        self._tasks.pop(job_id, None)
        self._cancel_requested.discard(job_id)

    async def cancel(self, job_id: str) -> VideoJob:
        job = self.job_store.get_job(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found")
        if job.status in TERMINAL_STATUSES:
            return job

        task = self._tasks.get(job_id)
        if task is not None and not task.done():
            self._cancel_requested.add(job_id)
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        # A task cancelled before its first step never reached _run's handler
        self._fail(job_id, "cancelled")
        return self.job_store.get_job(job_id) or job

    async def shutdown(self) -> None:
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _fail(self, job_id: str, error: str, result: Optional[PipelineResult] = None) -> None:
        job = self.job_store.get_job(job_id)
        if job is None or job.status in TERMINAL_STATUSES:
            return
        if job.status == "queued":
            self.job_store.start_job(job_id)
        segments = result.segments if result is not None else None
        self.job_store.fail_job(job_id, error, segments=segments)

    async def _run(
        self,
        job_id: str,
        pipeline: VideoPipeline,
        request: VideoRequest,
        session_id: str,
        variant: PipelineVariant,
    ) -> PipelineResult:
        self.job_store.start_job(job_id)

        async def on_progress(current_segment: int, message: str) -> None:
            self.job_store.update_job_progress(job_id, current_segment, message)

        log_event("info", "video.run_start", session_id=session_id, job_id=job_id, event_type="video.start",
                  extra={"variant": variant, "duration": request.duration})
        try:
            result = await asyncio.wait_for(pipeline.run(request, on_progress=on_progress), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            error = f"Generation timed out after {self.timeout_seconds:.0f}s"
            self._fail(job_id, error)
            log_event("warning", "video.run_timeout", session_id=session_id, job_id=job_id, error_code="timeout")
            return PipelineResult(success=False, message=error, error=error)
        except asyncio.CancelledError:
            self._fail(job_id, "cancelled")
            log_event("info", "video.run_cancelled", session_id=session_id, job_id=job_id, event_type="video.cancelled")
            raise
        except Exception as exc:
            logger.error(f"video.run_error job_id={job_id}: {exc}", exc_info=True)
            self._fail(job_id, str(exc) or exc.__class__.__name__)
            return PipelineResult(success=False, message="Generation failed", error=str(exc))

        if not result.success:
            self._fail(job_id, result.error or "Generation failed", result)
            return result

        current = self.job_store.get_job(job_id)
        if current is not None and current.status in TERMINAL_STATUSES:
            return PipelineResult(success=False, message="Generation cancelled", segments=result.segments, error=current.error)

        self.job_store.complete_job(
            job_id,
            result.segments,
            total_cost=result.cost.get("estimated"),
            total_duration=result.total_duration,
        )
        await self._record_success(session_id, job_id, request, result)
        return result

    async def _record_success(self, session_id: str, job_id: str, request: VideoRequest, result: PipelineResult) -> None:
        # Store and database clients are blocking
        await asyncio.to_thread(self.usage.track_usage, session_id, "video_generations", len(result.segments))
        first = result.segments[0] if result.segments else None
        try:
            await asyncio.to_thread(
                save_generation,
                session_id,
                GenerationCreate(
                    type="video",
                    image_url=(first.thumbnail_url or first.start_frame_url) if first else None,
                    prompt=request.prompt,
                    metadata={
                        "jobId": job_id,
                        "videoUrls": [segment.video_url for segment in result.segments],
                        "totalDuration": result.total_duration,
                        "cost": result.cost.get("estimated"),
                    },
                ),
            )
        except Exception as e:
            # History is best-effort; the job itself already completed
            logger.warning(f"video.history_save_failed job_id={job_id}: {e}")
