"""
In-process store for video generation jobs.

Records are frozen VideoJob models; every update swaps the whole record
(last writer wins). Status only moves forward:

    queued -> processing -> completed | failed

Jobs are kept for an hour after creation, then removed by sweep().
"""

import asyncio
import logging
import random
import string
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from aistudio.core.errors import ConflictError, NotFoundError
from aistudio.models.video import JobProgress, JobStatus, VideoJob, VideoSegment

logger = logging.getLogger("aistudio")

ALLOWED_TRANSITIONS: Dict[str, set] = {
    "queued": {"queued", "processing"},
    "processing": {"processing", "completed", "failed"},
    "completed": set(),
    "failed": set(),
}

TERMINAL_STATUSES = {"completed", "failed"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_job_id(now: Optional[datetime] = None) -> str:
    """job_<epoch ms>_<9 random base36 chars>."""
    ms = int((now or _utcnow()).timestamp() * 1000)
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"job_{ms}_{suffix}"


class JobStore:
    def __init__(self, ttl_seconds: int = 3600, clock: Callable[[], datetime] = _utcnow):
        self._jobs: Dict[str, VideoJob] = {}
        self._lock = threading.Lock()
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    def __len__(self) -> int:
        return len(self._jobs)

    def create_job(self, total_segments: int) -> VideoJob:
        now = self._clock()
        job = VideoJob(
            id=new_job_id(now),
            status="queued",
            progress=JobProgress(current_segment=0, total_segments=total_segments, message="Queued"),
            created_at=now,
        )
        with self._lock:
            self._jobs[job.id] = job
        logger.info("video.job_created", extra={"job_id": job.id, "event_type": "job.created"})
        return job

    def get_job(self, job_id: str) -> Optional[VideoJob]:
        return self._jobs.get(job_id)

    def list_jobs(self) -> List[VideoJob]:
        return sorted(self._jobs.values(), key=lambda job: job.created_at, reverse=True)

    def update_job(self, job_id: str, **changes) -> VideoJob:
        """Replace the job record with `changes` applied.

        Raises NotFoundError for unknown ids and ConflictError when the
        status change is not a forward transition. A rejected update leaves
        the stored record untouched.
        """
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                raise NotFoundError(f"Job {job_id} not found")

            new_status: JobStatus = changes.get("status", current.status)
            if new_status not in ALLOWED_TRANSITIONS[current.status]:
                raise ConflictError(f"Job {job_id} cannot move from {current.status} to {new_status}")

            if new_status in TERMINAL_STATUSES and "completed_at" not in changes:
                changes["completed_at"] = self._clock()

            updated = current.model_copy(update=changes)
            self._jobs[job_id] = updated
        return updated

    def update_job_progress(self, job_id: str, current_segment: int, message: str) -> VideoJob:
        job = self.get_job(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found")
        progress = JobProgress(
            current_segment=current_segment,
            total_segments=job.progress.total_segments,
            message=message,
        )
        return self.update_job(job_id, progress=progress)

    def start_job(self, job_id: str, message: str = "Starting") -> VideoJob:
        job = self.get_job(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found")
        progress = job.progress.model_copy(update={"message": message})
        return self.update_job(job_id, status="processing", progress=progress)

    def complete_job(
        self,
        job_id: str,
        segments: List[VideoSegment],
        total_cost: Optional[str] = None,
        total_duration: Optional[float] = None,
    ) -> VideoJob:
        job = self.get_job(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found")
        progress = JobProgress(
            current_segment=job.progress.total_segments,
            total_segments=job.progress.total_segments,
            message="Completed",
        )
        updated = self.update_job(
            job_id,
            status="completed",
            segments=list(segments),
            total_cost=total_cost,
            total_duration=total_duration,
            progress=progress,
        )
        logger.info("video.job_completed", extra={"job_id": job_id, "event_type": "job.completed"})
        return updated

    def fail_job(self, job_id: str, error: str, segments: Optional[List[VideoSegment]] = None) -> VideoJob:
        changes = {"status": "failed", "error": error}
        if segments is not None:
            changes["segments"] = list(segments)
        job = self.get_job(job_id)
        if job is not None:
            changes["progress"] = job.progress.model_copy(update={"message": "Failed"})
        updated = self.update_job(job_id, **changes)
        logger.warning("video.job_failed", extra={"job_id": job_id, "event_type": "job.failed", "error_code": "job_failed"})
        return updated

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Drop jobs created more than ttl ago; returns how many were removed."""
        cutoff = (now or self._clock()) - self.ttl
        with self._lock:
            expired = [job_id for job_id, job in self._jobs.items() if job.created_at < cutoff]
            for job_id in expired:
                del self._jobs[job_id]
        if expired:
            logger.info(f"video.jobs_swept count={len(expired)}", extra={"event_type": "job.swept"})
        return len(expired)


async def run_sweeper(store: JobStore, interval_seconds: float = 300) -> None:
    """Sweep forever; cancelled by the app lifespan on shutdown."""
    while True:
        await asyncio.sleep(interval_seconds)
        store.sweep()
