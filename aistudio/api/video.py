"""
Video generation API routes.

- POST /api/video-gen/unified-v5: concepts pipeline, runs inline
- POST /api/video-gen/unified-v4: keyframes pipeline, runs inline
- GET  (same paths): endpoint description
- POST /api/video-gen/start: background job, poll status
- GET  /api/video-gen/status/{job_id}
- DELETE /api/video-gen/jobs/{job_id}: cancel a running job
- POST /api/video-gen/estimate: segment count and cost of both variants

Every run is gated by the video_generations allowance.
"""
from fastapi import APIRouter, Depends

from aistudio.api.deps import get_job_store, get_usage_gate, get_video_runner
from aistudio.core.errors import NotFoundError
from aistudio.core.middleware.session import get_session_id
from aistudio.features.usage.service import UsageGate
from aistudio.features.video.job_store import JobStore
from aistudio.features.video.pipeline import SEGMENT_COST, estimate_cost, segment_count
from aistudio.features.video.runner import VideoJobRunner
from aistudio.models.video import PipelineResult, StartJobResponse, VideoJob, VideoRequest

router = APIRouter(prefix="/video-gen", tags=["video"])

# Rough wall-clock per segment: keyframe, prediction, upload, synthesis polling
SECONDS_PER_SEGMENT_ESTIMATE = 90

_VARIANT_INFO = {
    "concepts": {
        "name": "Unified Video Pipeline v5",
        "description": "Single start keyframe per segment with camera concepts for natural motion",
        "steps": [
            "Generate initial keyframe",
            "Predict motion and camera concepts from the current frame",
            "Synthesize the segment from the start keyframe",
            "Extract the last frame for the next segment",
        ],
    },
    "keyframes": {
        "name": "Unified Video Pipeline v4",
        "description": "Start and predicted end keyframes per segment with an evolving narrative",
        "steps": [
            "Generate initial keyframe",
            "Predict the end state and narrative from the current frame",
            "Render the end keyframe from the current frame",
            "Synthesize the segment between both keyframes",
            "Extract the last frame for the next segment",
        ],
    },
}


def _describe(variant: str) -> dict:
    info = dict(_VARIANT_INFO[variant])
    info.update(
        {
            "method": "POST",
            "parameters": {
                "prompt": "string (required)",
                "duration": "number of seconds (default 30)",
                "style": "string (default 'hyper realistic, photorealistic, cinematic lighting')",
                "segmentDuration": "'5s' | '9s' (default '9s')",
            },
            "costPerSegment": f"${SEGMENT_COST[variant]:.2f}",
        }
    )
    return info


async def _run_inline(body: VideoRequest, variant: str, session_id: str, gate: UsageGate, runner: VideoJobRunner) -> PipelineResult:
    gate.require_usage(session_id, "video_generations")
    return await runner.execute(body, session_id, variant=variant)


@router.post("/unified-v5", response_model=PipelineResult)
async def unified_v5(
    body: VideoRequest,
    session_id: str = Depends(get_session_id),
    gate: UsageGate = Depends(get_usage_gate),
    runner: VideoJobRunner = Depends(get_video_runner),
):
    return await _run_inline(body, "concepts", session_id, gate, runner)


@router.get("/unified-v5")
def unified_v5_info():
    return _describe("concepts")


@router.post("/unified-v4", response_model=PipelineResult)
async def unified_v4(
    body: VideoRequest,
    session_id: str = Depends(get_session_id),
    gate: UsageGate = Depends(get_usage_gate),
    runner: VideoJobRunner = Depends(get_video_runner),
):
    return await _run_inline(body, "keyframes", session_id, gate, runner)


@router.get("/unified-v4")
def unified_v4_info():
    return _describe("keyframes")


@router.post("/start", response_model=StartJobResponse, status_code=202)
async def start_job(
    body: VideoRequest,
    session_id: str = Depends(get_session_id),
    gate: UsageGate = Depends(get_usage_gate),
    runner: VideoJobRunner = Depends(get_video_runner),
):
    gate.require_usage(session_id, "video_generations")
    job = await runner.start(body, session_id, variant="concepts")
    segments = segment_count(body.duration, body.segment_seconds)
    return StartJobResponse(
        job_id=job.id,
        status=job.status,
        segment_count=segments,
        estimated_time=f"{segments * SECONDS_PER_SEGMENT_ESTIMATE // 60} minutes",
    )


@router.get("/status/{job_id}", response_model=VideoJob)
def job_status(job_id: str, jobs: JobStore = Depends(get_job_store)):
    job = jobs.get_job(job_id)
    if job is None:
        raise NotFoundError("Job not found")
    return job


@router.delete("/jobs/{job_id}", response_model=VideoJob)
async def cancel_job(job_id: str, runner: VideoJobRunner = Depends(get_video_runner)):
    return await runner.cancel(job_id)


@router.post("/estimate")
def estimate(body: VideoRequest):
    segments = segment_count(body.duration, body.segment_seconds)
    return {
        "segmentCount": segments,
        "cost": {
            "v4": estimate_cost(body, "keyframes"),
            "v5": estimate_cost(body, "concepts"),
        },
    }
