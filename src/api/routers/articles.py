"""Article video routes for the newstok API."""

import logging
from dataclasses import asdict

from api.dependencies import (
    get_media_service,
    get_orchestrator,
    get_storage,
    get_transcription_service,
    get_tts_service,
)
from api.schemas import (
    GenerateRequest,
    GenerateResponse,
    JobListResponse,
    JobResponse,
    MediaTestRequest,
    MediaTestResponse,
    SubtitlesResponse,
    VoiceTestRequest,
    VoiceTestResponse,
)
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from models.media import MediaItem
from pipeline.errors import SynthesisError
from pipeline.orchestrator import JobOrchestrator
from services.media_service import MediaService, select_best_video
from services.tts_service import TTSService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/article", tags=["Articles"])


def _media_view(item: MediaItem) -> dict:
    data = asdict(item)
    data.pop("source", None)
    return data


@router.post(
    "/generate",
    response_model=GenerateResponse,
    status_code=201,
    summary="Generate a video for an article",
    description=(
        "Creates a job and starts the pipeline in the background. Returns 200 with the "
        "existing job when the URL was already submitted (unless force is set)."
    ),
)
async def generate_video(
    request: GenerateRequest,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
):
    """Submit an article URL."""
    handle = await orchestrator.submit(request.url, force=request.force)
    body = GenerateResponse(
        job_id=handle.job_id,
        status=handle.status.value,
        message=handle.message,
        video_url=handle.video_url,
    )
    if not handle.created:
        return JSONResponse(status_code=200, content=body.model_dump())
    return body


@router.get(
    "/status/{job_id}",
    response_model=JobResponse,
    summary="Get job status",
)
async def get_status(job_id: str, orchestrator: JobOrchestrator = Depends(get_orchestrator)):
    """Current persisted state of a job."""
    job = await orchestrator.get_status(job_id)
    return job.to_dict()


@router.get(
    "/jobs",
    response_model=JobListResponse,
    summary="List jobs",
    description="Newest first, optionally filtered by status.",
)
async def list_jobs(
    status: str | None = None,
    limit: int = Query(20),
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
):
    """List recent jobs."""
    jobs = await orchestrator.list_jobs(status=status, limit=limit)
    total = await orchestrator.count_jobs(status=status)
    return {"jobs": [job.to_dict() for job in jobs], "total": total}


@router.post(
    "/test-media",
    response_model=MediaTestResponse,
    summary="Dry-run the media search",
)
async def test_media(
    request: MediaTestRequest,
    media_service: MediaService = Depends(get_media_service),
):
    """Run the article media search and show the selected background."""
    result = await media_service.get_media_for_article(
        request.title, request.key_points, request.tags
    )
    best = select_best_video(result)
    return {
        "search_query": result.search_query,
        "total_found": result.total_found,
        "videos": [_media_view(v) for v in result.videos],
        "images": [_media_view(i) for i in result.images],
        "best_video": _media_view(best) if best else None,
    }


@router.post(
    "/test-voice",
    response_model=VoiceTestResponse,
    summary="Dry-run narration synthesis",
)
async def test_voice(
    request: VoiceTestRequest,
    tts_service: TTSService = Depends(get_tts_service),
):
    """Synthesize narration for the given text."""
    voice = await tts_service.synthesize(request.text)
    if voice is None:
        raise SynthesisError("Voice generation returned no audio")
    return asdict(voice)


@router.get(
    "/subtitles/{job_id}",
    response_model=SubtitlesResponse,
    summary="Transcribe a job's narration into subtitles",
    description="Uploads the SRT to object storage when storage is configured.",
)
async def get_subtitles(
    job_id: str,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
    transcription=Depends(get_transcription_service),
    storage=Depends(get_storage),
):
    """Transcribe the narration of a job with the subtitle provider."""
    if transcription is None:
        raise HTTPException(status_code=503, detail="Subtitle transcription is not configured")

    job = await orchestrator.get_status(job_id)
    if not job.audio_path:
        raise HTTPException(status_code=409, detail=f"Job {job_id} has no narration yet")

    subtitles = await transcription.transcribe(job.audio_path)
    subtitles_url = None
    if storage is not None:
        subtitles_url = await storage.upload_text(
            f"subtitles/{job_id}.srt", subtitles, content_type="application/x-subrip"
        )
    return {
        "job_id": job_id,
        "format": "srt",
        "subtitles": subtitles,
        "subtitles_url": subtitles_url,
    }
