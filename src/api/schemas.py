"""Pydantic request/response models for the newstok API."""

from pydantic import BaseModel, Field

# =============================================================================
# Response Models
# =============================================================================


class RootResponse(BaseModel):
    """Root endpoint response."""

    message: str
    version: str

    model_config = {"json_schema_extra": {"examples": [{"message": "NewsTok API", "version": "1.0.0"}]}}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str

    model_config = {"json_schema_extra": {"examples": [{"status": "healthy"}]}}


class GenerateResponse(BaseModel):
    """Job submission response."""

    job_id: str
    status: str
    message: str
    video_url: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "job_id": "550e8400-e29b-41d4-a716-446655440000",
                    "status": "pending",
                    "message": "Video generation started",
                    "video_url": None,
                }
            ]
        }
    }


class JobResponse(BaseModel):
    """Persisted state of an article video job."""

    id: str
    url: str
    status: str
    title: str | None = None
    content: str | None = None
    audio_path: str | None = None
    audio_duration: float | None = None
    video_path: str | None = None
    video_url: str | None = None
    video_duration: float | None = None
    video_size: int | None = None
    video_resolution: str | None = None
    has_subtitles: bool = False
    error: str | None = None
    created_at: str
    updated_at: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": "550e8400-e29b-41d4-a716-446655440000",
                    "url": "https://the-steppe.com/novosti/zhara-i-beg",
                    "status": "done",
                    "title": "Жара и бег: готово ли ваше сердце к марафону",
                    "video_url": "https://cdn.example.com/videos/550e8400.mp4",
                    "video_duration": 42.3,
                    "video_size": 8123456,
                    "video_resolution": "1080x1920",
                    "has_subtitles": True,
                    "created_at": "2026-01-20T10:30:00+00:00",
                    "updated_at": "2026-01-20T10:32:10+00:00",
                }
            ]
        }
    }


class JobListResponse(BaseModel):
    """Job listing response."""

    jobs: list[JobResponse]
    total: int


class MediaItemResponse(BaseModel):
    """A ranked stock media candidate."""

    id: str
    url: str
    preview_url: str
    type: str
    duration: float | None = None
    tags: list[str] = Field(default_factory=list)
    quality: str
    relevance_score: float


class MediaTestResponse(BaseModel):
    """Result of a media search dry run."""

    search_query: str
    total_found: int
    videos: list[MediaItemResponse]
    images: list[MediaItemResponse]
    best_video: MediaItemResponse | None = None


class VoiceTestResponse(BaseModel):
    """Result of a narration dry run."""

    audio_path: str
    duration: float
    chunk_count: int


class SubtitlesResponse(BaseModel):
    """Transcribed subtitles for a job's narration."""

    job_id: str
    format: str
    subtitles: str
    subtitles_url: str | None = None


class ErrorResponse(BaseModel):
    """Error payload returned for domain errors."""

    detail: str

    model_config = {"json_schema_extra": {"examples": [{"detail": "Job 123 not found"}]}}


# =============================================================================
# Request Models
# =============================================================================


class GenerateRequest(BaseModel):
    """Submit an article URL for video generation."""

    url: str | None = None
    force: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [{"url": "https://the-steppe.com/novosti/zhara-i-beg", "force": False}]
        }
    }


class MediaTestRequest(BaseModel):
    """Run the article media search without generating a video."""

    title: str = Field(min_length=1)
    key_points: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class VoiceTestRequest(BaseModel):
    """Synthesize narration for arbitrary text."""

    text: str = Field(min_length=1)
