"""Job data models for the article-to-video pipeline."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional


class JobStatus(str, Enum):
    """Lifecycle status of a video generation job."""

    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


# Fields cleared when a job is force-regenerated
TRANSIENT_FIELDS = (
    "title",
    "content",
    "audio_path",
    "audio_duration",
    "video_path",
    "video_url",
    "video_duration",
    "video_size",
    "video_resolution",
    "error",
)


@dataclass
class Job:
    """Persisted record tracking one article URL through the pipeline."""

    id: str
    url: str
    status: JobStatus
    created_at: str
    updated_at: str
    title: Optional[str] = None
    content: Optional[str] = None
    audio_path: Optional[str] = None
    audio_duration: Optional[float] = None
    video_path: Optional[str] = None
    video_url: Optional[str] = None
    video_duration: Optional[float] = None
    video_size: Optional[int] = None
    video_resolution: Optional[str] = None
    has_subtitles: bool = False
    error: Optional[str] = None
    run_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        data = asdict(self)
        data["status"] = self.status.value
        data.pop("run_id", None)
        return data


@dataclass
class JobHandle:
    """Result of a job submission."""

    job_id: str
    status: JobStatus
    created: bool
    video_url: Optional[str] = None
    message: str = ""
