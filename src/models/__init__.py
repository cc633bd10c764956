# Data models for newstok
from .content import Article, ProcessedContent
from .job import Job, JobHandle, JobStatus
from .media import MediaItem, MediaSearchResult
from .segment import ContentSegment, SubtitleCue
from .video import VideoResult, VoiceResult

__all__ = [
    "Article",
    "ProcessedContent",
    "Job",
    "JobHandle",
    "JobStatus",
    "MediaItem",
    "MediaSearchResult",
    "ContentSegment",
    "SubtitleCue",
    "VideoResult",
    "VoiceResult",
]
