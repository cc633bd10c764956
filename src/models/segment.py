"""Timeline models: content segments and subtitle cues."""

from dataclasses import dataclass
from typing import Optional

from models.media import MediaItem


@dataclass
class ContentSegment:
    """A time-boxed slice of the video driven by one background clip."""

    text: str
    search_query: str
    start_time: float
    duration: float
    media: Optional[MediaItem] = None

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


@dataclass
class SubtitleCue:
    """A single timed caption entry (seconds)."""

    index: int
    start: float
    end: float
    text: str

    @property
    def duration(self) -> float:
        return self.end - self.start
