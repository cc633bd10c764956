"""Stock media models."""

from dataclasses import dataclass, field
from typing import Optional

# Ranking bonus for HD assets on top of tag relevance
HD_BONUS = 0.2


@dataclass
class MediaItem:
    """A candidate background asset from a stock media source."""

    id: str
    url: str
    preview_url: str
    type: str  # image or video
    tags: list[str] = field(default_factory=list)
    quality: str = "sd"  # hd or sd
    duration: Optional[float] = None
    relevance_score: float = 0.0
    source: str = "pexels"

    @property
    def score(self) -> float:
        """Ranking score: relevance plus HD bonus."""
        return self.relevance_score + (HD_BONUS if self.quality == "hd" else 0.0)

    @property
    def is_video(self) -> bool:
        return self.type == "video"


@dataclass
class MediaSearchResult:
    """Aggregated result of the per-article media search."""

    videos: list[MediaItem] = field(default_factory=list)
    images: list[MediaItem] = field(default_factory=list)
    search_query: str = ""

    @property
    def total_found(self) -> int:
        return len(self.videos) + len(self.images)
