"""Narration and video artifact models."""

from dataclasses import dataclass


@dataclass
class VoiceResult:
    """Synthesized narration audio."""

    audio_path: str
    duration: float
    chunk_count: int = 1


@dataclass
class VideoResult:
    """Assembled video artifact, measured from the produced file."""

    video_path: str
    duration: float
    size: int  # bytes
    resolution: str  # WxH
    has_subtitles: bool

    @property
    def size_mb(self) -> float:
        return self.size / (1024 * 1024)
