"""Media sources package for stock background footage."""

from services.media_sources.base import MediaSource
from services.media_sources.pexels import PexelsMediaSource

__all__ = ["MediaSource", "PexelsMediaSource"]
