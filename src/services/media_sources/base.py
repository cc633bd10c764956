"""Base abstraction for stock media sources."""

from abc import ABC, abstractmethod

from models.media import MediaItem


class MediaSource(ABC):
    """Abstract base class for stock media sources (Pexels, Pixabay, etc.)."""

    @abstractmethod
    async def search_videos(self, query: str, count: int) -> list[MediaItem]:
        """Search for portrait videos matching the query.

        Args:
            query: Search query string (already localized)
            count: Maximum number of results

        Returns:
            List of MediaItem objects with ``type == "video"``
        """

    @abstractmethod
    async def search_photos(self, query: str, count: int) -> list[MediaItem]:
        """Search for portrait photos matching the query.

        Args:
            query: Search query string (already localized)
            count: Maximum number of results

        Returns:
            List of MediaItem objects with ``type == "image"``
        """

    @abstractmethod
    def get_source_name(self) -> str:
        """Get the name of this media source.

        Returns:
            Source name (e.g., "pexels")
        """

    def is_configured(self) -> bool:
        """Check if this source has required configuration (API keys, etc.).

        Default implementation returns True (no config required).
        Override in subclasses that require API keys.
        """
        return True

    async def close(self) -> None:
        """Release network resources held by the source."""
        return None
