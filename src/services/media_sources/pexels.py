"""Pexels media source for portrait stock videos and photos."""

import logging
from typing import Optional

import aiohttp

from models.media import MediaItem
from services.media_sources.base import MediaSource
from utils.retry import NetworkError, TemporaryServiceError, retry_api_call

logger = logging.getLogger(__name__)

# Minimum width for a video file to count as HD
HD_MIN_WIDTH = 720
MAX_PHOTO_TAGS = 8


class PexelsMediaSource(MediaSource):
    """Pexels source for royalty-free vertical footage.

    API Documentation: https://www.pexels.com/api/documentation/
    """

    VIDEOS_URL = "https://api.pexels.com/videos/search"
    PHOTOS_URL = "https://api.pexels.com/v1/search"

    def __init__(self, api_key: str, session: Optional[aiohttp.ClientSession] = None):
        """Initialize Pexels media source.

        Args:
            api_key: Pexels API key
            session: Shared aiohttp session; one is created lazily otherwise
        """
        self.api_key = api_key or ""
        self._session = session
        self._owns_session = session is None

        if not self.api_key:
            logger.warning(
                "[Pexels] No API key configured. Set PEXELS_API_KEY to enable Pexels search."
            )

    def get_source_name(self) -> str:
        """Get the name of this media source."""
        return "pexels"

    def is_configured(self) -> bool:
        """Check if this source has required configuration."""
        return bool(self.api_key)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=30))
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def search_videos(self, query: str, count: int) -> list[MediaItem]:
        """Search Pexels for portrait videos."""
        data = await self._request(
            self.VIDEOS_URL,
            {"query": query, "per_page": min(count, 80), "orientation": "portrait", "size": "medium"},
        )
        items = [item for item in (self._parse_video(v) for v in data.get("videos", [])) if item]
        logger.info(f"[Pexels] Found {len(items)} videos for '{query}'")
        return items

    async def search_photos(self, query: str, count: int) -> list[MediaItem]:
        """Search Pexels for portrait photos."""
        data = await self._request(
            self.PHOTOS_URL,
            {"query": query, "per_page": min(count, 80), "orientation": "portrait", "size": "large"},
        )
        items = [item for item in (self._parse_photo(p) for p in data.get("photos", [])) if item]
        logger.info(f"[Pexels] Found {len(items)} images for '{query}'")
        return items

    @retry_api_call(max_retries=3, base_delay=1.0)
    async def _request(self, url: str, params: dict) -> dict:
        """Run one search request.

        Returns an empty payload on blank queries, missing keys and
        non-retryable API errors.
        """
        if not params["query"].strip():
            return {}

        if not self.api_key:
            logger.debug("[Pexels] Skipping search - no API key configured")
            return {}

        headers = {"Authorization": self.api_key}
        session = await self._get_session()

        try:
            async with session.get(url, headers=headers, params=params) as response:
                if response.status == 401:
                    logger.error("[Pexels] Invalid API key")
                    return {}

                if response.status == 429:
                    logger.warning("[Pexels] Rate limit exceeded")
                    raise TemporaryServiceError("Pexels rate limit exceeded")

                if response.status >= 500:
                    raise TemporaryServiceError(f"Pexels server error {response.status}")

                if response.status != 200:
                    logger.warning(f"[Pexels] API returned status {response.status}")
                    return {}

                return await response.json()

        except aiohttp.ClientError as e:
            logger.error(f"[Pexels] Network error: {e}")
            raise NetworkError(f"Pexels network error: {e}") from e

    @staticmethod
    def _slug_words(page_url: str, item_id: str) -> list[str]:
        # Pexels URLs are like: https://www.pexels.com/video/title-here-12345/
        slug = page_url.rstrip("/").split("/")[-1] if page_url else ""
        if slug.endswith(f"-{item_id}"):
            slug = slug[: -len(f"-{item_id}")]
        return [w for w in slug.split("-") if w and not w.isdigit()]

    def _parse_video(self, video: dict) -> Optional[MediaItem]:
        """Parse Pexels API video response into MediaItem."""
        try:
            video_id = str(video.get("id", ""))
            video_files = video.get("video_files", [])
            if not video_id or not video_files:
                return None

            hd_file = next(
                (
                    f
                    for f in video_files
                    if f.get("quality") == "hd" and (f.get("width") or 0) >= HD_MIN_WIDTH
                ),
                None,
            )
            best_file = hd_file or video_files[0]
            if not best_file.get("link"):
                return None

            tags = [
                t.get("name", "") if isinstance(t, dict) else str(t)
                for t in video.get("tags", [])
            ]
            tags = [t for t in tags if t] or self._slug_words(video.get("url", ""), video_id)

            return MediaItem(
                id=f"pexels_video_{video_id}",
                url=best_file["link"],
                preview_url=video.get("image", ""),
                type="video",
                tags=tags,
                quality="hd" if hd_file else "sd",
                duration=float(video["duration"]) if video.get("duration") is not None else None,
                source=self.get_source_name(),
            )

        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"[Pexels] Failed to parse video: {e}")
            return None

    def _parse_photo(self, photo: dict) -> Optional[MediaItem]:
        """Parse Pexels API photo response into MediaItem."""
        try:
            photo_id = str(photo.get("id", ""))
            src = photo.get("src", {})
            url = src.get("large2x") or src.get("large")
            if not photo_id or not url:
                return None

            alt = photo.get("alt") or ""
            return MediaItem(
                id=f"pexels_photo_{photo_id}",
                url=url,
                preview_url=src.get("medium", ""),
                type="image",
                tags=alt.split()[:MAX_PHOTO_TAGS],
                quality="hd",
                source=self.get_source_name(),
            )

        except (AttributeError, TypeError) as e:
            logger.warning(f"[Pexels] Failed to parse photo: {e}")
            return None
