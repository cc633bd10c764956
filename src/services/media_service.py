"""Stock media search and ranking for article videos.

Queries are localized with the topic translation table, fanned out to the
media source concurrently, scored by tag overlap with an HD bonus and
merged into a single ranked result.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from models.media import MediaItem, MediaSearchResult
from pipeline.translations import TopicTranslator
from services.media_sources.base import MediaSource

logger = logging.getLogger(__name__)

MAX_ARTICLE_QUERIES = 4
VIDEOS_PER_QUERY = 3
IMAGES_PER_QUERY = 2
MAX_VIDEOS = 10
MAX_IMAGES = 6
MIN_QUERY_CHARS = 3

# Target length of a short-form video, in seconds
BEST_DURATION_RANGE = (15, 60)


def calculate_relevance(query: str, tags: list[str]) -> float:
    """Fraction of query words (longer than 2 chars) found in the tag text."""
    if not tags:
        return 0.0
    query_words = [w for w in query.lower().split() if len(w) > 2]
    if not query_words:
        return 0.0
    tag_text = " ".join(tags).lower()
    matched = sum(1 for word in query_words if word in tag_text)
    return matched / len(query_words)


def rank_media(items: list[MediaItem]) -> list[MediaItem]:
    """Sort by relevance plus HD bonus, highest first (stable)."""
    return sorted(items, key=lambda item: item.score, reverse=True)


def select_best_video(result: MediaSearchResult) -> Optional[MediaItem]:
    """Pick the background clip for a short vertical video.

    The first ranked video whose duration falls in the target range wins;
    otherwise the highest-ranked video regardless of duration.
    """
    low, high = BEST_DURATION_RANGE
    for video in result.videos:
        if video.duration is not None and low <= video.duration <= high:
            return video
    return result.videos[0] if result.videos else None


def _dedupe(items: list[MediaItem]) -> list[MediaItem]:
    seen: set[str] = set()
    unique = []
    for item in items:
        if item.id not in seen:
            seen.add(item.id)
            unique.append(item)
    return unique


class MediaService:
    """Media provider over a stock media source."""

    def __init__(
        self,
        source: MediaSource,
        translator: Optional[TopicTranslator] = None,
        query_simplifier: Optional[Callable[[str], Awaitable[str]]] = None,
        max_query_retries: int = 3,
    ):
        """
        Args:
            source: Stock media source to query
            translator: Topic translation table for query localization
            query_simplifier: Async callable returning a simpler query when
                a search finds no videos
            max_query_retries: Upper bound on simplified-query attempts
        """
        self.source = source
        self.translator = translator or TopicTranslator()
        self.query_simplifier = query_simplifier
        self.max_query_retries = max(0, max_query_retries)

    async def close(self) -> None:
        await self.source.close()

    def translate(self, query: str) -> str:
        return self.translator.translate(query)

    async def search_videos(self, query: str, count: int = 8) -> list[MediaItem]:
        """Search videos for one query and rank them."""
        english_query = self.translate(query)
        logger.info(f"Searching videos for {query!r} (translated: {english_query!r})")
        videos = await self.source.search_videos(english_query, count)
        for video in videos:
            video.relevance_score = calculate_relevance(english_query, video.tags)
        return rank_media(videos)

    async def search_images(self, query: str, count: int = 5) -> list[MediaItem]:
        """Search images for one query and rank them."""
        english_query = self.translate(query)
        images = await self.source.search_photos(english_query, count)
        for image in images:
            image.relevance_score = calculate_relevance(english_query, image.tags)
        return rank_media(images)

    async def search(self, query: str, count: int) -> list[MediaItem]:
        """Ranked videos for a single query."""
        return await self.search_videos(query, count)

    async def _search_query(self, query: str) -> tuple[list[MediaItem], list[MediaItem]]:
        videos, images = await asyncio.gather(
            self.search_videos(query, VIDEOS_PER_QUERY),
            self.search_images(query, IMAGES_PER_QUERY),
        )
        return videos, images

    @staticmethod
    def build_article_queries(title: str, key_points: list[str], tags: list[str]) -> list[str]:
        """Search queries for an article: title, first key points, first tags."""
        candidates = [title[:50], *key_points[:2], *tags[:3]]
        queries = [q.strip() for q in candidates if len(q.strip()) > MIN_QUERY_CHARS]
        return queries[:MAX_ARTICLE_QUERIES]

    async def get_media_for_article(
        self, title: str, key_points: list[str], tags: list[str]
    ) -> MediaSearchResult:
        """Collect ranked background candidates for an article.

        All queries run concurrently and are joined before merging. When no
        video is found, a simplified query is tried a bounded number of times.
        """
        queries = self.build_article_queries(title, key_points, tags)
        logger.info(f"Media search for {title[:60]!r}: {queries}")

        results = await asyncio.gather(
            *(self._search_query(q) for q in queries), return_exceptions=True
        )

        all_videos: list[MediaItem] = []
        all_images: list[MediaItem] = []
        for query, outcome in zip(queries, results):
            if isinstance(outcome, Exception):
                logger.warning(f"Media search failed for {query!r}: {outcome}")
                continue
            videos, images = outcome
            all_videos.extend(videos)
            all_images.extend(images)

        searched = list(queries)
        if not all_videos and self.query_simplifier is not None:
            all_videos = await self._retry_with_simpler_queries(
                queries[0] if queries else title, searched
            )

        videos = rank_media(_dedupe(all_videos))[:MAX_VIDEOS]
        images = rank_media(_dedupe(all_images))[:MAX_IMAGES]
        logger.info(f"Media search completed: {len(videos)} videos, {len(images)} images")

        return MediaSearchResult(videos=videos, images=images, search_query=", ".join(searched))

    async def _retry_with_simpler_queries(self, query: str, searched: list[str]) -> list[MediaItem]:
        current = query
        for attempt in range(1, self.max_query_retries + 1):
            simpler = (await self.query_simplifier(current)).strip()
            if not simpler or simpler in searched:
                logger.info(f"No new simplified query after {attempt} attempt(s)")
                break
            searched.append(simpler)
            logger.info(f"Retrying media search with {simpler!r} ({attempt}/{self.max_query_retries})")
            try:
                videos = await self.search_videos(simpler, VIDEOS_PER_QUERY)
            except Exception as e:
                logger.warning(f"Simplified media search failed for {simpler!r}: {e}")
                videos = []
            if videos:
                return videos
            current = simpler
        return []
