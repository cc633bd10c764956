"""Split a narration script into fixed-length timed segments.

Each segment carries a stock-media search query derived from its sentence,
so dynamic assembly can switch background clips as the narration moves on.
"""

import logging
import math
import re

from models.segment import ContentSegment
from pipeline.subtitle_builder import clean_caption_text
from pipeline.translations import TopicTranslator

logger = logging.getLogger(__name__)

DEFAULT_SEGMENT_SECONDS = 4.0
FALLBACK_TERMS = ["lifestyle", "modern life", "city"]
MAX_QUERY_TERMS = 3

SENTENCE_SPLIT = re.compile(r"[.!?]+")
TOKEN_STRIP = ".,!?-"


def _tokens(sentence: str) -> list[str]:
    return [t.strip(TOKEN_STRIP) for t in sentence.lower().split() if t.strip(TOKEN_STRIP)]


def _query_safe(text: str) -> str:
    printable = "".join(ch for ch in text if ch.isprintable())
    return " ".join(printable.split())


class SegmentPlanner:
    """Plans content segments for dynamic (multi-clip) assembly."""

    def __init__(
        self,
        translator: TopicTranslator | None = None,
        segment_seconds: float = DEFAULT_SEGMENT_SECONDS,
    ):
        if segment_seconds <= 0:
            raise ValueError("segment_seconds must be positive")
        self.translator = translator or TopicTranslator()
        self.segment_seconds = segment_seconds

    def plan(
        self, script: str, key_points: list[str], total_duration: float
    ) -> list[ContentSegment]:
        """Assign sentences to consecutive fixed-length time slots.

        Sentences beyond the narration length are dropped and the last slot
        is truncated, so the summed durations never exceed ``total_duration``.
        """
        if total_duration <= 0:
            return []

        sentences = [s.strip() for s in SENTENCE_SPLIT.split(clean_caption_text(script))]
        sentences = [s for s in sentences if s]
        if not sentences:
            return []

        slot = self.segment_seconds
        count = min(len(sentences), math.ceil(total_duration / slot))

        segments = []
        for i in range(count):
            start = i * slot
            segments.append(
                ContentSegment(
                    text=sentences[i],
                    search_query=self.extract_search_query(sentences[i], key_points),
                    start_time=start,
                    duration=min(slot, total_duration - start),
                )
            )

        logger.info(f"Planned {len(segments)} content segments over {total_duration:.1f}s")
        for i, seg in enumerate(segments):
            logger.debug(f"  {i + 1}. {seg.text[:50]!r} -> {seg.search_query!r}")
        return segments

    def extract_search_query(self, sentence: str, key_points: list[str]) -> str:
        """Derive a short English search query for one sentence.

        Tokens found in the translation table contribute their topic phrase;
        key points that overlap the sentence are added (translated when
        possible). At most three terms are kept, with a generic fallback.
        """
        sentence_lower = sentence.lower()
        tokens = _tokens(sentence)
        terms: list[str] = []

        for token in tokens:
            topic = self.translator.lookup(token)
            if topic:
                terms.append(topic)

        meaningful = [t for t in tokens if len(t) > 2]
        for point in key_points:
            point_lower = point.lower().strip()
            if not point_lower:
                continue
            if point_lower in sentence_lower or any(t in point_lower for t in meaningful):
                terms.append(self.translator.lookup(point_lower) or self.translator.translate(point))

        unique: list[str] = []
        for term in terms:
            term = _query_safe(term)
            if term and term not in unique:
                unique.append(term)

        query = " ".join(unique[:MAX_QUERY_TERMS])
        return query or " ".join(FALLBACK_TERMS)
