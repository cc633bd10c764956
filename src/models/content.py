"""Article and LLM-processed content models."""

from dataclasses import dataclass, field


@dataclass
class Article:
    """Scraped article text."""

    title: str
    text: str


@dataclass
class ProcessedContent:
    """Structured output of the content processor.

    Ephemeral: consumed by narration and segment planning, never persisted.
    """

    summary: str
    script: str
    key_points: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
