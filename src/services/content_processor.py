"""Article summarization and narration scripts using Google GenAI."""

import asyncio
import json
import logging
import re
import unicodedata
from typing import Optional

from google.genai import Client
from google.genai import types

from models.content import ProcessedContent
from pipeline.errors import ContentGenerationError
from services.prompts import (
    ARTICLE_PROCESSOR_V1,
    PROMPT_VERSIONS,
    QUERY_SIMPLIFIER_V1,
    strip_markdown_code_blocks,
)
from utils.retry import APIRateLimitError, NetworkError, TemporaryServiceError, retry_api_call

logger = logging.getLogger(__name__)

# Longer articles are cut before prompting; the script only needs the lead
MAX_ARTICLE_CHARS = 15000


def clean_script(text: str) -> str:
    """Remove emoji, pictographs and other symbols that break captions."""
    kept = []
    for ch in text:
        category = unicodedata.category(ch)
        if category.startswith("S") or category in ("Cf", "Co", "Cs", "Mn"):
            continue
        kept.append(ch)
    return re.sub(r"\s+", " ", "".join(kept)).strip()


def _string_list(value, field_name: str) -> list[str]:
    if not isinstance(value, list):
        raise ContentGenerationError(f"AI response field '{field_name}' must be a list")
    return [str(item).strip() for item in value if str(item).strip()]


class ContentProcessor:
    """Turns scraped articles into narration scripts with Gemini."""

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-2.5-flash",
        language: str = "Russian",
        client: Optional[Client] = None,
    ):
        """Initialize Google GenAI client.

        Args:
            api_key: Google GenAI API key
            model_name: Gemini model to use
            language: Output language for summary, script and key points
            client: Pre-built client (tests)
        """
        self.api_key = api_key
        self.model_name = model_name
        self.language = language
        self._client = client
        logger.info(f"Initialized content processor with model: {model_name}")

    @property
    def client(self) -> Client:
        # Created lazily
        if self._client is None:
            self._client = Client(api_key=self.api_key)
        return self._client

    @retry_api_call(max_retries=3, base_delay=2.0)
    def _generate(self, prompt: str, json_output: bool = False, temperature: float = 0.7) -> str:
        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=temperature,
                    response_mime_type="application/json" if json_output else None,
                ),
            )
        except Exception as e:
            # Convert specific errors to retryable errors
            message = str(e).lower()
            if "rate limit" in message or "429" in message or "resource_exhausted" in message:
                raise APIRateLimitError(f"Rate limit hit: {e}") from e
            if "network" in message or "connection" in message:
                raise NetworkError(f"Network error: {e}") from e
            if "503" in message or "unavailable" in message:
                raise TemporaryServiceError(f"Service unavailable: {e}") from e
            raise
        return response.text or ""

    async def process(self, title: str, body_text: str) -> ProcessedContent:
        """Produce summary, key points, script and tags for an article.

        Raises:
            ContentGenerationError: On provider failure or a malformed payload
        """
        if not body_text or not body_text.strip():
            raise ContentGenerationError("Article text is empty")

        prompt = ARTICLE_PROCESSOR_V1.format(
            title=title.strip(),
            content=body_text.strip()[:MAX_ARTICLE_CHARS],
            language=self.language,
        )

        logger.info(f"Processing article with AI (prompt {PROMPT_VERSIONS['process_article']})")
        try:
            raw = await asyncio.to_thread(self._generate, prompt, True)
        except Exception as e:
            raise ContentGenerationError(f"AI processing failed: {e}") from e

        content = self.parse_response(raw)
        logger.info(
            f"AI processing completed: {len(content.script)} chars script, "
            f"{len(content.key_points)} key points"
        )
        return content

    def parse_response(self, raw: str) -> ProcessedContent:
        """Validate the model's JSON payload.

        Raises:
            ContentGenerationError: If the payload is not usable
        """
        if not raw or not raw.strip():
            raise ContentGenerationError("AI response is empty")

        try:
            payload = json.loads(strip_markdown_code_blocks(raw))
        except json.JSONDecodeError as e:
            logger.debug(f"Raw AI response: {raw[:500]}")
            raise ContentGenerationError(f"AI response is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ContentGenerationError("AI response is not a JSON object")

        key_points = payload.get("keyPoints", payload.get("key_points"))
        missing = [
            name
            for name, value in (
                ("summary", payload.get("summary")),
                ("keyPoints", key_points),
                ("script", payload.get("script")),
                ("tags", payload.get("tags")),
            )
            if value is None
        ]
        if missing:
            raise ContentGenerationError(f"AI response missing fields: {', '.join(missing)}")

        script = clean_script(str(payload["script"]))
        if not script:
            raise ContentGenerationError("AI response contains an empty script")

        return ProcessedContent(
            summary=clean_script(str(payload["summary"])),
            script=script,
            key_points=[clean_script(p) for p in _string_list(key_points, "keyPoints")],
            tags=[clean_script(t) for t in _string_list(payload["tags"], "tags")],
        )

    async def simplify_query(self, query: str) -> str:
        """Ask the model for a simpler stock-footage search phrase.

        Returns an empty string when the model has nothing better.
        """
        prompt = QUERY_SIMPLIFIER_V1.format(query=query)
        try:
            raw = await asyncio.to_thread(self._generate, prompt, False, 0.3)
        except Exception as e:
            logger.warning(f"Query simplification failed for {query!r}: {e}")
            return ""

        lines = strip_markdown_code_blocks(raw).splitlines()
        simplified = clean_script(lines[0]).strip("\"'.").strip() if lines else ""
        logger.info(f"Simplified query {query!r} -> {simplified!r}")
        return simplified
