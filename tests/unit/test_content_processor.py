"""Unit tests for ContentProcessor with a mocked GenAI client."""

import json
from unittest.mock import MagicMock, Mock, patch

import pytest
from pipeline.errors import ContentGenerationError
from services.content_processor import ContentProcessor, clean_script

VALID_PAYLOAD = {
    "summary": "Жара повышает нагрузку на сердце.",
    "keyPoints": ["жара", "сердце"],
    "script": "Летом бегать тяжелее 🔥. Жара нагружает сердце!",
    "tags": ["здоровье", "спорт"],
}


def _processor(response_text: str = "", error: Exception | None = None) -> ContentProcessor:
    client = MagicMock()
    if error is not None:
        client.models.generate_content.side_effect = error
    else:
        client.models.generate_content.return_value = Mock(text=response_text)
    return ContentProcessor(api_key="test", client=client)


@pytest.mark.unit
class TestCleanScript:
    def test_removes_emoji_and_symbols(self):
        assert clean_script("Жара 🔥 и бег ✅!") == "Жара и бег !"

    def test_collapses_whitespace(self):
        assert clean_script("  один\n\nдва\tтри ") == "один два три"

    def test_keeps_punctuation(self):
        assert clean_script("Что? Да, конечно.") == "Что? Да, конечно."


@pytest.mark.unit
class TestParseResponse:
    def test_valid_payload(self):
        content = _processor().parse_response(json.dumps(VALID_PAYLOAD, ensure_ascii=False))

        assert content.summary == VALID_PAYLOAD["summary"]
        assert content.script == "Летом бегать тяжелее . Жара нагружает сердце!"
        assert content.key_points == ["жара", "сердце"]
        assert content.tags == ["здоровье", "спорт"]

    def test_snake_case_key_points_and_code_fence(self):
        payload = dict(VALID_PAYLOAD)
        payload["key_points"] = payload.pop("keyPoints")
        raw = "```json\n" + json.dumps(payload, ensure_ascii=False) + "\n```"

        content = _processor().parse_response(raw)

        assert content.key_points == ["жара", "сердце"]

    @pytest.mark.parametrize("field", ["summary", "keyPoints", "script", "tags"])
    def test_missing_field(self, field):
        payload = {k: v for k, v in VALID_PAYLOAD.items() if k != field}

        with pytest.raises(ContentGenerationError, match=field):
            _processor().parse_response(json.dumps(payload))

    def test_list_fields_must_be_lists(self):
        payload = dict(VALID_PAYLOAD, tags="здоровье")

        with pytest.raises(ContentGenerationError, match="must be a list"):
            _processor().parse_response(json.dumps(payload))

    def test_empty_script(self):
        payload = dict(VALID_PAYLOAD, script="🔥🔥")

        with pytest.raises(ContentGenerationError, match="empty script"):
            _processor().parse_response(json.dumps(payload))

    @pytest.mark.parametrize("raw", ["", "not json", "[1, 2]"])
    def test_unusable_payload(self, raw):
        with pytest.raises(ContentGenerationError):
            _processor().parse_response(raw)


@pytest.mark.unit
@pytest.mark.asyncio
class TestProcess:
    async def test_process_builds_prompt(self):
        processor = _processor(json.dumps(VALID_PAYLOAD, ensure_ascii=False))

        content = await processor.process("Жара и бег", "Текст статьи о жаре.")

        assert content.tags == ["здоровье", "спорт"]
        kwargs = processor.client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert "Жара и бег" in kwargs["contents"]
        assert "Текст статьи о жаре." in kwargs["contents"]
        assert "Russian" in kwargs["contents"]
        assert kwargs["config"].response_mime_type == "application/json"

    async def test_long_article_truncated(self):
        processor = _processor(json.dumps(VALID_PAYLOAD))

        await processor.process("Заголовок", "а" * 20000 + "КОНЕЦ")

        prompt = processor.client.models.generate_content.call_args.kwargs["contents"]
        assert "КОНЕЦ" not in prompt

    async def test_empty_article(self):
        with pytest.raises(ContentGenerationError, match="empty"):
            await _processor().process("Заголовок", "   ")

    async def test_provider_failure(self):
        processor = _processor(error=ValueError("invalid argument"))

        with pytest.raises(ContentGenerationError, match="AI processing failed"):
            await processor.process("Заголовок", "Текст")

    async def test_rate_limit_retried(self):
        processor = _processor(error=RuntimeError("429 RESOURCE_EXHAUSTED"))

        with patch("utils.retry.time.sleep"):
            with pytest.raises(ContentGenerationError, match="Rate limit"):
                await processor.process("Заголовок", "Текст")

        assert processor.client.models.generate_content.call_count == 4


@pytest.mark.unit
@pytest.mark.asyncio
class TestSimplifyQuery:
    async def test_first_line_cleaned(self):
        processor = _processor('"summer running"\nextra text')

        assert await processor.simplify_query("жара и бег в городе") == "summer running"

    async def test_failure_returns_empty(self):
        processor = _processor(error=ValueError("boom"))

        assert await processor.simplify_query("жара") == ""
