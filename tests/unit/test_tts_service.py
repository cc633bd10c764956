"""Unit tests for TTSService chunking and ElevenLabs synthesis."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from pipeline.errors import SynthesisError
from services.tts_service import TTSService

MP3_CHUNK = b"ID3" + b"\x00" * 32


def _service(temp_dir, handler, **kwargs) -> TTSService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TTSService("test_key", output_dir=temp_dir / "audio", client=client, **kwargs)


def _fake_concat(chunk_paths: list[Path], output_path: Path) -> None:
    output_path.write_bytes(b"".join(p.read_bytes() for p in chunk_paths))


@pytest.mark.unit
class TestSplitTextChunks:
    def test_preserves_text(self, temp_dir):
        service = TTSService("key", output_dir=temp_dir)
        text = (
            "This is a very long sentence for testing chunk behavior. "
            "It should be split into multiple chunks without dropping words. "
            "The resulting chunks should still preserve order and readability."
        )

        chunks = service._split_text_chunks(text, max_chars=60)

        assert len(chunks) > 1
        assert all(len(chunk) <= 60 for chunk in chunks)
        assert " ".join(chunks) == " ".join(text.split())

    def test_short_text_single_chunk(self, temp_dir):
        service = TTSService("key", output_dir=temp_dir)

        assert service._split_text_chunks("  Короткий   текст. ") == ["Короткий текст."]

    def test_overlong_word_is_cut(self, temp_dir):
        service = TTSService("key", output_dir=temp_dir)

        chunks = service._split_text_chunks("a" * 25, max_chars=10)

        assert chunks == ["a" * 10, "a" * 10, "a" * 5]

    def test_overlong_sentence_wrapped_on_words(self, temp_dir):
        service = TTSService("key", output_dir=temp_dir)
        text = "First sentence here. Second sentence here. Third sentence here."

        chunks = service._split_text_chunks(text, max_chars=20)

        assert chunks == ["First sentence here.", "Second sentence", "here.", "Third sentence here."]

    def test_empty_text(self, temp_dir):
        service = TTSService("key", output_dir=temp_dir)

        assert service._split_text_chunks("   ") == []


@pytest.mark.unit
def test_detect_audio_format():
    assert TTSService.detect_audio_format(b"ID3\x04\x00") == "mp3"
    assert TTSService.detect_audio_format(b"\xff\xfb\x90\x00") == "mp3"
    assert TTSService.detect_audio_format(b"RIFF\x00\x00\x00\x00WAVEfmt ") == "wav"
    assert TTSService.detect_audio_format(b"OggS\x00") == "ogg"
    assert TTSService.detect_audio_format(b"hello") == "bin"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_synthesize_single_chunk(temp_dir):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, content=MP3_CHUNK)

    service = _service(temp_dir, handler, voice_id="voice123")
    try:
        with patch.object(TTSService, "_get_audio_duration", return_value=4.2):
            result = await service.synthesize("Жара нагружает сердце.")
    finally:
        await service.close()

    assert result is not None
    assert result.duration == 4.2
    assert result.chunk_count == 1
    assert Path(result.audio_path).read_bytes() == MP3_CHUNK

    assert len(requests) == 1
    request = requests[0]
    assert request.url.path == "/v1/text-to-speech/voice123"
    assert request.headers["xi-api-key"] == "test_key"
    assert request.headers["accept"] == "audio/mpeg"
    payload = json.loads(request.content)
    assert payload["text"] == "Жара нагружает сердце."
    assert payload["model_id"] == "eleven_multilingual_v2"
    assert payload["voice_settings"]["stability"] == 0.7
    assert payload["voice_settings"]["similarity_boost"] == 0.8


@pytest.mark.unit
@pytest.mark.asyncio
async def test_synthesize_concatenates_chunks_in_order(temp_dir):
    sent_texts = []

    def handler(request: httpx.Request) -> httpx.Response:
        text = json.loads(request.content)["text"]
        sent_texts.append(text)
        return httpx.Response(200, content=b"ID3" + text.encode("utf-8"))

    service = _service(temp_dir, handler, chunk_max_chars=21)
    script = "First sentence here. Second sentence here. Third sentence here."
    try:
        with patch.object(TTSService, "_get_audio_duration", return_value=9.0), patch.object(
            TTSService, "_concat_chunks", side_effect=_fake_concat
        ) as concat:
            result = await service.synthesize(script)
    finally:
        await service.close()

    assert sent_texts == ["First sentence here.", "Second sentence here.", "Third sentence here."]
    assert result.chunk_count == 3
    chunk_paths = concat.call_args.args[0]
    assert [p.name for p in chunk_paths] == ["chunk_000.mp3", "chunk_001.mp3", "chunk_002.mp3"]
    merged = Path(result.audio_path).read_bytes()
    assert merged == b"ID3First sentence here.ID3Second sentence here.ID3Third sentence here."


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failed_chunk_aborts_narration(temp_dir):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 2:
            return httpx.Response(400, text="bad request")
        return httpx.Response(200, content=MP3_CHUNK)

    service = _service(temp_dir, handler, chunk_max_chars=20)
    try:
        with patch.object(TTSService, "_concat_chunks", side_effect=_fake_concat) as concat:
            with pytest.raises(SynthesisError, match="400"):
                await service.synthesize("First sentence here. Second sentence here.")
    finally:
        await service.close()

    concat.assert_not_called()
    assert list((temp_dir / "audio").iterdir()) == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_server_errors_are_retried_then_reported(temp_dir):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, text="unavailable")

    service = _service(temp_dir, handler)
    try:
        with patch("utils.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(SynthesisError, match="part 1/1"):
                await service.synthesize("Короткий текст.")
    finally:
        await service.close()

    assert len(calls) == 4


@pytest.mark.unit
@pytest.mark.asyncio
async def test_invalid_api_key(temp_dir):
    service = _service(temp_dir, lambda request: httpx.Response(401))
    try:
        with pytest.raises(SynthesisError, match="Invalid ElevenLabs API key"):
            await service.synthesize("Текст.")
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_empty_audio_returns_none(temp_dir):
    service = _service(temp_dir, lambda request: httpx.Response(200, content=b""))
    try:
        result = await service.synthesize("Текст.")
    finally:
        await service.close()

    assert result is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_non_mp3_audio_rejected(temp_dir):
    service = _service(temp_dir, lambda request: httpx.Response(200, content=b"<html>oops</html>"))
    try:
        with pytest.raises(SynthesisError, match="Unexpected audio format"):
            await service.synthesize("Текст.")
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("script", ["", "   "])
async def test_empty_script_rejected(temp_dir, script):
    service = _service(temp_dir, lambda request: httpx.Response(200, content=MP3_CHUNK))
    try:
        with pytest.raises(SynthesisError, match="empty"):
            await service.synthesize(script)
    finally:
        await service.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_over_cap_script_rejected_before_any_request(temp_dir):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, content=MP3_CHUNK)

    service = _service(temp_dir, handler, max_total_chars=100)
    try:
        with pytest.raises(SynthesisError, match="limit is 100"):
            await service.synthesize("x" * 101)
    finally:
        await service.close()

    assert calls == []
