"""TTS Service - narration synthesis via the ElevenLabs HTTP API.

Scripts longer than the per-request ceiling are split on sentence
boundaries, synthesized chunk by chunk and joined with the FFmpeg concat
demuxer. A failed chunk fails the whole narration.
"""

import asyncio
import json
import logging
import re
import shutil
import subprocess
import tempfile
import uuid
from pathlib import Path
from typing import Optional

import httpx

from models.video import VoiceResult
from pipeline.errors import SynthesisError
from utils.retry import APIRateLimitError, NetworkError, TemporaryServiceError, retry_api_call

logger = logging.getLogger(__name__)

ELEVENLABS_API_BASE = "https://api.elevenlabs.io/v1"
DEFAULT_VOICE_ID = "pNInz6obpgDQGcFmaJgB"
DEFAULT_MODEL_ID = "eleven_multilingual_v2"
TTS_CHUNK_MAX_CHARS = 2500
TTS_MAX_TOTAL_CHARS = 10000


class TTSService:
    """HTTP client for ElevenLabs text-to-speech."""

    def __init__(
        self,
        api_key: str,
        output_dir: Path | str = "audio",
        voice_id: str = DEFAULT_VOICE_ID,
        model_id: str = DEFAULT_MODEL_ID,
        stability: float = 0.7,
        similarity_boost: float = 0.8,
        chunk_max_chars: int = TTS_CHUNK_MAX_CHARS,
        max_total_chars: int = TTS_MAX_TOTAL_CHARS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.voice_id = voice_id
        self.model_id = model_id
        self.stability = stability
        self.similarity_boost = similarity_boost
        self.chunk_max_chars = chunk_max_chars
        self.max_total_chars = max_total_chars
        # Long timeout; a 2500 character chunk can take a while
        self.client = client or httpx.AsyncClient(timeout=300.0)

    async def close(self) -> None:
        await self.client.aclose()

    @staticmethod
    def detect_audio_format(audio_bytes: bytes) -> str:
        """Detect audio format from magic bytes."""
        if len(audio_bytes) >= 12 and audio_bytes[:4] == b"RIFF" and audio_bytes[8:12] == b"WAVE":
            return "wav"
        if audio_bytes[:3] == b"ID3" or (
            len(audio_bytes) >= 2
            and audio_bytes[0] == 0xFF
            and (audio_bytes[1] & 0xE0) == 0xE0
        ):
            return "mp3"
        if audio_bytes[:4] == b"OggS":
            return "ogg"
        return "bin"

    def _split_text_chunks(self, text: str, max_chars: int | None = None) -> list[str]:
        """Split long text into sentence-aware chunks.

        Sentences are packed greedily; overlong sentences are wrapped on
        word boundaries and overlong words are hard-cut.
        """
        max_chars = max_chars or self.chunk_max_chars
        normalized = " ".join(text.strip().split())
        if not normalized:
            return []

        if len(normalized) <= max_chars:
            return [normalized]

        sentence_parts = re.split(r"(?<=[.!?])\s+", normalized)

        chunks: list[str] = []
        current = ""

        def append_part(part: str) -> None:
            nonlocal current
            if not current:
                current = part
                return
            candidate = f"{current} {part}"
            if len(candidate) <= max_chars:
                current = candidate
                return
            chunks.append(current)
            current = part

        for sentence in sentence_parts:
            sentence = sentence.strip()
            if not sentence:
                continue
            if len(sentence) <= max_chars:
                append_part(sentence)
                continue

            # Hard wrap overlong sentences by word boundaries.
            current_word_chunk = ""
            for word in sentence.split():
                while len(word) > max_chars:
                    if current_word_chunk:
                        append_part(current_word_chunk)
                        current_word_chunk = ""
                    append_part(word[:max_chars])
                    word = word[max_chars:]
                if not current_word_chunk:
                    current_word_chunk = word
                    continue
                candidate = f"{current_word_chunk} {word}"
                if len(candidate) <= max_chars:
                    current_word_chunk = candidate
                else:
                    append_part(current_word_chunk)
                    current_word_chunk = word

            if current_word_chunk:
                append_part(current_word_chunk)

        if current:
            chunks.append(current)

        return chunks

    @retry_api_call(max_retries=3, base_delay=2.0)
    async def _synthesize_chunk(self, text: str) -> bytes:
        """Synthesize one chunk and return raw MP3 bytes."""
        url = f"{ELEVENLABS_API_BASE}/text-to-speech/{self.voice_id}"
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": {
                "stability": self.stability,
                "similarity_boost": self.similarity_boost,
                "style": 0,
                "use_speaker_boost": True,
            },
        }
        headers = {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self.api_key,
        }

        try:
            response = await self.client.post(url, json=payload, headers=headers)
        except httpx.TransportError as e:
            raise NetworkError(f"ElevenLabs connection failed: {e}") from e

        if response.status_code == 429:
            raise APIRateLimitError("ElevenLabs API rate limit exceeded")
        if response.status_code >= 500:
            raise TemporaryServiceError(f"ElevenLabs server error: {response.status_code}")
        if response.status_code == 401:
            raise SynthesisError("Invalid ElevenLabs API key")
        if response.status_code != 200:
            raise SynthesisError(
                f"ElevenLabs returned {response.status_code}: {response.text[:300]}"
            )

        return response.content

    async def synthesize(self, script: str) -> VoiceResult | None:
        """Synthesize narration for a script.

        Returns:
            VoiceResult, or None if the provider returned no audio

        Raises:
            SynthesisError: On empty or over-cap input and on any chunk failure
        """
        if not script or not script.strip():
            raise SynthesisError("Cannot synthesize an empty script")
        if len(script) > self.max_total_chars:
            raise SynthesisError(
                f"Script is {len(script)} characters, limit is {self.max_total_chars}"
            )
        if not self.api_key:
            raise SynthesisError("ElevenLabs API key is required")

        chunks = self._split_text_chunks(script)
        logger.info(f"Synthesizing speech: {len(script)} chars in {len(chunks)} chunk(s)")

        tmp_dir = Path(tempfile.mkdtemp(prefix="newstok_tts_"))
        output_path = self.output_dir / f"audio_{uuid.uuid4().hex[:12]}.mp3"
        try:
            chunk_paths: list[Path] = []
            for i, chunk in enumerate(chunks):
                try:
                    audio = await self._synthesize_chunk(chunk)
                except SynthesisError:
                    raise
                except Exception as e:
                    raise SynthesisError(f"Failed to synthesize part {i + 1}/{len(chunks)}: {e}") from e

                if not audio:
                    logger.warning(f"ElevenLabs returned no audio for part {i + 1}/{len(chunks)}")
                    return None

                audio_format = self.detect_audio_format(audio)
                if audio_format != "mp3":
                    raise SynthesisError(
                        f"Unexpected audio format for part {i + 1}: {audio_format}"
                    )

                chunk_path = tmp_dir / f"chunk_{i:03d}.mp3"
                chunk_path.write_bytes(audio)
                chunk_paths.append(chunk_path)
                logger.debug(f"Part {i + 1}/{len(chunks)}: {len(audio)} bytes")

            if len(chunk_paths) == 1:
                shutil.move(str(chunk_paths[0]), str(output_path))
            else:
                await asyncio.to_thread(self._concat_chunks, chunk_paths, output_path)

            duration = await asyncio.to_thread(self._get_audio_duration, output_path)
        finally:
            shutil.rmtree(tmp_dir, ignore_errors=True)

        logger.info(f"Audio file created: {output_path} ({duration:.1f}s)")
        return VoiceResult(audio_path=str(output_path), duration=duration, chunk_count=len(chunks))

    def _concat_chunks(self, chunk_paths: list[Path], output_path: Path) -> None:
        """Join MP3 chunks in order with the FFmpeg concat demuxer."""
        concat_file = chunk_paths[0].parent / "concat.txt"
        concat_file.write_text("\n".join(f"file '{p}'" for p in chunk_paths))

        cmd = [
            "ffmpeg", "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", str(concat_file),
            "-c", "copy",
            str(output_path),
        ]
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=300)
        if result.returncode != 0:
            raise SynthesisError(f"Failed to merge audio chunks: {result.stderr[:500]}")

    def _get_audio_duration(self, audio_path: Path) -> float:
        """Read audio duration with ffprobe."""
        cmd = [
            "ffprobe",
            "-v", "error",
            "-show_entries", "format=duration",
            "-of", "json",
            str(audio_path),
        ]
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=30)
        if result.returncode != 0:
            raise SynthesisError(f"ffprobe failed for {audio_path.name}: {result.stderr[:300]}")
        try:
            duration = float(json.loads(result.stdout)["format"]["duration"])
        except (KeyError, ValueError) as e:
            raise SynthesisError(f"Could not read narration duration: {e}") from e
        if duration <= 0:
            raise SynthesisError("Narration has zero duration")
        return duration
