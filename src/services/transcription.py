"""Subtitle transcription of narration audio via the AssemblyAI API."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import httpx

from pipeline.errors import TranscriptionError
from utils.retry import APIRateLimitError, NetworkError, TemporaryServiceError, retry_api_call

logger = logging.getLogger(__name__)

ASSEMBLYAI_API_BASE = "https://api.assemblyai.com/v2"
SUBTITLE_FORMATS = ("srt", "vtt")


class TranscriptionService:
    """Uploads audio, requests a transcript and returns subtitle text."""

    def __init__(
        self,
        api_key: str,
        language_code: str = "ru",
        poll_interval: float = 3.0,
        max_polls: int = 100,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.language_code = language_code
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.client = client or httpx.AsyncClient(
            base_url=ASSEMBLYAI_API_BASE, timeout=120.0
        )

    async def close(self) -> None:
        await self.client.aclose()

    @property
    def headers(self) -> dict:
        return {"authorization": self.api_key}

    @retry_api_call(max_retries=3, base_delay=2.0)
    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, headers=self.headers, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"AssemblyAI connection failed: {e}") from e

        if response.status_code == 429:
            raise APIRateLimitError("AssemblyAI rate limit exceeded")
        if response.status_code >= 500:
            raise TemporaryServiceError(f"AssemblyAI server error: {response.status_code}")
        if response.status_code >= 400:
            raise TranscriptionError(
                f"AssemblyAI returned {response.status_code}: {response.text[:300]}"
            )
        return response

    async def transcribe(self, audio_path: str | Path, subtitle_format: str = "srt") -> str:
        """Transcribe an audio file into subtitle text.

        Args:
            audio_path: Local narration file
            subtitle_format: "srt" or "vtt"

        Returns:
            Subtitle file content

        Raises:
            TranscriptionError: On provider errors or when polling runs out
        """
        if subtitle_format not in SUBTITLE_FORMATS:
            raise TranscriptionError(
                f"Unsupported file format: {subtitle_format}. Please specify 'srt' or 'vtt'."
            )
        if not self.api_key:
            raise TranscriptionError("AssemblyAI API key is required")

        audio_path = Path(audio_path)
        if not audio_path.is_file():
            raise TranscriptionError(f"Audio file not found: {audio_path}")

        try:
            audio_data = await asyncio.to_thread(audio_path.read_bytes)
            upload = await self._request("POST", "/upload", content=audio_data)
            upload_url = upload.json()["upload_url"]

            created = await self._request(
                "POST",
                "/transcript",
                json={"audio_url": upload_url, "language_code": self.language_code},
            )
            transcript_id = created.json()["id"]
            logger.info(f"Transcription {transcript_id} started for {audio_path.name}")

            await self._wait_for_completion(transcript_id)

            subtitles = await self._request("GET", f"/transcript/{transcript_id}/{subtitle_format}")
        except TranscriptionError:
            raise
        except (KeyError, ValueError) as e:
            raise TranscriptionError(f"Unexpected AssemblyAI response: {e}") from e
        except Exception as e:
            raise TranscriptionError(f"Transcription failed: {e}") from e

        logger.info(f"Transcription {transcript_id} completed")
        return subtitles.text

    async def _wait_for_completion(self, transcript_id: str) -> None:
        for _ in range(self.max_polls):
            response = await self._request("GET", f"/transcript/{transcript_id}")
            result = response.json()
            status = result.get("status")

            if status == "completed":
                return
            if status == "error":
                raise TranscriptionError(f"Transcription failed: {result.get('error')}")

            await asyncio.sleep(self.poll_interval)

        raise TranscriptionError(
            f"Transcription {transcript_id} not completed after {self.max_polls} polls"
        )
