"""Shared pytest fixtures for newstok tests."""

import asyncio
import sys
import tempfile
from pathlib import Path
from typing import Dict, Generator, Optional

import pytest
import pytest_asyncio

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from api.job_store import JobStore
from models.content import Article, ProcessedContent
from models.media import MediaItem, MediaSearchResult
from models.video import VideoResult, VoiceResult
from pipeline.orchestrator import JobOrchestrator

SOURCE_DOMAIN = "example-source.com"
ARTICLE_URL = "https://example-source.com/articles/sample"

# Minimal MP3 frame header bytes
MP3_BYTES = b"ID3" + b"\x00" * 64


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config(temp_dir) -> Dict:
    """Sample configuration for testing."""
    return {
        "gemini_api_key": "test_gemini_key",
        "gemini_model": "gemini-2.5-flash",
        "content_language": "Russian",
        "elevenlabs_api_key": "test_elevenlabs_key",
        "elevenlabs_voice_id": "voice123",
        "elevenlabs_model": "eleven_multilingual_v2",
        "voice_stability": 0.7,
        "voice_similarity_boost": 0.8,
        "tts_chunk_max_chars": 2500,
        "tts_max_total_chars": 10000,
        "pexels_api_key": "test_pexels_key",
        "media_max_query_retries": 3,
        "topic_translations_file": "",
        "source_domain": SOURCE_DOMAIN,
        "job_db_path": str(temp_dir / "jobs.db"),
        "video_output_dir": str(temp_dir / "videos"),
        "audio_output_dir": str(temp_dir / "audio"),
        "video_resolution": "1080x1920",
        "watermark_text": "NEWSTOK",
        "dynamic_video": False,
        "segment_seconds": 4.0,
        "subtitle_words_per_cue": 3,
        "subtitle_seconds_per_cue": 2.0,
        "stale_job_minutes": 30,
        "s3_bucket": "",
        "assemblyai_api_key": "",
        "log_level": "INFO",
        "log_json": False,
    }


@pytest.fixture
def sample_article() -> Article:
    return Article(
        title="Жара и бег: готово ли ваше сердце к марафону",
        text=(
            "Летняя жара создает дополнительную нагрузку на сердце бегунов. "
            "Врачи советуют снижать темп и пить больше воды во время тренировки. "
        )
        * 4,
    )


@pytest.fixture
def sample_processed() -> ProcessedContent:
    return ProcessedContent(
        summary="Жара повышает нагрузку на сердце во время бега.",
        script=(
            "Летом бегать тяжелее. Жара нагружает сердце. "
            "Врачи советуют снижать темп. Пейте больше воды."
        ),
        key_points=["жара", "сердце", "бег"],
        tags=["здоровье", "спорт"],
    )


def make_video(
    item_id: str = "pexels_video_1",
    duration: Optional[float] = 30.0,
    tags: Optional[list[str]] = None,
    quality: str = "hd",
    url: str = "https://videos.example.com/1.mp4",
) -> MediaItem:
    return MediaItem(
        id=item_id,
        url=url,
        preview_url="https://images.example.com/1.jpg",
        type="video",
        tags=tags if tags is not None else ["running", "summer"],
        quality=quality,
        duration=duration,
    )


# =============================================================================
# Fake pipeline collaborators
# =============================================================================


class FakeScraper:
    """Returns a fixed article; optionally blocks the first call on a gate."""

    def __init__(self, article: Optional[Article], gate: Optional[asyncio.Event] = None):
        self.article = article
        self.gate = gate
        self.calls: list[str] = []

    async def scrape(self, url: str) -> Optional[Article]:
        self.calls.append(url)
        if self.gate is not None and len(self.calls) == 1:
            await self.gate.wait()
        return self.article


class FakeContentProcessor:
    def __init__(self, processed: ProcessedContent, error: Optional[Exception] = None):
        self.processed = processed
        self.error = error

    async def process(self, title: str, body_text: str) -> ProcessedContent:
        if self.error is not None:
            raise self.error
        return self.processed


class FakeSynthesizer:
    """Writes a small MP3 file and reports a fixed duration."""

    def __init__(self, output_dir: Path, duration: float = 8.0, empty: bool = False):
        self.output_dir = output_dir
        self.duration = duration
        self.empty = empty
        self.scripts: list[str] = []

    async def synthesize(self, script: str) -> Optional[VoiceResult]:
        self.scripts.append(script)
        if self.empty:
            return None
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"audio_{len(self.scripts)}.mp3"
        path.write_bytes(MP3_BYTES)
        return VoiceResult(audio_path=str(path), duration=self.duration)


class FakeMediaProvider:
    def __init__(self, videos: Optional[list[MediaItem]] = None, segment_error: bool = False):
        self.videos = [make_video()] if videos is None else videos
        self.segment_error = segment_error
        self.searches: list[str] = []

    async def get_media_for_article(self, title, key_points, tags) -> MediaSearchResult:
        return MediaSearchResult(videos=list(self.videos), search_query=title)

    async def search(self, query: str, count: int) -> list[MediaItem]:
        self.searches.append(query)
        if self.segment_error and len(self.searches) == 1:
            raise RuntimeError("stock search unavailable")
        return [make_video(item_id=f"pexels_video_seg{len(self.searches)}")]


class FakeAssembler:
    """Writes a placeholder file instead of running FFmpeg."""

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self.calls: list[dict] = []

    async def assemble(
        self,
        background,
        audio_path,
        audio_duration,
        subtitle_cues=None,
        segments=None,
        output_name=None,
    ) -> VideoResult:
        self.calls.append(
            {
                "background": background,
                "audio_path": audio_path,
                "audio_duration": audio_duration,
                "subtitle_cues": subtitle_cues,
                "segments": segments,
                "output_name": output_name,
            }
        )
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / (output_name or "video.mp4")
        path.write_bytes(b"\x00" * 2048)
        return VideoResult(
            video_path=str(path),
            duration=audio_duration,
            size=2048,
            resolution="1080x1920",
            has_subtitles=bool(subtitle_cues),
        )


class FakeUploader:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.uploaded: list[str] = []

    async def upload_file(self, local_path, key=None) -> str:
        if self.error is not None:
            raise self.error
        self.uploaded.append(str(local_path))
        return f"https://cdn.example.com/videos/{Path(local_path).name}"


@pytest_asyncio.fixture
async def job_store(temp_dir) -> JobStore:
    """Connected job store on a temporary SQLite file."""
    store = JobStore(str(temp_dir / "jobs.db"))
    await store.connect()
    yield store
    await store.close()


@pytest.fixture
def make_orchestrator(job_store, temp_dir, sample_article, sample_processed):
    """Factory building an orchestrator over fakes; keyword args replace collaborators."""

    def factory(**overrides) -> JobOrchestrator:
        collaborators = {
            "job_store": job_store,
            "scraper": FakeScraper(sample_article),
            "content_processor": FakeContentProcessor(sample_processed),
            "synthesizer": FakeSynthesizer(temp_dir / "audio"),
            "media_provider": FakeMediaProvider(),
            "assembler": FakeAssembler(temp_dir / "videos"),
            "source_domain": SOURCE_DOMAIN,
        }
        collaborators.update(overrides)
        return JobOrchestrator(**collaborators)

    return factory
