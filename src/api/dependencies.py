"""Service singletons and dependency injection for the newstok API."""

from pathlib import Path

from api.job_store import close_job_store, get_job_store
from pipeline.orchestrator import JobOrchestrator
from pipeline.segment_planner import SegmentPlanner
from pipeline.subtitle_builder import SubtitleBuilder
from pipeline.translations import TopicTranslator, load_topic_translations
from pipeline.video_assembler import VideoAssembler
from services.content_processor import ContentProcessor
from services.media_service import MediaService
from services.media_sources.pexels import PexelsMediaSource
from services.scraper import ArticleScraper
from services.storage import S3Storage
from services.transcription import TranscriptionService
from services.tts_service import TTSService
from utils.config import load_config, parse_resolution

# Service singletons
_config: dict | None = None
_translator: TopicTranslator | None = None
_scraper: ArticleScraper | None = None
_content_processor: ContentProcessor | None = None
_tts_service: TTSService | None = None
_media_service: MediaService | None = None
_storage: S3Storage | None = None
_transcription_service: TranscriptionService | None = None
_orchestrator: JobOrchestrator | None = None


def get_config() -> dict:
    """Get the loaded configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_translator() -> TopicTranslator:
    """Get the topic translation table (defaults plus optional JSON file)."""
    global _translator
    if _translator is None:
        config = get_config()
        _translator = TopicTranslator(load_topic_translations(config.get("topic_translations_file")))
    return _translator


def get_scraper() -> ArticleScraper:
    """Get or create the article scraper."""
    global _scraper
    if _scraper is None:
        _scraper = ArticleScraper()
    return _scraper


def get_content_processor() -> ContentProcessor:
    """Get or create the content processor instance."""
    global _content_processor
    if _content_processor is None:
        config = get_config()
        _content_processor = ContentProcessor(
            api_key=config.get("gemini_api_key", ""),
            model_name=config.get("gemini_model", "gemini-2.5-flash"),
            language=config.get("content_language", "Russian"),
        )
    return _content_processor


def get_tts_service() -> TTSService:
    """Get or create the TTS service instance."""
    global _tts_service
    if _tts_service is None:
        config = get_config()
        _tts_service = TTSService(
            api_key=config.get("elevenlabs_api_key", ""),
            output_dir=Path(config["audio_output_dir"]),
            voice_id=config["elevenlabs_voice_id"],
            model_id=config["elevenlabs_model"],
            stability=config["voice_stability"],
            similarity_boost=config["voice_similarity_boost"],
            chunk_max_chars=config["tts_chunk_max_chars"],
            max_total_chars=config["tts_max_total_chars"],
        )
    return _tts_service


def get_media_service() -> MediaService:
    """Get or create the media service instance."""
    global _media_service
    if _media_service is None:
        config = get_config()
        _media_service = MediaService(
            source=PexelsMediaSource(config.get("pexels_api_key", "")),
            translator=get_translator(),
            query_simplifier=get_content_processor().simplify_query,
            max_query_retries=config["media_max_query_retries"],
        )
    return _media_service


def get_storage() -> S3Storage | None:
    """Get the object storage uploader, or None when no bucket is configured."""
    global _storage
    config = get_config()
    if _storage is None and config.get("s3_bucket"):
        _storage = S3Storage(
            bucket_name=config["s3_bucket"],
            access_key_id=config.get("s3_access_key_id", ""),
            secret_access_key=config.get("s3_secret_access_key", ""),
            region=config.get("s3_region", "us-east-1"),
            endpoint_url=config.get("s3_endpoint_url"),
            public_url=config.get("s3_public_url"),
        )
    return _storage


def get_transcription_service() -> TranscriptionService | None:
    """Get the subtitle transcription service, or None without an API key."""
    global _transcription_service
    config = get_config()
    if _transcription_service is None and config.get("assemblyai_api_key"):
        _transcription_service = TranscriptionService(api_key=config["assemblyai_api_key"])
    return _transcription_service


async def get_orchestrator() -> JobOrchestrator:
    """Get or create the job orchestrator wired to all services."""
    global _orchestrator
    if _orchestrator is None:
        config = get_config()
        width, height = parse_resolution(config["video_resolution"])
        subtitle_builder = SubtitleBuilder(
            words_per_cue=config["subtitle_words_per_cue"],
            seconds_per_cue=config["subtitle_seconds_per_cue"],
        )
        _orchestrator = JobOrchestrator(
            job_store=await get_job_store(config["job_db_path"]),
            scraper=get_scraper(),
            content_processor=get_content_processor(),
            synthesizer=get_tts_service(),
            media_provider=get_media_service(),
            assembler=VideoAssembler(
                output_dir=Path(config["video_output_dir"]),
                width=width,
                height=height,
                watermark_text=config.get("watermark_text", ""),
                subtitle_builder=subtitle_builder,
            ),
            subtitle_builder=subtitle_builder,
            segment_planner=SegmentPlanner(
                translator=get_translator(),
                segment_seconds=config["segment_seconds"],
            ),
            uploader=get_storage(),
            source_domain=config["source_domain"],
            dynamic_video=config["dynamic_video"],
        )
    return _orchestrator


async def close_services() -> None:
    """Close HTTP clients and the job store."""
    global _scraper, _tts_service, _media_service, _transcription_service, _orchestrator
    if _scraper is not None:
        await _scraper.close()
        _scraper = None
    if _tts_service is not None:
        await _tts_service.close()
        _tts_service = None
    if _media_service is not None:
        await _media_service.close()
        _media_service = None
    if _transcription_service is not None:
        await _transcription_service.close()
        _transcription_service = None
    _orchestrator = None
    await close_job_store()
