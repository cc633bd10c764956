"""Configuration loading and validation for newstok."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def load_config() -> dict:
    """Load configuration from environment variables."""

    # Helper function to resolve paths relative to project root
    def resolve_path(path: str | None, default_relative: str) -> str:
        if not path:
            return str(PROJECT_ROOT / default_relative)
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    config = {
        # Content processing (Gemini)
        "gemini_api_key": os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
        "gemini_model": os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        "content_language": os.getenv("CONTENT_LANGUAGE", "Russian"),
        # Narration (ElevenLabs)
        "elevenlabs_api_key": os.getenv("ELEVENLABS_API_KEY"),
        "elevenlabs_voice_id": os.getenv("ELEVENLABS_VOICE_ID", "pNInz6obpgDQGcFmaJgB"),
        "elevenlabs_model": os.getenv("ELEVENLABS_MODEL", "eleven_multilingual_v2"),
        "voice_stability": float(os.getenv("VOICE_STABILITY", "0.7")),
        "voice_similarity_boost": float(os.getenv("VOICE_SIMILARITY_BOOST", "0.8")),
        "tts_chunk_max_chars": int(os.getenv("TTS_CHUNK_MAX_CHARS", "2500")),
        "tts_max_total_chars": int(os.getenv("TTS_MAX_TOTAL_CHARS", "10000")),
        # Stock media (Pexels)
        "pexels_api_key": os.getenv("PEXELS_API_KEY") or os.getenv("PEXELS_API"),
        "media_max_query_retries": int(os.getenv("MEDIA_MAX_QUERY_RETRIES", "3")),
        "topic_translations_file": os.getenv("TOPIC_TRANSLATIONS_FILE"),
        # Accepted article source
        "source_domain": os.getenv("SOURCE_DOMAIN", "the-steppe.com"),
        # Storage locations
        "job_db_path": resolve_path(os.getenv("JOB_DB_PATH"), ".newstok/jobs.db"),
        "video_output_dir": resolve_path(os.getenv("VIDEO_OUTPUT_DIR"), "videos"),
        "audio_output_dir": resolve_path(os.getenv("AUDIO_OUTPUT_DIR"), "audio"),
        # Assembly
        "video_resolution": os.getenv("VIDEO_RESOLUTION", "1080x1920"),
        "watermark_text": os.getenv("WATERMARK_TEXT", "NewsTok"),
        "dynamic_video": _env_bool("DYNAMIC_VIDEO"),
        "segment_seconds": float(os.getenv("SEGMENT_SECONDS", "4")),
        "subtitle_words_per_cue": int(os.getenv("SUBTITLE_WORDS_PER_CUE", "3")),
        "subtitle_seconds_per_cue": float(os.getenv("SUBTITLE_SECONDS_PER_CUE", "2")),
        # Startup sweep for jobs stuck in processing
        "stale_job_minutes": int(os.getenv("STALE_JOB_MINUTES", "60")),
        # Object storage (S3-compatible, optional)
        "s3_bucket": os.getenv("S3_BUCKET") or os.getenv("AWS_BUCKET_NAME"),
        "s3_region": os.getenv("S3_REGION") or os.getenv("AWS_REGION", "us-east-1"),
        "s3_endpoint_url": os.getenv("S3_ENDPOINT_URL"),
        "s3_access_key_id": os.getenv("S3_ACCESS_KEY_ID") or os.getenv("AWS_ACCESS_KEY_ID"),
        "s3_secret_access_key": os.getenv("S3_SECRET_ACCESS_KEY")
        or os.getenv("AWS_SECRET_ACCESS_KEY"),
        "s3_public_url": os.getenv("S3_PUBLIC_URL"),
        # Subtitle transcription (AssemblyAI, optional)
        "assemblyai_api_key": os.getenv("ASSEMBLYAI_API_KEY") or os.getenv("SUBTITLES_API"),
        # Logging
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_json": _env_bool("LOG_JSON"),
    }

    return config


def parse_resolution(resolution: str) -> tuple[int, int]:
    """Parse a ``WxH`` resolution string into integers."""
    try:
        width_str, height_str = resolution.lower().split("x")
        width, height = int(width_str), int(height_str)
    except ValueError as e:
        raise ValueError(f"Invalid resolution '{resolution}', expected WxH") from e
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid resolution '{resolution}', dimensions must be positive")
    return width, height


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of errors."""
    errors = []

    if not config.get("gemini_api_key"):
        errors.append("GEMINI_API_KEY is required")

    if not config.get("elevenlabs_api_key"):
        errors.append("ELEVENLABS_API_KEY is required")

    if not config.get("pexels_api_key"):
        errors.append("PEXELS_API_KEY is required")

    if not config.get("source_domain"):
        errors.append("SOURCE_DOMAIN must not be empty")

    try:
        parse_resolution(config.get("video_resolution", ""))
    except ValueError as e:
        errors.append(str(e))

    if config.get("tts_chunk_max_chars", 0) <= 0:
        errors.append("TTS_CHUNK_MAX_CHARS must be positive")
    elif config.get("tts_max_total_chars", 0) < config["tts_chunk_max_chars"]:
        errors.append("TTS_MAX_TOTAL_CHARS must be at least TTS_CHUNK_MAX_CHARS")

    if config.get("segment_seconds", 0) <= 0:
        errors.append("SEGMENT_SECONDS must be positive")

    # Object storage is optional, but partial configuration is a mistake
    if config.get("s3_bucket") and not (
        config.get("s3_access_key_id") and config.get("s3_secret_access_key")
    ):
        errors.append("S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY required when S3_BUCKET is set")

    for key in ("video_output_dir", "audio_output_dir"):
        try:
            Path(config[key]).mkdir(parents=True, exist_ok=True)
        except Exception as e:
            errors.append(f"Cannot create {key}: {e}")

    return errors
