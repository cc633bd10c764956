"""Job orchestration for the article-to-video pipeline.

``JobOrchestrator`` validates submissions, deduplicates them by URL and runs
each job as a detached asyncio task through a fixed sequence of stages:

    scrape -> content processing -> narration -> media search
    -> (segment planning) -> subtitles + assembly -> upload

Every stage persists its output before the next one starts. Any failure
moves the job to ``error`` with the exception message; nothing is retried
here, operators re-trigger with forced regeneration.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

from models.job import Job, JobHandle, JobStatus
from models.media import MediaItem, MediaSearchResult
from models.segment import ContentSegment
from pipeline.errors import (
    ContentGenerationError,
    InvalidInputError,
    JobNotFoundError,
    NoSuitableMediaError,
    ScrapeError,
    StorageError,
    SynthesisError,
)
from pipeline.segment_planner import SegmentPlanner
from pipeline.subtitle_builder import SubtitleBuilder
from pipeline.video_assembler import VideoAssembler
from services.media_service import select_best_video
from utils.logging import clear_job_context, set_job_context

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 100
SEGMENT_MEDIA_COUNT = 3

STALE_JOB_ERROR = "Interrupted: service restarted during processing"

# Detached pipeline runs; held here so they are not garbage collected.
# There is no cancellation path.
_background_tasks: set[asyncio.Task] = set()


class _RunSuperseded(Exception):
    """The job was handed to a newer run; this run stops quietly."""


class JobOrchestrator:
    """Coordinates pipeline runs and the job state machine.

    All collaborators are injected so they can be replaced with fakes.
    """

    def __init__(
        self,
        job_store,
        scraper,
        content_processor,
        synthesizer,
        media_provider,
        assembler: VideoAssembler,
        subtitle_builder: Optional[SubtitleBuilder] = None,
        segment_planner: Optional[SegmentPlanner] = None,
        uploader=None,
        source_domain: str = "the-steppe.com",
        dynamic_video: bool = False,
    ):
        self.job_store = job_store
        self.scraper = scraper
        self.content_processor = content_processor
        self.synthesizer = synthesizer
        self.media_provider = media_provider
        self.assembler = assembler
        self.subtitle_builder = subtitle_builder or SubtitleBuilder()
        self.segment_planner = segment_planner or SegmentPlanner()
        self.uploader = uploader
        self.source_domain = source_domain.lower().strip(".")
        self.dynamic_video = dynamic_video

    # ------------------------------------------------------------------
    # Submission and queries
    # ------------------------------------------------------------------

    def validate_url(self, url: Optional[str]) -> str:
        """Check that ``url`` is an http(s) URL on the source domain.

        Raises:
            InvalidInputError: If the URL is missing or points elsewhere
        """
        if not url or not url.strip():
            raise InvalidInputError("URL is required")

        url = url.strip()
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise InvalidInputError(f"Invalid URL: {url}")

        host = parsed.hostname.lower()
        if host != self.source_domain and not host.endswith("." + self.source_domain):
            raise InvalidInputError(f"Only {self.source_domain} articles are supported")
        return url

    async def submit(self, url: Optional[str], force: bool = False) -> JobHandle:
        """Create (or restart) the job for an article URL and schedule a run.

        Returns immediately; the pipeline runs in the background.
        """
        url = self.validate_url(url)
        existing = await self.job_store.get_job_by_url(url)

        if existing is not None and not force:
            logger.info(f"Job {existing.id} already exists for {url} ({existing.status.value})")
            return JobHandle(
                job_id=existing.id,
                status=existing.status,
                created=False,
                video_url=existing.video_url,
                message="Job already exists for this URL",
            )

        run_id = uuid.uuid4().hex
        if existing is not None:
            job = await self.job_store.reset_job(existing.id, run_id)
            if job is None:
                raise JobNotFoundError(f"Job {existing.id} not found")
            message = "Video regeneration started"
        else:
            job, created = await self.job_store.create_job(url, run_id)
            if not created:
                # A concurrent submission inserted the URL first
                return JobHandle(
                    job_id=job.id,
                    status=job.status,
                    created=False,
                    video_url=job.video_url,
                    message="Job already exists for this URL",
                )
            message = "Video generation started"

        self._schedule(job.id, run_id)
        return JobHandle(job_id=job.id, status=job.status, created=True, message=message)

    def _schedule(self, job_id: str, run_id: str) -> None:
        task = asyncio.create_task(self.run(job_id, run_id), name=f"pipeline-{job_id}")
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        logger.info(f"Scheduled pipeline run {run_id} for job {job_id}")

    async def get_status(self, job_id: str) -> Job:
        """Return the persisted snapshot of a job.

        Raises:
            JobNotFoundError: If no such job exists
        """
        job = await self.job_store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    @staticmethod
    def _normalize_status(status: Optional[str]) -> Optional[str]:
        if not status:
            return None
        try:
            return JobStatus(status).value
        except ValueError:
            allowed = ", ".join(s.value for s in JobStatus)
            raise InvalidInputError(f"Unknown status '{status}', expected one of: {allowed}")

    async def list_jobs(self, status: Optional[str] = None, limit: int = DEFAULT_LIST_LIMIT) -> list[Job]:
        """List jobs newest first, optionally filtered by status."""
        status = self._normalize_status(status)
        limit = max(1, min(int(limit), MAX_LIST_LIMIT))
        return await self.job_store.list_jobs(status=status, limit=limit)

    async def count_jobs(self, status: Optional[str] = None) -> int:
        """Number of stored jobs, optionally filtered by status."""
        return await self.job_store.count_jobs(status=self._normalize_status(status))

    async def recover_stale_jobs(self, max_age_minutes: int) -> int:
        """Fail jobs left in processing by a previous process.

        Work is not resumed; the jobs can be re-run with forced regeneration.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(minutes=max_age_minutes)
        count = await self.job_store.fail_stale_jobs(cutoff, STALE_JOB_ERROR)
        if count:
            logger.warning(f"Marked {count} stale processing jobs as failed")
        return count

    async def wait_for_background_tasks(self) -> None:
        """Wait for all in-flight pipeline runs to finish."""
        while _background_tasks:
            await asyncio.gather(*list(_background_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Pipeline run
    # ------------------------------------------------------------------

    async def run(self, job_id: str, run_id: str) -> None:
        """Execute all pipeline stages for one job."""
        set_job_context(job_id, run_id)
        try:
            await self._execute(job_id, run_id)
        except _RunSuperseded:
            logger.info(f"Run {run_id} stopped: job {job_id} was restarted")
        except Exception as e:
            logger.exception(f"Job {job_id} failed: {e}")
            try:
                await self.job_store.update_job(
                    job_id, run_id=run_id, status=JobStatus.ERROR, error=str(e)
                )
            except StorageError as store_error:
                logger.error(f"Could not record failure of job {job_id}: {store_error}")
        finally:
            clear_job_context()

    async def _save(self, job_id: str, run_id: str, **fields: Any) -> None:
        if not await self.job_store.update_job(job_id, run_id=run_id, **fields):
            raise _RunSuperseded()

    async def _execute(self, job_id: str, run_id: str) -> None:
        job = await self.get_status(job_id)
        await self._save(job_id, run_id, status=JobStatus.PROCESSING)
        logger.info(f"Processing {job.url}")

        # Scrape
        article = await self.scraper.scrape(job.url)
        if article is None:
            raise ScrapeError("Failed to scrape article content")
        await self._save(job_id, run_id, title=article.title, content=article.text)
        logger.info(f"Scraped article: {article.title[:60]!r} ({len(article.text)} chars)")

        # Script
        try:
            processed = await self.content_processor.process(article.title, article.text)
        except ContentGenerationError:
            raise
        except Exception as e:
            raise ContentGenerationError(f"Content generation failed: {e}") from e
        logger.info(
            f"Script ready: {len(processed.script)} chars, "
            f"{len(processed.key_points)} key points, tags={processed.tags}"
        )

        # Narration
        try:
            voice = await self.synthesizer.synthesize(processed.script)
        except SynthesisError:
            raise
        except Exception as e:
            raise SynthesisError(f"Voice generation failed: {e}") from e
        if voice is None:
            raise SynthesisError("Voice generation returned no audio")
        await self._save(
            job_id, run_id, audio_path=voice.audio_path, audio_duration=voice.duration
        )

        # Background media
        media = await self.media_provider.get_media_for_article(
            article.title, processed.key_points, processed.tags
        )
        background = select_best_video(media)
        if background is None:
            raise NoSuitableMediaError("No suitable background video found")
        logger.info(
            f"Selected background {background.id} ({background.duration}s, {background.quality})"
        )

        segments: Optional[list[ContentSegment]] = None
        if self.dynamic_video:
            segments = self.segment_planner.plan(
                processed.script, processed.key_points, voice.duration
            )
            for segment in segments:
                segment.media = await self._resolve_segment_media(segment)

        # Assembly
        cues = self.subtitle_builder.build(processed.script, voice.duration)
        video = await self.assembler.assemble(
            background,
            voice.audio_path,
            voice.duration,
            subtitle_cues=cues,
            segments=segments or None,
            output_name=f"{job_id}_{run_id[:8]}.mp4",
        )
        await self._save(
            job_id,
            run_id,
            video_path=video.video_path,
            video_duration=video.duration,
            video_size=video.size,
            video_resolution=video.resolution,
            has_subtitles=video.has_subtitles,
        )

        # Publish
        if self.uploader is not None:
            video_url = await self.uploader.upload_file(video.video_path)
        else:
            video_url = Path(video.video_path).resolve().as_uri()
        await self._save(job_id, run_id, status=JobStatus.DONE, video_url=video_url)
        logger.info(f"Job {job_id} done: {video_url}")

    async def _resolve_segment_media(self, segment: ContentSegment) -> Optional[MediaItem]:
        """Find one clip for a segment; failures leave the segment to fall back."""
        try:
            candidates = await self.media_provider.search(segment.search_query, SEGMENT_MEDIA_COUNT)
        except Exception as e:
            logger.warning(f"Segment media search failed for {segment.search_query!r}: {e}")
            return None
        return select_best_video(
            MediaSearchResult(videos=candidates, search_query=segment.search_query)
        )
