"""SQLite-based persistent job storage for newstok.

One row per article URL. Updates issued by a pipeline run carry that run's
``run_id`` and are applied only while the row still belongs to the run, so
a run superseded by forced regeneration cannot overwrite the new run.
Uses aiosqlite for async database operations.
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import aiosqlite

from models.job import TRANSIENT_FIELDS, Job, JobStatus
from pipeline.errors import StorageError

logger = logging.getLogger(__name__)

# Default database path
DEFAULT_DB_PATH = ".newstok/jobs.db"

# Columns a pipeline run may write
UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "title",
        "content",
        "audio_path",
        "audio_duration",
        "video_path",
        "video_url",
        "video_duration",
        "video_size",
        "video_resolution",
        "has_subtitles",
        "error",
    }
)


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class JobStore:
    """Async SQLite job storage.

    Provides persistent storage for article jobs with async CRUD operations.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize job store with database path.

        Args:
            db_path: Path to SQLite database file. Parent directory
                     will be created if it doesn't exist.
        """
        self.db_path = Path(db_path)
        self.db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection and create schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self.db = await aiosqlite.connect(str(self.db_path))
            self.db.row_factory = aiosqlite.Row

            # Enable WAL mode for better concurrent read performance
            await self.db.execute("PRAGMA journal_mode=WAL")

            await self.db.execute("""
                CREATE TABLE IF NOT EXISTS jobs (
                    id TEXT PRIMARY KEY,
                    url TEXT NOT NULL UNIQUE,
                    status TEXT NOT NULL DEFAULT 'pending',
                    title TEXT,
                    content TEXT,
                    audio_path TEXT,
                    audio_duration REAL,
                    video_path TEXT,
                    video_url TEXT,
                    video_duration REAL,
                    video_size INTEGER,
                    video_resolution TEXT,
                    has_subtitles INTEGER NOT NULL DEFAULT 0,
                    error TEXT,
                    run_id TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            await self.db.execute("""
                CREATE INDEX IF NOT EXISTS idx_jobs_status
                ON jobs (status)
            """)

            await self.db.execute("""
                CREATE INDEX IF NOT EXISTS idx_jobs_created_at
                ON jobs (created_at DESC)
            """)

            await self.db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Cannot open job store at {self.db_path}: {e}") from e

        logger.info(f"Job store connected: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self.db:
            await self.db.close()
            self.db = None
            logger.info("Job store connection closed")

    def _require_db(self) -> aiosqlite.Connection:
        if self.db is None:
            raise StorageError("Database not connected. Call connect() first.")
        return self.db

    async def create_job(self, url: str, run_id: Optional[str] = None) -> tuple[Job, bool]:
        """Create a pending job for ``url`` unless one already exists.

        Args:
            url: Article URL (unique key)
            run_id: Run identifier assigned to the new job

        Returns:
            ``(job, created)``; ``created`` is False when the URL was
            already present and the existing job is returned unchanged
        """
        db = self._require_db()
        now = _utcnow()
        job_id = str(uuid.uuid4())

        try:
            cursor = await db.execute(
                "INSERT OR IGNORE INTO jobs (id, url, status, run_id, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (job_id, url, JobStatus.PENDING.value, run_id, now, now),
            )
            created = cursor.rowcount == 1
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to create job: {e}") from e

        job = await self.get_job_by_url(url)
        if job is None:
            raise StorageError(f"Job for {url} vanished after insert")

        if created:
            logger.info(f"Created job {job.id} for {url}")
        return job, created

    async def get_job(self, job_id: str) -> Job | None:
        """Get a job by ID."""
        return await self._fetch_one("SELECT * FROM jobs WHERE id = ?", (job_id,))

    async def get_job_by_url(self, url: str) -> Job | None:
        """Get a job by its article URL."""
        return await self._fetch_one("SELECT * FROM jobs WHERE url = ?", (url,))

    async def update_job(self, job_id: str, run_id: Optional[str] = None, **fields: Any) -> bool:
        """Update job fields.

        Args:
            job_id: Job identifier
            run_id: When given, the update only applies while the job is
                still owned by this run
            **fields: Column values to set

        Returns:
            True if a row was updated, False if the job is missing or owned
            by another run
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown job fields: {sorted(unknown)}")
        if not fields:
            return False

        db = self._require_db()
        values = {k: (v.value if isinstance(v, JobStatus) else v) for k, v in fields.items()}
        if "has_subtitles" in values:
            values["has_subtitles"] = int(bool(values["has_subtitles"]))
        values["updated_at"] = _utcnow()

        assignments = ", ".join(f"{column} = ?" for column in values)
        query = f"UPDATE jobs SET {assignments} WHERE id = ?"
        params: list[Any] = [*values.values(), job_id]
        if run_id is not None:
            query += " AND run_id = ?"
            params.append(run_id)

        try:
            cursor = await db.execute(query, params)
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to update job {job_id}: {e}") from e

        applied = cursor.rowcount == 1
        if applied:
            logger.debug(f"Updated job {job_id}: {sorted(fields)}")
        elif run_id is not None:
            logger.warning(f"Dropped update for job {job_id}: run {run_id} was superseded")
        return applied

    async def reset_job(self, job_id: str, run_id: str) -> Job | None:
        """Reset a job to pending for forced regeneration.

        Clears every transient field and hands the job to ``run_id``.
        """
        db = self._require_db()
        cleared = ", ".join(f"{column} = NULL" for column in TRANSIENT_FIELDS)

        try:
            await db.execute(
                f"UPDATE jobs SET status = ?, {cleared}, has_subtitles = 0, run_id = ?, "
                "updated_at = ? WHERE id = ?",
                (JobStatus.PENDING.value, run_id, _utcnow(), job_id),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to reset job {job_id}: {e}") from e

        logger.info(f"Reset job {job_id} for regeneration (run {run_id})")
        return await self.get_job(job_id)

    async def list_jobs(self, status: Optional[str] = None, limit: int = 20) -> list[Job]:
        """List jobs newest first, optionally filtered by status."""
        query = "SELECT * FROM jobs WHERE 1=1"
        params: list[Any] = []

        if status:
            query += " AND status = ?"
            params.append(status)

        query += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        params.append(limit)

        return await self._fetch_all(query, params)

    async def count_jobs(self, status: Optional[str] = None) -> int:
        """Get count of jobs, optionally filtered by status."""
        db = self._require_db()
        query = "SELECT COUNT(*) FROM jobs"
        params: list[Any] = []
        if status:
            query += " WHERE status = ?"
            params.append(status)

        try:
            async with db.execute(query, params) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to count jobs: {e}") from e
        return row[0] if row else 0

    async def fail_stale_jobs(self, older_than: datetime, error: str) -> int:
        """Move jobs stuck in processing since before ``older_than`` to error.

        Returns:
            Number of jobs marked as failed
        """
        db = self._require_db()
        try:
            cursor = await db.execute(
                "UPDATE jobs SET status = ?, error = ?, updated_at = ? "
                "WHERE status = ? AND updated_at < ?",
                (
                    JobStatus.ERROR.value,
                    error,
                    _utcnow(),
                    JobStatus.PROCESSING.value,
                    older_than.astimezone(timezone.utc).isoformat(),
                ),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to sweep stale jobs: {e}") from e
        return cursor.rowcount

    async def _fetch_one(self, query: str, params: tuple) -> Job | None:
        db = self._require_db()
        try:
            async with db.execute(query, params) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"Job store query failed: {e}") from e
        return self._row_to_job(row) if row is not None else None

    async def _fetch_all(self, query: str, params: list[Any]) -> list[Job]:
        db = self._require_db()
        try:
            async with db.execute(query, params) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageError(f"Job store query failed: {e}") from e
        return [self._row_to_job(row) for row in rows]

    def _row_to_job(self, row: aiosqlite.Row) -> Job:
        """Convert a database row to a Job."""
        return Job(
            id=row["id"],
            url=row["url"],
            status=JobStatus(row["status"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            title=row["title"],
            content=row["content"],
            audio_path=row["audio_path"],
            audio_duration=row["audio_duration"],
            video_path=row["video_path"],
            video_url=row["video_url"],
            video_duration=row["video_duration"],
            video_size=row["video_size"],
            video_resolution=row["video_resolution"],
            has_subtitles=bool(row["has_subtitles"]),
            error=row["error"],
            run_id=row["run_id"],
        )


# Module-level singleton
_job_store: JobStore | None = None


async def get_job_store(db_path: str = DEFAULT_DB_PATH) -> JobStore:
    """Get or create the global JobStore singleton.

    Creates the database connection if it doesn't exist.
    """
    global _job_store
    if _job_store is None:
        _job_store = JobStore(db_path)
        await _job_store.connect()
    return _job_store


async def close_job_store() -> None:
    """Close the global JobStore connection.

    Call this during application shutdown to properly close the database.
    """
    global _job_store
    if _job_store is not None:
        await _job_store.close()
        _job_store = None
