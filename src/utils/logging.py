"""Structured logging configuration for newstok.

structlog renders both structlog and plain ``logging`` records. While a
pipeline run is active every event carries its job id and run id.
"""

import logging
import sys
from contextvars import ContextVar

import structlog

# (job_id, run_id) of the pipeline run owning the current task
current_run: ContextVar[tuple[str, str | None] | None] = ContextVar("current_run", default=None)

NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "aiohttp.access",
    "google_genai",
    "google_genai.models",
    "botocore",
    "boto3",
    "urllib3.connectionpool",
    "aiosqlite",
)


def add_job_id(_logger, _method_name, event_dict):
    """Structlog processor injecting the active job and run ids."""
    run = current_run.get()
    if run is not None:
        job_id, run_id = run
        event_dict["job_id"] = job_id
        if run_id:
            event_dict["run_id"] = run_id[:8]
    return event_dict


def _renderer(json_output: bool):
    if json_output:
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level name; unknown names fall back to INFO
        json_output: Emit one JSON object per line instead of console output
    """
    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_job_id,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_output),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_job_context(job_id: str, run_id: str | None = None) -> None:
    """Tag subsequent log events in this task with a pipeline run."""
    current_run.set((job_id, run_id))


def clear_job_context() -> None:
    current_run.set(None)
