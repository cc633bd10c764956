"""Error taxonomy for the article-to-video pipeline.

Synchronous validation errors (``InvalidInputError``, ``JobNotFoundError``)
surface to the caller directly. Stage errors are raised inside a pipeline
run and recorded on the job by the orchestrator.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    pass


class InvalidInputError(PipelineError):
    """Raised when a submission or query parameter fails validation."""

    pass


class JobNotFoundError(PipelineError):
    """Raised when a job id does not exist in the job store."""

    pass


class ScrapeError(PipelineError):
    """Raised when the article scraper returns no usable content."""

    pass


class ContentGenerationError(PipelineError):
    """Raised when the LLM fails to produce a usable script payload."""

    pass


class SynthesisError(PipelineError):
    """Raised when narration synthesis fails or input exceeds the hard cap."""

    pass


class NoSuitableMediaError(PipelineError):
    """Raised when no background video can be found for the article."""

    pass


class AssemblyError(PipelineError):
    """Raised when FFmpeg muxing or the produced artifact check fails."""

    pass


class StorageError(PipelineError):
    """Raised when the job store or object storage is unavailable."""

    pass


class TranscriptionError(PipelineError):
    """Raised when the subtitle transcription provider fails."""

    pass
