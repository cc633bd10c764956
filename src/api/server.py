#!/usr/bin/env python
"""FastAPI server for the newstok article-to-video service."""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Add src directory to Python path for imports
src_dir = Path(__file__).parent.parent
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from api.dependencies import close_services, get_config, get_orchestrator
from api.routers import articles, core
from api.routers.core import API_VERSION
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pipeline.errors import (
    InvalidInputError,
    JobNotFoundError,
    PipelineError,
    StorageError,
    SynthesisError,
    TranscriptionError,
)
from utils.config import validate_config
from utils.logging import setup_logging

logger = logging.getLogger(__name__)

# Domain error -> HTTP status
ERROR_STATUS_CODES: dict[type[PipelineError], int] = {
    InvalidInputError: 400,
    JobNotFoundError: 404,
    StorageError: 503,
    TranscriptionError: 502,
    SynthesisError: 502,
}


def status_code_for(error: PipelineError) -> int:
    """HTTP status for a domain error, 500 for anything unmapped."""
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    setup_logging(config["log_level"], json_output=config["log_json"])
    for problem in validate_config(config):
        logger.warning(f"Configuration: {problem}")

    orchestrator = await get_orchestrator()
    await orchestrator.recover_stale_jobs(config["stale_job_minutes"])
    logger.info("NewsTok API started")

    yield

    await close_services()
    logger.info("NewsTok API stopped")


app = FastAPI(title="NewsTok API", version=API_VERSION, lifespan=lifespan)

# CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


app.include_router(core.router)
app.include_router(articles.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
