#!/usr/bin/env python3
"""Command line entry point for newstok.

Usage:
    # Run the HTTP API
    python src/main.py serve --port 8000

    # Generate a video for one article and wait for it
    python src/main.py generate https://the-steppe.com/novosti/zhara-i-beg

    # Inspect jobs
    python src/main.py status <job_id>
    python src/main.py jobs --status error
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from rich.console import Console
from rich.table import Table

from api.dependencies import close_services, get_config, get_orchestrator
from models.job import Job, JobStatus
from pipeline.errors import PipelineError
from utils.config import validate_config
from utils.logging import setup_logging

logger = logging.getLogger(__name__)

console = Console()

STATUS_STYLES = {
    JobStatus.PENDING: "dim",
    JobStatus.PROCESSING: "yellow",
    JobStatus.DONE: "green",
    JobStatus.ERROR: "red",
}


def print_job(job: Job) -> None:
    """Display one job as a key/value table."""
    table = Table(title=f"Job {job.id}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    style = STATUS_STYLES.get(job.status, "")
    table.add_row("Status", f"[{style}]{job.status.value}[/{style}]" if style else job.status.value)
    table.add_row("URL", job.url)
    if job.title:
        table.add_row("Title", job.title)
    if job.audio_duration is not None:
        table.add_row("Narration", f"{job.audio_duration:.1f}s")
    if job.video_resolution:
        table.add_row("Video", f"{job.video_resolution}, {job.video_duration or 0:.1f}s")
    if job.video_url:
        table.add_row("Video URL", job.video_url)
    if job.error:
        table.add_row("Error", f"[red]{job.error}[/red]")
    console.print(table)


def print_jobs(jobs: list[Job]) -> None:
    """Display a job listing."""
    table = Table(title=f"Jobs ({len(jobs)})")
    table.add_column("ID", style="dim")
    table.add_column("Status")
    table.add_column("URL")
    table.add_column("Updated")

    for job in jobs:
        style = STATUS_STYLES.get(job.status, "")
        table.add_row(job.id, f"[{style}]{job.status.value}[/{style}]", job.url, job.updated_at)
    console.print(table)


async def generate(url: str, force: bool) -> int:
    """Run the pipeline for one article in-process."""
    orchestrator = await get_orchestrator()
    try:
        handle = await orchestrator.submit(url, force=force)
        console.print(f"[bold blue]{handle.message}[/bold blue] ({handle.job_id})")
        if handle.created:
            with console.status("Generating video..."):
                await orchestrator.wait_for_background_tasks()
        job = await orchestrator.get_status(handle.job_id)
    finally:
        await close_services()

    print_job(job)
    return 0 if job.status != JobStatus.ERROR else 1


async def show_status(job_id: str) -> int:
    orchestrator = await get_orchestrator()
    try:
        job = await orchestrator.get_status(job_id)
    finally:
        await close_services()
    print_job(job)
    return 0


async def show_jobs(status: str | None, limit: int) -> int:
    orchestrator = await get_orchestrator()
    try:
        jobs = await orchestrator.list_jobs(status=status, limit=limit)
    finally:
        await close_services()
    print_jobs(jobs)
    return 0


def serve(host: str, port: int) -> int:
    import uvicorn

    from api.server import app

    uvicorn.run(app, host=host, port=port, log_level="info")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="newstok",
        description="Turn news articles into short vertical videos",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)

    generate_parser = subparsers.add_parser("generate", help="Generate a video for an article URL")
    generate_parser.add_argument("url")
    generate_parser.add_argument(
        "--force", action="store_true", help="Regenerate even if a job exists for the URL"
    )

    status_parser = subparsers.add_parser("status", help="Show one job")
    status_parser.add_argument("job_id")

    jobs_parser = subparsers.add_parser("jobs", help="List recent jobs")
    jobs_parser.add_argument("--status", choices=[s.value for s in JobStatus])
    jobs_parser.add_argument("--limit", type=int, default=20)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        return serve(args.host, args.port)

    config = get_config()
    setup_logging(config["log_level"], json_output=config["log_json"])

    if args.command == "generate":
        problems = validate_config(config)
        if problems:
            for problem in problems:
                console.print(f"[red]✗ {problem}[/red]")
            return 2

    try:
        if args.command == "generate":
            return asyncio.run(generate(args.url, args.force))
        if args.command == "status":
            return asyncio.run(show_status(args.job_id))
        return asyncio.run(show_jobs(args.status, args.limit))
    except PipelineError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
