"""Unit tests for run-scoped logging context."""

import logging

import pytest
from utils.logging import add_job_id, clear_job_context, set_job_context, setup_logging


@pytest.mark.unit
def test_job_and_run_ids_added_while_context_set():
    set_job_context("job-42", "0123456789abcdef")
    try:
        event = add_job_id(None, "info", {"event": "Scraped article"})
    finally:
        clear_job_context()

    assert event["job_id"] == "job-42"
    assert event["run_id"] == "01234567"


@pytest.mark.unit
def test_run_id_optional():
    set_job_context("job-42")
    try:
        event = add_job_id(None, "info", {"event": "Scraped article"})
    finally:
        clear_job_context()

    assert event == {"event": "Scraped article", "job_id": "job-42"}


@pytest.mark.unit
def test_no_ids_without_context():
    clear_job_context()

    assert "job_id" not in add_job_id(None, "info", {"event": "startup"})


@pytest.mark.unit
def test_setup_logging_unknown_level_falls_back_to_info():
    setup_logging("LOUD")

    root = logging.getLogger()
    assert root.level == logging.INFO
    assert len(root.handlers) == 1
    assert logging.getLogger("httpx").level == logging.WARNING
