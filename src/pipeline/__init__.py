"""Article-to-video pipeline stages and job orchestration."""
