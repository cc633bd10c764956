"""Prompt templates for the Gemini calls made by the content processor.

    from services.prompts import ARTICLE_PROCESSOR_V1, strip_markdown_code_blocks
"""

from services.prompts.article import (
    ARTICLE_PROCESSOR_V1,
    QUERY_SIMPLIFIER_V1,
    strip_markdown_code_blocks,
)

# Bump when a template changes; logged with each processed article
PROMPT_VERSIONS = {
    "process_article": "v1",
    "simplify_query": "v1",
}

__all__ = [
    "ARTICLE_PROCESSOR_V1",
    "PROMPT_VERSIONS",
    "QUERY_SIMPLIFIER_V1",
    "strip_markdown_code_blocks",
]
