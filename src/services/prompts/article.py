"""Article-to-script prompt templates.

Contains prompts for:
- ARTICLE_PROCESSOR_V1: Summary, key points, narration script and tags for one article
- QUERY_SIMPLIFIER_V1: Simpler stock-footage search phrase when a query finds nothing
"""

import re

# Article Processor prompt
# Template placeholders: {title}, {content}, {language}
ARTICLE_PROCESSOR_V1 = """You are a news editor preparing a short vertical video (TikTok / Reels) from a news article.

ARTICLE TITLE:
{title}

ARTICLE TEXT:
<<<
{content}
>>>

Write everything in {language}, adapted for a Kazakhstan audience.

Return one JSON object and nothing else:
{{
  "summary": "2-3 sentence summary of the article, no emoji",
  "keyPoints": ["key point 1", "key point 2", "key point 3"],
  "script": "narration script for the video",
  "tags": ["tag1", "tag2", "tag3", "tag4", "tag5"]
}}

SCRIPT RULES
- No emoji, no special symbols, no markdown
- Clear short sentences that read well as captions
- 30-60 seconds when read aloud
- Dynamic and informative, facts from the article only

TAG RULES
- One or two words each, concrete topics that stock footage can show
"""

# Query Simplifier prompt
# Template placeholders: {query}
QUERY_SIMPLIFIER_V1 = """A stock video search for the phrase below returned no results.

PHRASE: {query}

Rewrite it as a simpler English search phrase of 1-3 common words describing a
visual scene (for example "city traffic", "doctor hospital", "mountains").

Return only the phrase, no quotes, no explanation.
"""

_CODE_FENCE = re.compile(r"^```[\w-]*\s*\n?(.*?)\n?```$", re.DOTALL)


def strip_markdown_code_blocks(text: str) -> str:
    """Return the body of a fenced model response, or the text itself."""
    text = text.strip()
    match = _CODE_FENCE.match(text)
    return match.group(1).strip() if match else text
