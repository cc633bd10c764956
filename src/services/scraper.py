"""Scrape a news article page into a title and body text."""

import logging
import re
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from models.content import Article

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)

_FETCH_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept-Language": "ru-RU,ru;q=0.9,en;q=0.8",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

REQUEST_TIMEOUT = 30.0

MIN_PARAGRAPH_CHARS = 50
MIN_TITLE_CHARS = 10
MIN_TEXT_CHARS = 200

# Paragraphs containing any of these are page chrome, not article text
BOILERPLATE_MARKERS = (
    "GMT+05",
    "минут",
    "Подписаться",
    "Поделись",
    "© 2024",
    "STEPPE",
)


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _is_body_paragraph(text: str) -> bool:
    if len(text) <= MIN_PARAGRAPH_CHARS or text.isdigit():
        return False
    return not any(marker in text for marker in BOILERPLATE_MARKERS)


def parse_article(html: str) -> Optional[Article]:
    """Extract title and body from article HTML.

    Returns:
        Article, or None when the title or text is too short to be an article
    """
    soup = BeautifulSoup(html, "html.parser")

    h1 = soup.find("h1")
    title = h1.get_text(" ", strip=True) if h1 else ""
    if not title and soup.title and soup.title.string:
        title = re.split(r"[|—]", soup.title.string)[0]
    title = _normalize(title)

    paragraphs = [_normalize(p.get_text(" ", strip=True)) for p in soup.find_all("p")]
    text = " ".join(p for p in paragraphs if _is_body_paragraph(p))

    if len(title) > MIN_TITLE_CHARS and len(text) > MIN_TEXT_CHARS:
        return Article(title=title, text=text)

    logger.info(f"Insufficient content for article: {title[:80]!r} ({len(text)} chars)")
    return None


class ArticleScraper:
    """Fetches article pages over HTTP."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = REQUEST_TIMEOUT):
        self.client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def close(self) -> None:
        await self.client.aclose()

    async def scrape(self, url: str) -> Optional[Article]:
        """Fetch and parse one article.

        Returns:
            Article, or None on HTTP errors or insufficient content
        """
        logger.info(f"Fetching article: {url}")
        try:
            response = await self.client.get(url, headers=_FETCH_HEADERS)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Error scraping article {url}: {e}")
            return None

        article = parse_article(response.text)
        if article is not None:
            logger.info(
                f"Scraped {article.title[:80]!r}: {len(article.text)} characters"
            )
        return article
