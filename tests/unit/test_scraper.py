"""Unit tests for article page parsing and fetching."""

import httpx
import pytest
from services.scraper import ArticleScraper, parse_article

PARAGRAPH_1 = (
    "Летняя жара создает дополнительную нагрузку на сердечно-сосудистую систему бегунов, "
    "особенно во время длинных дистанций."
)
PARAGRAPH_2 = (
    "Кардиологи советуют снижать темп, пить воду каждые двадцать метров дистанции "
    "и переносить тренировки на раннее утро."
)
PARAGRAPH_3 = (
    "Организаторы марафона в Алматы предупредили участников о жаре и развернули "
    "дополнительные пункты питания вдоль трассы."
)

ARTICLE_HTML = f"""
<html>
<head><title>Жара и бег | STEPPE</title></head>
<body>
  <h1>Жара и бег: готово ли ваше сердце</h1>
  <p>12:30 GMT+05</p>
  <p>{PARAGRAPH_1}</p>
  <p>Подписаться на наш канал, чтобы не пропустить новые материалы и новости недели</p>
  <p>{PARAGRAPH_2}</p>
  <p>12345</p>
  <p>{PARAGRAPH_3}</p>
</body>
</html>
"""


@pytest.mark.unit
class TestParseArticle:
    def test_extracts_title_and_body(self):
        article = parse_article(ARTICLE_HTML)

        assert article.title == "Жара и бег: готово ли ваше сердце"
        assert article.text == " ".join([PARAGRAPH_1, PARAGRAPH_2, PARAGRAPH_3])

    def test_boilerplate_removed(self):
        article = parse_article(ARTICLE_HTML)

        assert "Подписаться" not in article.text
        assert "GMT+05" not in article.text

    def test_title_from_head_when_no_h1(self):
        html = ARTICLE_HTML.replace("<h1>Жара и бег: готово ли ваше сердце</h1>", "")
        html = html.replace("Жара и бег | STEPPE", "Сердце бегуна летом | STEPPE")

        article = parse_article(html)

        assert article.title == "Сердце бегуна летом"

    def test_short_title_rejected(self):
        html = ARTICLE_HTML.replace("Жара и бег: готово ли ваше сердце", "Жара")

        assert parse_article(html) is None

    def test_short_text_rejected(self):
        html = f"<html><body><h1>Длинный заголовок статьи</h1><p>{PARAGRAPH_1}</p></body></html>"

        assert parse_article(html) is None

    def test_empty_page(self):
        assert parse_article("") is None


@pytest.mark.unit
@pytest.mark.asyncio
class TestArticleScraper:
    async def test_scrape_success(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=ARTICLE_HTML)

        scraper = ArticleScraper(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        try:
            article = await scraper.scrape("https://example-source.com/articles/sample")
        finally:
            await scraper.close()

        assert article.title.startswith("Жара и бег")
        assert "Mozilla" in seen[0].headers["user-agent"]
        assert seen[0].headers["accept-language"].startswith("ru-RU")

    async def test_http_error_returns_none(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(404, text="not found"))
        scraper = ArticleScraper(client=httpx.AsyncClient(transport=transport))
        try:
            assert await scraper.scrape("https://example-source.com/missing") is None
        finally:
            await scraper.close()

    async def test_connection_error_returns_none(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        scraper = ArticleScraper(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        try:
            assert await scraper.scrape("https://example-source.com/a") is None
        finally:
            await scraper.close()
