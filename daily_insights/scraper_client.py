"""
HTTP client for the external scraper service.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

import requests
from html2text import html2text

from daily_insights.config import ScraperSettings, SourceConfig
from daily_insights.constants import HEALTH_CHECK_TIMEOUT_SECONDS
from daily_insights.models import ScrapedDocument
from util.logging_util import setup_logger

logger = setup_logger(__name__)


class ScraperError(Exception):
    """The scraper service failed or returned an unusable payload."""


@dataclass
class ScrapeRequest:
    """One source endpoint to scrape, with its category tag and keyword hint."""
    source_url: str
    category: Optional[str]
    keywords: List[str]

    def to_payload(self) -> dict:
        return {"url": self.source_url, "category": self.category, "keywords": self.keywords}


@dataclass
class ScraperHealth:
    reachable: bool
    status_code: Optional[int] = None
    detail: str = ""


def build_scrape_requests(sources: Sequence[SourceConfig], keyword_hint: List[str]) -> List[ScrapeRequest]:
    """Pair each source with its category tag and the shared keyword hint."""
    return [
        ScrapeRequest(source_url=source.url, category=source.category, keywords=list(keyword_hint))
        for source in sources
    ]


def _parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into a naive local datetime."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring unparseable scraped_at value: {value!r}")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _clean_description(value) -> str:
    """Flatten an HTML description to plain text."""
    if not value or not isinstance(value, str):
        return ""
    if "<" in value:
        return html2text(value, bodywidth=0).strip()
    return value.strip()


def _optional_text(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_document(data) -> ScrapedDocument:
    """
    Validate one raw article from the scraper into a ScrapedDocument.

    Raises:
        ScraperError: If the article is not an object or lacks a title or url.
    """
    if not isinstance(data, dict):
        raise ScraperError(f"Malformed article in scraper response: {data!r}")

    title = _optional_text(data.get("title"))
    url = _optional_text(data.get("url"))
    if not title or not url:
        raise ScraperError(f"Article missing title or url in scraper response: {data!r}")

    return ScrapedDocument(
        title=title,
        url=url,
        description=_clean_description(data.get("description")),
        source=_optional_text(data.get("source")) or "",
        industry=_optional_text(data.get("industry")),
        scraped_at=_parse_timestamp(data.get("scraped_at")),
    )


def scrape_sources(
    scrape_requests: Sequence[ScrapeRequest],
    settings: ScraperSettings,
) -> List[ScrapedDocument]:
    """
    Ask the scraper service to scrape all sources in one call.

    Args:
        scrape_requests: Sources with category tags and keyword hints.
        settings: Scraper URL, timeout and per-source limits.

    Returns:
        The scraped documents, in the order the service returned them.

    Raises:
        ScraperError: On transport errors, non-2xx responses, invalid JSON,
            a false success flag or malformed articles.
    """
    payload = {
        "sources": [request.to_payload() for request in scrape_requests],
        "options": {
            "max_articles_per_source": settings.max_articles_per_source,
            "max_article_age_days": settings.max_article_age_days,
        },
    }

    try:
        response = requests.post(
            f"{settings.api_url}/api/scrape",
            json=payload,
            timeout=settings.timeout_seconds,
        )
    except requests.RequestException as e:
        raise ScraperError(f"Scraper request failed: {e}") from e

    if not response.ok:
        raise ScraperError(f"Scraper API returned {response.status_code}")

    try:
        data = response.json()
    except ValueError as e:
        raise ScraperError(f"Scraper returned invalid JSON: {e}") from e

    if not isinstance(data, dict) or data.get("success") is not True:
        reason = data.get("error") if isinstance(data, dict) else None
        raise ScraperError(f"Scraper reported failure: {reason or 'unknown error'}")

    articles = data.get("articles", [])
    if not isinstance(articles, list):
        raise ScraperError("Scraper response 'articles' is not a list")

    documents = [parse_document(article) for article in articles]
    logger.info(f"Scraper returned {len(documents)} articles from {len(scrape_requests)} sources")
    return documents


def check_scraper_health(settings: ScraperSettings) -> ScraperHealth:
    """Probe the scraper service. Never raises."""
    try:
        response = requests.get(
            f"{settings.api_url}/api/health",
            timeout=HEALTH_CHECK_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.warning(f"Scraper health check failed: {e}")
        return ScraperHealth(reachable=False, detail=str(e))

    return ScraperHealth(
        reachable=response.ok,
        status_code=response.status_code,
        detail=response.text[:200],
    )
