"""
Batch orchestration for daily insights ingestion.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from daily_insights import database
from daily_insights.config import (
    ScraperSettings,
    SourceConfig,
    load_scraper_settings,
    load_source_configs,
)
from daily_insights.database import DuplicateInsightError
from daily_insights.keywords import (
    build_client_registries,
    build_ownership_index,
    keyword_vocabulary,
)
from daily_insights.matcher import document_text, resolve_attribution, score_document
from daily_insights.models import InsightRecord, InsightStatus, RunResult, ScrapedDocument
from daily_insights.scraper_client import (
    ScrapeRequest,
    ScraperError,
    build_scrape_requests,
    scrape_sources,
)
from util.logging_util import setup_logger

module_logger = setup_logger(__name__)

Scraper = Callable[[Sequence[ScrapeRequest], ScraperSettings], List[ScrapedDocument]]


def is_duplicate(url: str, repository=database) -> bool:
    """Check whether an insight for this url has already been stored."""
    return repository.insight_exists(url)


def _record_run(repository, result: RunResult, forced_client_id: Optional[int], logger: logging.Logger):
    try:
        repository.record_run(result, forced_client_id=forced_client_id)
    except Exception as e:
        logger.error(f"Failed to record run history: {e}")


def run_daily_insights(
    forced_client_id: Optional[int] = None,
    repository=database,
    scraper: Scraper = scrape_sources,
    sources: Optional[List[SourceConfig]] = None,
    settings: Optional[ScraperSettings] = None,
    logger: Optional[logging.Logger] = None,
) -> RunResult:
    """
    Run one ingestion cycle: scrape all sources, attribute and store new articles.

    Args:
        forced_client_id: Attribute every article to this client, skipping scoring.
        repository: Persistence functions (the database module by default).
        scraper: Callable that scrapes all sources in one call.
        sources: Sources to scrape. Defaults to loading from YAML.
        settings: Scraper settings. Defaults to loading from YAML.
        logger: Logger for progress and errors.

    Returns:
        A RunResult; failures are reported in it rather than raised.
    """
    logger = logger or module_logger
    started_at = datetime.now()

    try:
        if settings is None:
            settings = load_scraper_settings()
        if sources is None:
            sources = load_source_configs()
        clients = repository.get_active_clients()
    except Exception as e:
        logger.error(f"Failed to prepare daily insights run: {e}")
        return RunResult(
            success=False,
            message=f"Failed to prepare run: {e}",
            started_at=started_at,
            finished_at=datetime.now(),
        )

    if forced_client_id is not None and forced_client_id not in {client.id for client in clients}:
        logger.warning(f"Forced client {forced_client_id} is not an active client")
        return RunResult(
            success=False,
            message=f"Client {forced_client_id} not found or inactive",
            started_at=started_at,
            finished_at=datetime.now(),
        )

    registries = build_client_registries(clients)
    ownership = build_ownership_index(registries)
    vocabulary = keyword_vocabulary(registries)

    result = RunResult(
        success=True,
        message="",
        sources_processed=len(sources),
        clients_considered=len(clients),
        keyword_count=len(vocabulary),
        started_at=started_at,
    )

    if not sources:
        logger.info("No active sources configured, nothing to scrape")
        result.message = "No active sources configured"
        result.finished_at = datetime.now()
        return result

    logger.info(
        f"Starting daily insights run: {len(sources)} sources, "
        f"{len(clients)} clients, {len(vocabulary)} keywords"
    )
    scrape_requests = build_scrape_requests(sources, vocabulary[:settings.keyword_hint_limit])

    try:
        documents = scraper(scrape_requests, settings)
    except ScraperError as e:
        logger.error(f"Scraper failed, aborting run: {e}")
        result.success = False
        result.message = str(e)
        result.finished_at = datetime.now()
        _record_run(repository, result, forced_client_id, logger)
        return result

    result.articles_scraped = len(documents)

    for document in documents:
        try:
            if is_duplicate(document.url, repository):
                logger.debug(f"Insight already exists: {document.url}")
                result.duplicates += 1
                continue

            if forced_client_id is not None:
                attribution = resolve_attribution({}, document, forced_client_id=forced_client_id)
            else:
                scores = score_document(document_text(document), registries, ownership)
                attribution = resolve_attribution(scores, document)

            repository.insert_insight(InsightRecord(
                title=document.title,
                url=document.url,
                description=document.description,
                source=document.source,
                industry=attribution.industry,
                client_id=attribution.client_id,
                status=InsightStatus.PENDING,
                scraped_at=document.scraped_at or started_at,
            ))
        except DuplicateInsightError:
            logger.debug(f"Insight stored concurrently: {document.url}")
            result.duplicates += 1
            continue
        except Exception as e:
            logger.error(f"Failed to save '{document.title[:50]}': {e}")
            result.errors.append(f"{document.url}: {e}")
            continue

        result.articles_saved += 1
        logger.debug(
            f"Saved '{document.title[:50]}' -> client {attribution.client_id} "
            f"(score {attribution.score})"
        )

    result.message = (
        f"Scraped {result.articles_scraped} articles: {result.articles_saved} saved, "
        f"{result.duplicates} duplicates, {len(result.errors)} errors"
    )
    result.finished_at = datetime.now()
    logger.info(f"Daily insights run complete: {result.message}")

    _record_run(repository, result, forced_client_id, logger)
    return result


def is_run_due(repository=database, settings: Optional[ScraperSettings] = None) -> bool:
    """Check if a scheduled run is due."""
    if settings is None:
        settings = load_scraper_settings()
    elapsed = repository.seconds_since_last_run()
    if elapsed is None:
        return True
    return elapsed >= settings.run_interval_hours * 60 * 60


def run_daily_insights_if_due(repository=database) -> Optional[RunResult]:
    """
    Run the daily insights ingestion if the configured interval has passed.

    This function is meant to be called from a scheduler loop.
    """
    started_at = datetime.now()
    try:
        settings = load_scraper_settings()
        due = is_run_due(repository, settings)
    except Exception as e:
        module_logger.error(f"Failed to check whether a run is due: {e}")
        return RunResult(
            success=False,
            message=f"Failed to prepare run: {e}",
            started_at=started_at,
            finished_at=datetime.now(),
        )
    if not due:
        return None
    return run_daily_insights(repository=repository, settings=settings)
