"""Tests for the daily insights batch orchestration."""

import logging
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import create_engine

from daily_insights import database, db_engine
from daily_insights.config import ScraperSettings, SourceConfig, load_source_configs
from daily_insights.database import DuplicateInsightError
from daily_insights.models import Client, InsightStatus, ScrapedDocument
from daily_insights.orm_models import Base
from daily_insights.scanner import (
    is_duplicate,
    is_run_due,
    run_daily_insights,
    run_daily_insights_if_due,
)
from daily_insights.scraper_client import ScraperError


class FakeRepository:
    """In-memory stand-in for the database module."""

    def __init__(self, clients=None, existing_urls=()):
        self.clients = list(clients or [])
        self.insights = []
        self.urls = set(existing_urls)
        self.runs = []
        self.fail_urls = set()
        self.race_urls = set()
        self.last_run_seconds = None

    def get_active_clients(self):
        return list(self.clients)

    def insight_exists(self, url):
        return url in self.urls

    def insert_insight(self, record):
        if record.url in self.race_urls:
            raise DuplicateInsightError(record.url)
        if record.url in self.fail_urls:
            raise RuntimeError("database is locked")
        self.urls.add(record.url)
        self.insights.append(record)
        return len(self.insights)

    def record_run(self, result, forced_client_id=None):
        self.runs.append((result, forced_client_id))
        return len(self.runs)

    def seconds_since_last_run(self):
        return self.last_run_seconds


class FakeScraper:
    def __init__(self, documents=None, error=None):
        self.documents = documents or []
        self.error = error
        self.calls = []

    def __call__(self, scrape_requests, settings):
        self.calls.append(list(scrape_requests))
        if self.error is not None:
            raise self.error
        return list(self.documents)


@pytest.fixture
def clients():
    return [
        Client(id=1, name="Acme", keyword_text="AI"),
        Client(id=2, name="Acme", keyword_text="finance"),
    ]


@pytest.fixture
def sources():
    return [
        SourceConfig(name="Business Daily", url="https://bd.example.com", category="business"),
        SourceConfig(name="TechCabal", url="https://tc.example.com", category="technology"),
    ]


@pytest.fixture
def settings():
    return ScraperSettings(api_url="http://scraper:5000", keyword_hint_limit=50)


@pytest.fixture
def documents():
    return [
        ScrapedDocument(title="Acme Corp raises finance round", url="https://e.com/1", source="BD"),
        ScrapedDocument(title="AI startup launches", url="https://e.com/2", industry="Tech"),
        ScrapedDocument(title="Said company paid staff", url="https://e.com/3"),
    ]


def _run(repository, scraper, sources, settings, **kwargs):
    return run_daily_insights(
        repository=repository,
        scraper=scraper,
        sources=sources,
        settings=settings,
        **kwargs,
    )


class TestIsDuplicate:
    def test_uses_repository(self):
        repository = FakeRepository(existing_urls={"https://e.com/1"})
        assert is_duplicate("https://e.com/1", repository)
        assert not is_duplicate("https://e.com/2", repository)


class TestRunDailyInsights:
    """Tests for run_daily_insights function."""

    def test_attributes_and_saves(self, clients, sources, settings, documents):
        repository = FakeRepository(clients)
        scraper = FakeScraper(documents)

        result = _run(repository, scraper, sources, settings)

        assert result.success
        assert result.articles_scraped == 3
        assert result.articles_saved == 3
        assert result.duplicates == 0
        assert result.sources_processed == 2
        assert result.clients_considered == 2
        assert result.keyword_count == 3
        assert result.errors == []

        first, second, third = repository.insights
        assert (first.client_id, first.industry) == (2, "acme, finance")
        assert (second.client_id, second.industry) == (1, "ai")
        assert (third.client_id, third.industry) == (None, "general")
        assert all(r.status == InsightStatus.PENDING for r in repository.insights)
        assert first.source == "BD"
        assert first.scraped_at is not None

    def test_scraper_receives_sources_and_hint(self, clients, sources, documents):
        scraper = FakeScraper(documents)
        settings = ScraperSettings(keyword_hint_limit=2)

        _run(FakeRepository(clients), scraper, sources, settings)

        assert len(scraper.calls) == 1
        requests_sent = scraper.calls[0]
        assert [r.source_url for r in requests_sent] == ["https://bd.example.com", "https://tc.example.com"]
        assert [r.category for r in requests_sent] == ["business", "technology"]
        assert requests_sent[0].keywords == ["acme", "ai"]

    def test_duplicates_are_skipped(self, clients, sources, settings, documents):
        repository = FakeRepository(clients, existing_urls={"https://e.com/2"})

        result = _run(repository, FakeScraper(documents), sources, settings)

        assert result.articles_saved == 2
        assert result.duplicates == 1
        assert [r.url for r in repository.insights] == ["https://e.com/1", "https://e.com/3"]

    def test_duplicate_url_within_batch(self, clients, sources, settings):
        docs = [
            ScrapedDocument(title="Acme news", url="https://e.com/same"),
            ScrapedDocument(title="Acme news again", url="https://e.com/same"),
        ]
        repository = FakeRepository(clients)

        result = _run(repository, FakeScraper(docs), sources, settings)

        assert result.articles_saved == 1
        assert result.duplicates == 1

    def test_insert_race_counts_as_duplicate(self, clients, sources, settings, documents):
        """Test that a uniqueness violation on insert is treated like a dedup hit."""
        repository = FakeRepository(clients)
        repository.race_urls.add("https://e.com/1")

        result = _run(repository, FakeScraper(documents), sources, settings)

        assert result.success
        assert result.duplicates == 1
        assert result.articles_saved == 2
        assert result.errors == []

    def test_per_document_failure_continues(self, clients, sources, settings, documents):
        repository = FakeRepository(clients)
        repository.fail_urls.add("https://e.com/2")

        result = _run(repository, FakeScraper(documents), sources, settings)

        assert result.success
        assert result.articles_saved == 2
        assert len(result.errors) == 1
        assert "https://e.com/2" in result.errors[0]
        assert "database is locked" in result.errors[0]
        assert [r.url for r in repository.insights] == ["https://e.com/1", "https://e.com/3"]

    def test_scraper_failure_aborts_run(self, clients, sources, settings):
        repository = FakeRepository(clients)
        scraper = FakeScraper(error=ScraperError("Scraper API returned 500"))

        result = _run(repository, scraper, sources, settings)

        assert not result.success
        assert result.message == "Scraper API returned 500"
        assert result.articles_saved == 0
        assert repository.insights == []
        assert len(repository.runs) == 1
        assert repository.runs[0][0] is result

    def test_no_sources_is_zero_work(self, clients, settings):
        repository = FakeRepository(clients)
        scraper = FakeScraper()

        result = _run(repository, scraper, [], settings)

        assert result.success
        assert result.message == "No active sources configured"
        assert result.articles_scraped == 0
        assert result.sources_processed == 0
        assert result.clients_considered == 2
        assert scraper.calls == []
        assert repository.runs == []

    def test_no_clients_leaves_everything_unassigned(self, sources, settings, documents):
        repository = FakeRepository([])

        result = _run(repository, FakeScraper(documents), sources, settings)

        assert result.articles_saved == 3
        assert result.keyword_count == 0
        assert all(r.client_id is None for r in repository.insights)
        assert [r.industry for r in repository.insights] == ["general", "Tech", "general"]

    def test_forced_client_skips_scoring(self, clients, sources, settings, documents):
        repository = FakeRepository(clients)

        with patch("daily_insights.scanner.score_document") as mock_score:
            result = _run(repository, FakeScraper(documents), sources, settings, forced_client_id=1)

        mock_score.assert_not_called()
        assert result.articles_saved == 3
        assert all(r.client_id == 1 for r in repository.insights)
        assert [r.industry for r in repository.insights] == ["general", "Tech", "general"]
        assert repository.runs[0][1] == 1

    def test_unknown_forced_client_fails(self, clients, sources, settings, documents):
        repository = FakeRepository(clients)
        scraper = FakeScraper(documents)

        result = _run(repository, scraper, sources, settings, forced_client_id=99)

        assert not result.success
        assert "99" in result.message
        assert scraper.calls == []
        assert repository.insights == []

    def test_run_is_recorded(self, clients, sources, settings, documents):
        repository = FakeRepository(clients)

        result = _run(repository, FakeScraper(documents), sources, settings)

        assert repository.runs == [(result, None)]
        assert result.started_at is not None
        assert result.finished_at >= result.started_at

    def test_history_failure_does_not_break_run(self, clients, sources, settings, documents):
        repository = FakeRepository(clients)
        repository.record_run = MagicMock(side_effect=RuntimeError("disk full"))

        result = _run(repository, FakeScraper(documents), sources, settings)

        assert result.success
        assert result.articles_saved == 3

    def test_client_loading_failure_returns_failed_result(self, sources, settings):
        repository = FakeRepository()
        repository.get_active_clients = MagicMock(side_effect=RuntimeError("no such table: clients"))
        scraper = FakeScraper()

        result = _run(repository, scraper, sources, settings)

        assert not result.success
        assert "no such table: clients" in result.message
        assert result.finished_at is not None
        assert scraper.calls == []
        assert repository.runs == []

    def test_broken_sources_file_returns_failed_result(self, clients, settings, tmp_path):
        config_file = tmp_path / "sources.yaml"
        config_file.write_text("sources:\n  - name: x\n")
        scraper = FakeScraper()

        with patch("daily_insights.scanner.load_source_configs", lambda: load_source_configs(config_file)):
            result = _run(FakeRepository(clients), scraper, None, settings)

        assert not result.success
        assert "name and url" in result.message
        assert scraper.calls == []

    def test_uses_given_logger(self, clients, sources, settings):
        logger = MagicMock(spec=logging.Logger)
        scraper = FakeScraper(error=ScraperError("boom"))

        _run(FakeRepository(clients), scraper, sources, settings, logger=logger)

        logger.error.assert_called_once()


@pytest.fixture
def temp_db():
    """Create a temporary in-memory database for testing."""
    test_engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(test_engine)
    db_engine.set_engine(test_engine)
    yield test_engine
    db_engine.reset_engine()


class TestRunAgainstDatabase:
    """End-to-end runs against the real database module."""

    def test_rerun_saves_nothing_new(self, temp_db, sources, settings, documents):
        database.create_client("Acme", keyword_text="AI")
        database.create_client("Acme Finance", keyword_text="acme, finance")
        scraper = FakeScraper(documents)

        first = run_daily_insights(scraper=scraper, sources=sources, settings=settings)
        second = run_daily_insights(scraper=scraper, sources=sources, settings=settings)

        assert first.articles_saved == 3
        assert second.articles_saved == 0
        assert second.duplicates == 3
        assert database.count_insights(status=None) == 3

    def test_attribution_is_persisted(self, temp_db, sources, settings, documents):
        acme = database.create_client("Acme", keyword_text="AI")
        finance = database.create_client("Acme Finance", keyword_text="acme, finance")

        run_daily_insights(scraper=FakeScraper(documents), sources=sources, settings=settings)

        assert [i.url for i in database.list_insights(client_id=finance)] == ["https://e.com/1"]
        assert [i.url for i in database.list_insights(client_id=acme)] == ["https://e.com/2"]
        assert [i.url for i in database.list_insights(unassigned=True)] == ["https://e.com/3"]
        assert database.get_last_run_time() is not None


class TestScheduling:
    """Tests for is_run_due and run_daily_insights_if_due."""

    def test_due_when_never_run(self):
        assert is_run_due(FakeRepository(), ScraperSettings(run_interval_hours=6))

    def test_not_due_within_interval(self):
        repository = FakeRepository()
        repository.last_run_seconds = 60 * 60
        assert not is_run_due(repository, ScraperSettings(run_interval_hours=6))

    def test_due_after_interval(self):
        repository = FakeRepository()
        repository.last_run_seconds = 6 * 60 * 60
        assert is_run_due(repository, ScraperSettings(run_interval_hours=6))

    @patch("daily_insights.scanner.run_daily_insights")
    @patch("daily_insights.scanner.load_scraper_settings", return_value=ScraperSettings())
    def test_if_due_skips(self, mock_settings, mock_run):
        repository = FakeRepository()
        repository.last_run_seconds = 10

        assert run_daily_insights_if_due(repository) is None
        mock_run.assert_not_called()

    @patch("daily_insights.scanner.run_daily_insights")
    @patch("daily_insights.scanner.load_scraper_settings", return_value=ScraperSettings())
    def test_if_due_runs(self, mock_settings, mock_run):
        repository = FakeRepository()

        assert run_daily_insights_if_due(repository) is mock_run.return_value
        mock_run.assert_called_once_with(repository=repository, settings=mock_settings.return_value)

    @patch("daily_insights.scanner.run_daily_insights")
    @patch("daily_insights.scanner.load_scraper_settings", return_value=ScraperSettings())
    def test_if_due_history_failure_returns_failed_result(self, mock_settings, mock_run):
        repository = FakeRepository()
        repository.seconds_since_last_run = MagicMock(side_effect=RuntimeError("database is locked"))

        result = run_daily_insights_if_due(repository)

        assert not result.success
        assert "database is locked" in result.message
        mock_run.assert_not_called()
