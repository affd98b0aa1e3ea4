"""
Source and scraper configuration loaded from YAML.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import yaml

from daily_insights.constants import (
    DATA_DIR,
    DEFAULT_SCRAPER_API_URL,
    SCRAPER_API_URL_ENV,
)
from util.logging_util import setup_logger

logger = setup_logger(__name__)

SOURCES_CONFIG_PATH = DATA_DIR / "sources.yaml"
SETTINGS_CONFIG_PATH = DATA_DIR / "settings.yaml"


@dataclass
class SourceConfig:
    """Configuration for a single source endpoint to scrape."""
    name: str
    url: str
    category: Optional[str] = None
    active: bool = True


@dataclass
class ScraperSettings:
    """Settings for talking to the scraper service."""
    api_url: str = DEFAULT_SCRAPER_API_URL
    timeout_seconds: int = 120
    max_articles_per_source: int = 150
    max_article_age_days: int = 7
    keyword_hint_limit: int = 50
    run_interval_hours: int = 6


def _clamp(value, lower: int, upper: int, default: int) -> int:
    """Clamp an integer setting into range, using the default when unset or invalid."""
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    if value <= 0:
        return default
    return max(lower, min(upper, value))


def load_source_configs(config_path: Path = SOURCES_CONFIG_PATH) -> List[SourceConfig]:
    """
    Load the active source configurations from a YAML file.

    Raises:
        ValueError: If the file is not a mapping or a source lacks a name or url.
    """
    if not config_path.exists():
        logger.warning(f"Source config not found at {config_path}")
        return []

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Source config {config_path} must be a mapping")

    sources = []
    for source_data in data.get("sources") or []:
        if not isinstance(source_data, dict) or not source_data.get("name") or not source_data.get("url"):
            raise ValueError(f"Source entry in {config_path} needs a name and url: {source_data!r}")
        source = SourceConfig(
            name=source_data["name"],
            url=source_data["url"],
            category=source_data.get("category"),
            active=bool(source_data.get("active", True)),
        )
        if source.active:
            sources.append(source)
    return sources


def load_scraper_settings(config_path: Path = SETTINGS_CONFIG_PATH) -> ScraperSettings:
    """
    Load scraper settings from YAML, falling back to defaults.

    The SCRAPER_API_URL environment variable overrides the configured URL.
    Numeric settings are clamped to their supported ranges.
    """
    data = {}
    if config_path.exists():
        with open(config_path, "r") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict) or not isinstance(loaded.get("scraper") or {}, dict):
            raise ValueError(f"Scraper settings {config_path} must be a mapping")
        data = loaded.get("scraper") or {}
    else:
        logger.warning(f"Scraper settings not found at {config_path}, using defaults")

    defaults = ScraperSettings()
    api_url = os.environ.get(SCRAPER_API_URL_ENV) or data.get("api_url") or defaults.api_url

    return ScraperSettings(
        api_url=api_url.rstrip("/"),
        timeout_seconds=_clamp(data.get("timeout_seconds"), 30, 300, defaults.timeout_seconds),
        max_articles_per_source=_clamp(
            data.get("max_articles_per_source"), 10, 500, defaults.max_articles_per_source
        ),
        max_article_age_days=_clamp(data.get("max_article_age_days"), 1, 30, defaults.max_article_age_days),
        keyword_hint_limit=_clamp(data.get("keyword_hint_limit"), 1, 500, defaults.keyword_hint_limit),
        run_interval_hours=_clamp(data.get("run_interval_hours"), 1, 168, defaults.run_interval_hours),
    )
