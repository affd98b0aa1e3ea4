"""
Constants for the daily insights ingestion system.
"""

from pathlib import Path

MODULE_ROOT = Path(__file__).parent

DATA_DIR = MODULE_ROOT / "data"

DB_NAME = "daily_insights.db"
DATABASE_URL_ENV = "DAILY_INSIGHTS_DATABASE_URL"

# Keyword scoring weights
UNIQUE_KEYWORD_WEIGHT = 3
SHARED_KEYWORD_WEIGHT = 1

# Keywords this short must match as a whole token
SHORT_KEYWORD_MAX_LENGTH = 4

# Number of matched keywords used for the industry label
INDUSTRY_LABEL_KEYWORDS = 3

DEFAULT_INDUSTRY = "general"

# Column limits for persisted insights
MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 2000

DEFAULT_SCRAPER_API_URL = "http://localhost:5000"
SCRAPER_API_URL_ENV = "SCRAPER_API_URL"

HEALTH_CHECK_TIMEOUT_SECONDS = 5
