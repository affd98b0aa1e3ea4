import logging
import os
import sys

# Configure logging format
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LOG_LEVEL_ENV = "DAILY_INSIGHTS_LOG_LEVEL"


def _default_level() -> int:
    level_name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def setup_logger(name: str, level=None) -> logging.Logger:
    """
    Sets up a logger with consistent formatting.

    Args:
        name: Name of the logger (typically __name__ from the calling module)
        level: Logging level (default: DAILY_INSIGHTS_LOG_LEVEL or INFO)

    Returns:
        Configured logger instance
    """
    if level is None:
        level = _default_level()

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)

        formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
        console_handler.setFormatter(formatter)

        logger.addHandler(console_handler)

    return logger


def log_run_result(logger: logging.Logger, result) -> None:
    """
    Logs the counters and errors of a daily insights run.

    Args:
        logger: Logger instance to use
        result: RunResult of the run
    """
    status = "OK" if result.success else "FAILED"
    logger.info(f"Run {status} - {result.message}")
    logger.info(
        f"  Sources: {result.sources_processed}, Clients: {result.clients_considered}, "
        f"Keywords: {result.keyword_count}"
    )
    logger.info(
        f"  Scraped: {result.articles_scraped}, Saved: {result.articles_saved}, "
        f"Duplicates: {result.duplicates}"
    )
    for error in result.errors:
        logger.warning(f"  Error: {error[:200]}{'...' if len(error) > 200 else ''}")
