#!/usr/bin/env python3
"""
Entrypoint for the daily insights ingestion.

Usage:
    python run_daily_insights.py init-db
    python run_daily_insights.py run
    python run_daily_insights.py run --client-id 3
    python run_daily_insights.py run-if-due
    python run_daily_insights.py health
    python run_daily_insights.py summary
"""

import argparse
import json
import sys
from dataclasses import asdict
from typing import List, Optional

from daily_insights import database
from daily_insights.config import load_scraper_settings
from daily_insights.scanner import run_daily_insights, run_daily_insights_if_due
from daily_insights.scraper_client import check_scraper_health
from util.logging_util import log_run_result, setup_logger

logger = setup_logger("daily_insights.cli")


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Daily insights ingestion")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database schema")

    run_parser = subparsers.add_parser("run", help="Scrape sources and attribute new articles")
    run_parser.add_argument(
        "--client-id",
        type=int,
        default=None,
        help="Attribute every article to this client instead of scoring",
    )

    subparsers.add_parser("run-if-due", help="Run only if the configured interval has passed")
    subparsers.add_parser("health", help="Check that the scraper service is reachable")
    subparsers.add_parser("summary", help="Show insight counts per client")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "init-db":
        database.init_db()
        print("Database initialized")
        return 0

    if args.command == "health":
        health = check_scraper_health(load_scraper_settings())
        _print_json(asdict(health))
        return 0 if health.reachable else 1

    database.init_db()

    if args.command == "summary":
        summaries = database.summarize_by_client()
        unassigned = database.count_insights(unassigned=True, status=None)
        _print_json({"clients": [asdict(s) for s in summaries], "unassigned": unassigned})
        return 0

    if args.command == "run-if-due":
        result = run_daily_insights_if_due()
        if result is None:
            print("Run not due yet")
            return 0
    else:
        result = run_daily_insights(forced_client_id=args.client_id)

    log_run_result(logger, result)
    _print_json(result.to_dict())
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
