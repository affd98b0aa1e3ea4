"""
Database operations for the daily insights system.

Uses SQLAlchemy ORM for database access. The public API uses dataclass models
from models.py, with conversion to/from ORM models handled internally. This
module is also the default repository passed to the batch orchestrator.
"""

import time
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from daily_insights.db_engine import get_engine, get_session
from daily_insights.models import (
    Client,
    ClientInsightSummary,
    InsightRecord,
    InsightStatus,
    RunResult,
)
from daily_insights.orm_models import (
    Base,
    ClientORM,
    DailyInsightORM,
    KeywordORM,
    RunHistoryORM,
    client_orm_to_dataclass,
    insight_dataclass_to_orm,
    insight_orm_to_dataclass,
)


class DuplicateInsightError(Exception):
    """Raised when an insight with the same url is already stored."""

    def __init__(self, url: str):
        super().__init__(f"Insight already exists for url: {url}")
        self.url = url


def init_db():
    """Initialize the database schema."""
    engine = get_engine()
    Base.metadata.create_all(engine)


# Clients and keywords


def create_client(
    name: str,
    keyword_text: Optional[str] = None,
    keywords: Optional[List[str]] = None,
    is_active: bool = True,
) -> int:
    """Create a client, linking (and creating if needed) the named keywords.

    Returns the client id.
    """
    with get_session() as session:
        orm = ClientORM(name=name, keyword_text=keyword_text, is_active=is_active)
        for keyword_name in keywords or []:
            keyword = _get_or_create_keyword(session, keyword_name)
            if keyword not in orm.keywords:
                orm.keywords.append(keyword)
        session.add(orm)
        session.flush()
        return orm.id


def _get_or_create_keyword(session, name: str) -> KeywordORM:
    stmt = select(KeywordORM).where(func.lower(KeywordORM.name) == name.strip().lower())
    keyword = session.execute(stmt).scalar_one_or_none()
    if keyword is None:
        keyword = KeywordORM(name=name.strip())
        session.add(keyword)
        session.flush()
    return keyword


def create_keyword(name: str) -> int:
    """Create a keyword, or return the id of the existing one (case-insensitive)."""
    with get_session() as session:
        return _get_or_create_keyword(session, name).id


def link_keyword(client_id: int, keyword_name: str) -> bool:
    """Link a keyword to a client. Returns False if the client does not exist."""
    with get_session() as session:
        client = session.get(ClientORM, client_id)
        if client is None:
            return False
        keyword = _get_or_create_keyword(session, keyword_name)
        if keyword not in client.keywords:
            client.keywords.append(keyword)
        return True


def get_client(client_id: int) -> Optional[Client]:
    """Get a client by id."""
    with get_session() as session:
        orm = session.get(ClientORM, client_id)
        if orm is None:
            return None
        return client_orm_to_dataclass(orm)


def get_active_clients() -> List[Client]:
    """Get all active clients with their linked keywords, ordered by name."""
    with get_session() as session:
        stmt = (
            select(ClientORM)
            .where(ClientORM.is_active.is_(True))
            .options(selectinload(ClientORM.keywords))
            .order_by(ClientORM.name.asc(), ClientORM.id.asc())
        )
        orms = session.execute(stmt).scalars().all()
        return [client_orm_to_dataclass(orm) for orm in orms]


# Insights


def insight_exists(url: str) -> bool:
    """Check if an insight with this url is already stored."""
    with get_session() as session:
        stmt = select(exists().where(DailyInsightORM.url == url))
        return session.execute(stmt).scalar()


def insert_insight(record: InsightRecord) -> int:
    """Insert a new insight.

    Returns the insight id. Raises DuplicateInsightError if the url is
    already stored; other integrity errors propagate.
    """
    orm = insight_dataclass_to_orm(record, datetime.now())
    try:
        with get_session() as session:
            session.add(orm)
            session.flush()
            return orm.id
    except IntegrityError:
        if insight_exists(record.url):
            raise DuplicateInsightError(record.url)
        raise


def get_insight_by_id(insight_id: int) -> Optional[InsightRecord]:
    """Get an insight by its database ID."""
    with get_session() as session:
        orm = session.get(DailyInsightORM, insight_id)
        if orm is None:
            return None
        return insight_orm_to_dataclass(orm)


def _insight_filters(
    client_id: Optional[int],
    unassigned: bool,
    status: Optional[InsightStatus],
) -> list:
    filters = []
    if status is not None:
        filters.append(DailyInsightORM.status == status.value)
    if unassigned:
        filters.append(DailyInsightORM.client_id.is_(None))
    elif client_id is not None:
        filters.append(DailyInsightORM.client_id == client_id)
    return filters


def list_insights(
    client_id: Optional[int] = None,
    unassigned: bool = False,
    status: Optional[InsightStatus] = InsightStatus.PENDING,
    limit: int = 50,
    offset: int = 0,
) -> List[InsightRecord]:
    """List insights, newest first.

    Args:
        client_id: Only insights attributed to this client.
        unassigned: Only insights in the unassigned pool (overrides client_id).
        status: Only insights with this status; None for all statuses.
        limit: Maximum number of rows.
        offset: Number of rows to skip.
    """
    with get_session() as session:
        stmt = (
            select(DailyInsightORM)
            .where(*_insight_filters(client_id, unassigned, status))
            .order_by(DailyInsightORM.scraped_at.desc(), DailyInsightORM.id.desc())
            .limit(limit)
            .offset(offset)
        )
        orms = session.execute(stmt).scalars().all()
        return [insight_orm_to_dataclass(orm) for orm in orms]


def count_insights(
    client_id: Optional[int] = None,
    unassigned: bool = False,
    status: Optional[InsightStatus] = InsightStatus.PENDING,
) -> int:
    """Count insights matching the same filters as list_insights."""
    with get_session() as session:
        stmt = (
            select(func.count())
            .select_from(DailyInsightORM)
            .where(*_insight_filters(client_id, unassigned, status))
        )
        return session.execute(stmt).scalar_one()


def summarize_by_client() -> List[ClientInsightSummary]:
    """Pending, accepted and total insight counts for every active client."""
    summaries = []
    for client in get_active_clients():
        summaries.append(ClientInsightSummary(
            client_id=client.id,
            name=client.name,
            pending=count_insights(client_id=client.id, status=InsightStatus.PENDING),
            accepted=count_insights(client_id=client.id, status=InsightStatus.ACCEPTED),
            total=count_insights(client_id=client.id, status=None),
        ))
    return summaries


def update_insight_status(insight_id: int, status: InsightStatus) -> Optional[InsightRecord]:
    """Set the status of an insight. Returns the updated insight, or None if missing."""
    with get_session() as session:
        orm = session.get(DailyInsightORM, insight_id)
        if orm is None:
            return None
        orm.status = status.value
        session.flush()
        return insight_orm_to_dataclass(orm)


def delete_insight(insight_id: int) -> bool:
    """Delete a single insight. Returns False if it does not exist."""
    with get_session() as session:
        orm = session.get(DailyInsightORM, insight_id)
        if orm is None:
            return False
        session.delete(orm)
        return True


def mark_accepted_by_url(url: str) -> int:
    """Accept every insight stored under this url. Returns the number updated."""
    with get_session() as session:
        result = session.execute(
            update(DailyInsightORM)
            .where(DailyInsightORM.url == url)
            .values(status=InsightStatus.ACCEPTED.value)
        )
        return result.rowcount


def clear_insights() -> int:
    """Delete all insights. Returns the number deleted."""
    with get_session() as session:
        result = session.execute(delete(DailyInsightORM))
        return result.rowcount


# Run history


def record_run(result: RunResult, forced_client_id: Optional[int] = None) -> int:
    """Store the outcome of a batch run. Returns the history row id."""
    finished_at = result.finished_at or datetime.now()
    orm = RunHistoryORM(
        run_epoch=int(finished_at.timestamp()),
        success=result.success,
        forced_client_id=forced_client_id,
        articles_scraped=result.articles_scraped,
        articles_saved=result.articles_saved,
        duplicates=result.duplicates,
        error_count=len(result.errors),
        message=result.message,
    )
    with get_session() as session:
        session.add(orm)
        session.flush()
        return orm.id


def get_last_run_time() -> Optional[int]:
    """Get the epoch of the most recent successful run."""
    with get_session() as session:
        stmt = select(func.max(RunHistoryORM.run_epoch)).where(RunHistoryORM.success.is_(True))
        return session.execute(stmt).scalar()


def seconds_since_last_run() -> Optional[float]:
    last_run = get_last_run_time()
    if last_run is None:
        return None
    return time.time() - last_run
