"""
SQLAlchemy ORM models for the daily insights system.

These models are internal to the database layer. The public interface
uses the dataclass models from models.py.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from daily_insights.constants import DEFAULT_INDUSTRY, MAX_DESCRIPTION_LENGTH, MAX_TITLE_LENGTH
from daily_insights.models import Client, InsightRecord, InsightStatus


class Base(DeclarativeBase):
    pass


client_keywords = Table(
    "client_keywords",
    Base.metadata,
    Column("client_id", Integer, ForeignKey("clients.id", ondelete="CASCADE"), primary_key=True),
    Column("keyword_id", Integer, ForeignKey("keywords.id", ondelete="CASCADE"), primary_key=True),
)


class ClientORM(Base):
    """SQLAlchemy model for clients table."""

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    keyword_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    keywords: Mapped[List["KeywordORM"]] = relationship(
        secondary=client_keywords, back_populates="clients", order_by="KeywordORM.id"
    )


class KeywordORM(Base):
    """SQLAlchemy model for keywords table."""

    __tablename__ = "keywords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    clients: Mapped[List[ClientORM]] = relationship(
        secondary=client_keywords, back_populates="keywords"
    )


class DailyInsightORM(Base):
    """SQLAlchemy model for daily_insights table."""

    __tablename__ = "daily_insights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[str] = mapped_column(String(MAX_DESCRIPTION_LENGTH), nullable=False, default="")
    source: Mapped[str] = mapped_column(Text, nullable=False, default="")
    industry: Mapped[str] = mapped_column(Text, nullable=False, default=DEFAULT_INDUSTRY)
    client_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, default=InsightStatus.PENDING.value)
    scraped_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_daily_insights_client_status", "client_id", "status"),
        Index("idx_daily_insights_scraped_at", "scraped_at"),
    )


class RunHistoryORM(Base):
    """SQLAlchemy model for run_history table."""

    __tablename__ = "run_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_epoch: Mapped[int] = mapped_column(Integer, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    forced_client_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    articles_scraped: Mapped[int] = mapped_column(Integer, default=0)
    articles_saved: Mapped[int] = mapped_column(Integer, default=0)
    duplicates: Mapped[int] = mapped_column(Integer, default=0)
    error_count: Mapped[int] = mapped_column(Integer, default=0)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# Conversion functions between ORM models and dataclasses


def client_orm_to_dataclass(orm: ClientORM) -> Client:
    """Convert a ClientORM instance to a Client dataclass."""
    return Client(
        id=orm.id,
        name=orm.name,
        keyword_text=orm.keyword_text,
        keywords=[keyword.name for keyword in orm.keywords],
        is_active=bool(orm.is_active),
    )


def insight_orm_to_dataclass(orm: DailyInsightORM) -> InsightRecord:
    """Convert a DailyInsightORM instance to an InsightRecord dataclass."""
    return InsightRecord(
        id=orm.id,
        title=orm.title,
        url=orm.url,
        description=orm.description or "",
        source=orm.source or "",
        industry=orm.industry,
        client_id=orm.client_id,
        status=InsightStatus(orm.status),
        scraped_at=orm.scraped_at,
        created_at=orm.created_at,
    )


def insight_dataclass_to_orm(record: InsightRecord, created_at: datetime) -> DailyInsightORM:
    """Convert an InsightRecord dataclass to a DailyInsightORM instance."""
    return DailyInsightORM(
        title=record.title[:MAX_TITLE_LENGTH],
        url=record.url,
        description=(record.description or "")[:MAX_DESCRIPTION_LENGTH],
        source=record.source or "",
        industry=record.industry,
        client_id=record.client_id,
        status=record.status.value,
        scraped_at=record.scraped_at or created_at,
        created_at=created_at,
    )
