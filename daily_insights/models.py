"""
Data models for the daily insights system.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


class InsightStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    ARCHIVED = "archived"


@dataclass
class Client:
    """A monitored client and its keyword material."""
    name: str
    id: Optional[int] = None
    keyword_text: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    is_active: bool = True


@dataclass
class ScrapedDocument:
    """A news document returned by the scraper service."""
    title: str
    url: str
    description: str = ""
    source: str = ""
    industry: Optional[str] = None
    scraped_at: Optional[datetime] = None


@dataclass
class InsightRecord:
    """A persisted, attributed daily insight."""
    title: str
    url: str
    id: Optional[int] = None
    description: str = ""
    source: str = ""
    industry: str = "general"
    client_id: Optional[int] = None
    status: InsightStatus = InsightStatus.PENDING
    scraped_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass
class ClientMatch:
    """Score and matched keywords of one client for one document."""
    client_id: int
    score: int = 0
    matched_keywords: List[str] = field(default_factory=list)


@dataclass
class Attribution:
    """Outcome of resolving a document to a client (or to nobody)."""
    client_id: Optional[int]
    industry: str
    score: int = 0


@dataclass
class ClientInsightSummary:
    """Per-client insight counts."""
    client_id: int
    name: str
    pending: int = 0
    accepted: int = 0
    total: int = 0


@dataclass
class RunResult:
    """Aggregate outcome of one batch run."""
    success: bool
    message: str
    articles_scraped: int = 0
    articles_saved: int = 0
    duplicates: int = 0
    sources_processed: int = 0
    clients_considered: int = 0
    keyword_count: int = 0
    errors: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "stats": {
                "articles_scraped": self.articles_scraped,
                "articles_saved": self.articles_saved,
                "duplicates": self.duplicates,
                "sources_processed": self.sources_processed,
                "clients_considered": self.clients_considered,
                "keyword_count": self.keyword_count,
            },
            "errors": list(self.errors),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


# Matched keywords per client, keyed by client id
ScoreTable = Dict[int, ClientMatch]

# Normalized keywords of one client in discovery order
Registry = Tuple[str, ...]
