"""
Keyword scoring of scraped documents and attribution to a single client.
"""

import re
from functools import lru_cache
from typing import Mapping, Optional

from daily_insights.constants import (
    DEFAULT_INDUSTRY,
    INDUSTRY_LABEL_KEYWORDS,
    SHARED_KEYWORD_WEIGHT,
    SHORT_KEYWORD_MAX_LENGTH,
    UNIQUE_KEYWORD_WEIGHT,
)
from daily_insights.keywords import OwnershipIndex
from daily_insights.models import Attribution, ClientMatch, Registry, ScoreTable, ScrapedDocument


def document_text(document: ScrapedDocument) -> str:
    """Lowercased title and description used for matching."""
    return f"{document.title} {document.description or ''}".lower()


@lru_cache(maxsize=4096)
def _whole_token_pattern(keyword: str) -> re.Pattern:
    # No word character directly before or after the keyword
    return re.compile(rf"(?<!\w){re.escape(keyword)}(?!\w)")


def keyword_matches(keyword: str, text: str) -> bool:
    """
    Check whether a normalized keyword occurs in lowercased text.

    Short keywords (acronyms, small words) must appear as a whole token so
    that e.g. "ai" does not match inside "said". Longer keywords match on
    plain containment.
    """
    if len(keyword) <= SHORT_KEYWORD_MAX_LENGTH:
        return _whole_token_pattern(keyword).search(text) is not None
    return keyword in text


def keyword_weight(keyword: str, ownership: OwnershipIndex) -> int:
    if ownership.is_unique(keyword):
        return UNIQUE_KEYWORD_WEIGHT
    return SHARED_KEYWORD_WEIGHT


def score_document(
    text: str,
    registries: Mapping[int, Registry],
    ownership: OwnershipIndex,
) -> ScoreTable:
    """
    Score every client against one document text.

    Args:
        text: Lowercased document text (see document_text).
        registries: Normalized keywords per client id.
        ownership: Ownership index built from the same registries.

    Returns:
        A ClientMatch per client id, in registry order.
    """
    scores: ScoreTable = {}
    for client_id, registry in registries.items():
        match = ClientMatch(client_id=client_id)
        for keyword in registry:
            if keyword not in ownership:
                continue
            if keyword_matches(keyword, text):
                match.matched_keywords.append(keyword)
                match.score += keyword_weight(keyword, ownership)
        scores[client_id] = match
    return scores


def _fallback_industry(document: ScrapedDocument) -> str:
    return document.industry or DEFAULT_INDUSTRY


def resolve_attribution(
    scores: ScoreTable,
    document: ScrapedDocument,
    forced_client_id: Optional[int] = None,
) -> Attribution:
    """
    Pick the client a document belongs to.

    A forced client id wins unconditionally. Otherwise the strictly highest
    score wins, with ties going to the first client in iteration order. A best
    score of zero leaves the document unassigned.
    """
    if forced_client_id is not None:
        return Attribution(client_id=forced_client_id, industry=_fallback_industry(document))

    best: Optional[ClientMatch] = None
    for match in scores.values():
        if best is None or match.score > best.score:
            best = match

    if best is None or best.score == 0:
        return Attribution(client_id=None, industry=_fallback_industry(document))

    label = ", ".join(best.matched_keywords[:INDUSTRY_LABEL_KEYWORDS])
    return Attribution(client_id=best.client_id, industry=label, score=best.score)
