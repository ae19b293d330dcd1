"""
Relevance Ranking

Additive scoring over the documents returned by the structural search:

    title match      10
    tags match        5
    category match    5
    body occurrences  2 each, at most 8

Field matches outweigh body matches, and the body cap keeps a single
keyword-stuffed page from dominating on repetition alone.
"""

import re
import logging
from typing import List

from .document_store import Document

logger = logging.getLogger("notebrief.retriever.ranking")

TITLE_POINTS = 10
TAGS_POINTS = 5
CATEGORY_POINTS = 5
CONTENT_POINTS_PER_MATCH = 2
CONTENT_POINTS_CAP = 8


def count_occurrences(needle: str, haystack: str) -> int:
    """Case-insensitive literal count; the needle is never a pattern."""
    if not needle or not haystack:
        return 0
    return len(re.findall(re.escape(needle), haystack, flags=re.IGNORECASE))


def _field_matches(query: str, keywords: List[str], value: str) -> bool:
    if not value:
        return False
    value = value.lower()
    if query in value:
        return True
    # multi-keyword queries also match on any single keyword
    return len(keywords) > 1 and any(k in value for k in keywords)


def score_document(query: str, doc: Document) -> int:
    """Relevance score of one document for the full query string."""
    normalized = (query or "").strip().lower()
    if not normalized:
        return 0
    keywords = normalized.split()

    score = 0
    if _field_matches(normalized, keywords, doc.title):
        score += TITLE_POINTS
    if _field_matches(normalized, keywords, doc.tags):
        score += TAGS_POINTS
    if _field_matches(normalized, keywords, doc.category):
        score += CATEGORY_POINTS

    occurrences = count_occurrences(normalized, doc.content)
    if occurrences == 0 and len(keywords) > 1:
        occurrences = sum(count_occurrences(k, doc.content) for k in keywords)
    score += min(occurrences * CONTENT_POINTS_PER_MATCH, CONTENT_POINTS_CAP)

    return score


def rank_by_relevance(query: str, documents: List[Document], limit: int) -> List[Document]:
    """
    Score, filter, order, and truncate documents.

    Documents scoring 0 are dropped. Order is score descending, then date
    descending. Each returned document has its ``score`` set.
    """
    scored: List[Document] = []
    for doc in documents:
        doc.score = score_document(query, doc)
        if doc.score > 0:
            scored.append(doc)

    # stable sorts: date first, then score, both descending
    scored.sort(key=lambda d: d.date or "", reverse=True)
    scored.sort(key=lambda d: d.score, reverse=True)

    logger.debug("Ranked %d of %d document(s) for %r", len(scored), len(documents), query)
    return scored[:max(limit, 0)]
