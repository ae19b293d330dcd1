"""
notebrief Result Schemas

Typed summary shapes returned by the retrieval pipeline.
"""

from .summary import (
    Relevance,
    SortBy,
    RecentRecord,
    OlderRecords,
    SummaryResult,
    PeriodInfo,
    PagesProcessed,
    PeriodSummaryResult,
    PeriodOptions,
    SearchResponse,
    PeriodResponse,
)

__all__ = [
    "Relevance",
    "SortBy",
    "RecentRecord",
    "OlderRecords",
    "SummaryResult",
    "PeriodInfo",
    "PagesProcessed",
    "PeriodSummaryResult",
    "PeriodOptions",
    "SearchResponse",
    "PeriodResponse",
]
