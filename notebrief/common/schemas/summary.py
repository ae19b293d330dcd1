"""
Summary Result Schemas

Typed shapes for what the pipeline returns. LLM output never reaches these
models directly: it is coerced by the summarizer's validators first.
Wire format uses camelCase field names.
"""

from typing import Dict, List, Optional
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Relevance(str, Enum):
    """Relevance label the model assigns to a recent record"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SortBy(str, Enum):
    """Ordering for period listings"""
    IMPORTANCE = "importance"
    DATE = "date"


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Query summarization
# ============================================================================

class RecentRecord(_WireModel):
    """One recent document as summarized by the model"""
    date: str = ""
    title: str = ""
    content: str = ""
    relevance: Relevance = Relevance.MEDIUM


class OlderRecords(_WireModel):
    """Aggregate of older matching documents"""
    count: int = Field(default=0, ge=0)
    period: str = ""
    summary: str = ""


class SummaryResult(_WireModel):
    """Output of query-based summarization"""
    summary: str = ""
    recent_records: List[RecentRecord] = Field(default_factory=list)
    older_records: OlderRecords = Field(default_factory=OlderRecords)
    no_data: bool = False
    error: bool = False


# ============================================================================
# Period summarization
# ============================================================================

class PeriodInfo(_WireModel):
    start_date: str = ""
    end_date: str = ""
    days_analyzed: int = 0


class PagesProcessed(_WireModel):
    total_found: int = 0
    after_filter: int = 0
    processed: int = 0


class PeriodSummaryResult(_WireModel):
    """Output of period-based summarization"""
    summary: str = ""
    period: PeriodInfo = Field(default_factory=PeriodInfo)
    pages_processed: PagesProcessed = Field(default_factory=PagesProcessed)
    error: bool = False


class PeriodOptions(_WireModel):
    """Caller-supplied options for a period listing (clamped by the pipeline)"""
    days_back: int = 7
    importance_filter: Optional[List[str]] = None
    max_pages: int = 20
    category: Optional[str] = None
    sort_by: str = SortBy.DATE.value


# ============================================================================
# Pipeline envelopes
# ============================================================================

class SearchResponse(_WireModel):
    """Envelope returned by search_and_summarize"""
    ok: bool
    query: str = ""
    result: Optional[SummaryResult] = None
    document_ids: List[str] = Field(default_factory=list)
    scores: Dict[str, int] = Field(default_factory=dict)
    timing: Dict[str, float] = Field(default_factory=dict)
    error: Optional[str] = None
    invalid_input: bool = Field(default=False, exclude=True)


class PeriodResponse(_WireModel):
    """Envelope returned by list_recent_with_summary"""
    ok: bool
    options: Optional[PeriodOptions] = None
    result: Optional[PeriodSummaryResult] = None
    document_ids: List[str] = Field(default_factory=list)
    timing: Dict[str, float] = Field(default_factory=dict)
    error: Optional[str] = None
