"""
Retrieval Pipeline

Composes the document store, ranking, and summarizer into the two
operations exposed to callers:

1. search_and_summarize: keyword search → body fetch → rank → summarize
2. list_recent_with_summary: period query → body fetch → digest

Both return JSON-serializable envelopes. Failures are reported with a
generic message; the cause only goes to the log.
"""

import time
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from ..common.config import SearchConfig
from ..common.errors import InvalidQuery
from ..common.schemas import (
    PagesProcessed,
    PeriodInfo,
    PeriodOptions,
    PeriodResponse,
    PeriodSummaryResult,
    SearchResponse,
    SortBy,
    SummaryResult,
)
from .document_store import NotionDocumentStore
from .prompts import PERIOD_PROMPT_MAX_DOCUMENTS
from .ranking import rank_by_relevance
from .summarizer import Summarizer

logger = logging.getLogger("notebrief.retriever.pipeline")

GENERIC_ERROR = "An error occurred while processing your request."
NO_DATA_SUMMARY = "No documents related to the query were found."
NO_PERIOD_DATA_SUMMARY = "No documents were found in the requested period."


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 1)


def no_data_result() -> SummaryResult:
    """Canonical result for a query with no relevant documents"""
    return SummaryResult(summary=NO_DATA_SUMMARY, no_data=True)


def no_period_data_result(period: PeriodInfo) -> PeriodSummaryResult:
    """Canonical result for an empty period"""
    return PeriodSummaryResult(summary=NO_PERIOD_DATA_SUMMARY, period=period)


class Pipeline:
    """
    End-to-end search and period summarization.

    Usage:
        pipeline = Pipeline(store, summarizer, config.search)
        response = pipeline.search_and_summarize("MCP server", limit=5)
    """

    def __init__(
        self,
        store: NotionDocumentStore,
        summarizer: Summarizer,
        search_config: Optional[SearchConfig] = None,
    ):
        self._store = store
        self._summarizer = summarizer
        self._config = search_config or SearchConfig()

    # ------------------------------------------------------------------
    # Input validation
    # ------------------------------------------------------------------

    def _validate_query(self, query: Any) -> str:
        if not isinstance(query, str) or not query.strip():
            raise InvalidQuery("Query must be a non-empty string")
        query = query.strip()
        if len(query) > self._config.max_query_length:
            raise InvalidQuery(
                f"Query must be at most {self._config.max_query_length} characters"
            )
        return query

    def _clamp_limit(self, limit: Any) -> int:
        try:
            limit = int(limit)
        except (TypeError, ValueError, OverflowError):
            limit = 10
        return max(1, min(limit, self._config.max_page_size))

    def normalize_options(self, options: Optional[PeriodOptions]) -> PeriodOptions:
        """Clamp period options to supported ranges."""
        options = options or PeriodOptions()
        cfg = self._config

        importance = None
        if options.importance_filter:
            importance = [
                level for level in cfg.importance_levels
                if level in options.importance_filter
            ] or None

        category = (options.category or "").strip() or None
        sort_by = options.sort_by if options.sort_by in (SortBy.IMPORTANCE.value, SortBy.DATE.value) \
            else SortBy.DATE.value

        return PeriodOptions(
            days_back=max(1, min(options.days_back, cfg.max_days_back)),
            importance_filter=importance,
            max_pages=max(1, min(options.max_pages, cfg.max_pages)),
            category=category,
            sort_by=sort_by,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def search_and_summarize(self, query: Any, limit: Any = 10) -> SearchResponse:
        """
        Search, rank, and summarize documents for a free-text query.

        Returns:
            SearchResponse; ``ok`` is False on invalid input (specific
            message) or any other failure (generic message)
        """
        started = time.perf_counter()
        try:
            query = self._validate_query(query)
        except InvalidQuery as e:
            return SearchResponse(ok=False, error=str(e), invalid_input=True)

        limit = self._clamp_limit(limit)
        timing: Dict[str, float] = {}

        try:
            stage = time.perf_counter()
            candidate_count = min(limit * self._config.candidate_multiplier, self._config.max_page_size)
            candidates = [
                d for d in self._store.search(query, candidate_count, fetch_content=True)
                if not d.load_error
            ]
            timing["searchMs"] = _elapsed_ms(stage)

            stage = time.perf_counter()
            ranked = rank_by_relevance(query, candidates, limit)
            timing["rankMs"] = _elapsed_ms(stage)

            if not ranked:
                logger.info("No relevant documents for query %r", query)
                timing["totalMs"] = _elapsed_ms(started)
                return SearchResponse(ok=True, query=query, result=no_data_result(), timing=timing)

            stage = time.perf_counter()
            result = self._summarizer.summarize_query(query, ranked)
            timing["summarizeMs"] = _elapsed_ms(stage)
            timing["totalMs"] = _elapsed_ms(started)

            return SearchResponse(
                ok=True,
                query=query,
                result=result,
                document_ids=[d.id for d in ranked],
                scores={d.id: d.score for d in ranked},
                timing=timing,
            )
        except InvalidQuery as e:
            return SearchResponse(ok=False, query=query, error=str(e), invalid_input=True)
        except Exception as e:
            logger.error("search_and_summarize failed for %r: %s", query, e, exc_info=True)
            return SearchResponse(ok=False, query=query, error=GENERIC_ERROR)

    def list_recent_with_summary(self, options: Optional[PeriodOptions] = None) -> PeriodResponse:
        """List documents from the last ``days_back`` days and digest them."""
        started = time.perf_counter()
        timing: Dict[str, float] = {}
        options = self.normalize_options(options)

        today = datetime.now(timezone.utc).date()
        start_date = today - timedelta(days=options.days_back)
        period = PeriodInfo(
            start_date=start_date.isoformat(),
            end_date=today.isoformat(),
            days_analyzed=options.days_back,
        )

        try:
            stage = time.perf_counter()
            documents = self._store.list_period(
                period.start_date,
                importance_filter=options.importance_filter,
                category=options.category,
                limit=options.max_pages,
                sort_by=options.sort_by,
                fetch_content=True,
            )
            timing["searchMs"] = _elapsed_ms(stage)

            usable = [d for d in documents if not d.load_error]
            processed = usable[:PERIOD_PROMPT_MAX_DOCUMENTS]
            pages = PagesProcessed(
                total_found=len(documents),
                after_filter=len(usable),
                processed=len(processed),
            )

            if not usable:
                timing["totalMs"] = _elapsed_ms(started)
                result = no_period_data_result(period)
                result.pages_processed = pages
                return PeriodResponse(ok=True, options=options, result=result, timing=timing)

            stage = time.perf_counter()
            summary = self._summarizer.summarize_period(processed, self._prompt_options(options, period))
            timing["summarizeMs"] = _elapsed_ms(stage)
            timing["totalMs"] = _elapsed_ms(started)

            result = summary.model_copy(update={"period": period, "pages_processed": pages})
            return PeriodResponse(
                ok=True,
                options=options,
                result=result,
                document_ids=[d.id for d in processed],
                timing=timing,
            )
        except Exception as e:
            logger.error("list_recent_with_summary failed: %s", e, exc_info=True)
            return PeriodResponse(ok=False, options=options, error=GENERIC_ERROR)

    def _prompt_options(self, options: PeriodOptions, period: PeriodInfo) -> Dict[str, Any]:
        return {
            "start_date": period.start_date,
            "end_date": period.end_date,
            "days_back": options.days_back,
            "importance_filter": options.importance_filter,
            "category": options.category,
        }
