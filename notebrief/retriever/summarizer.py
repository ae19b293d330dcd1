"""
Summarizer

Sends summarization prompts to the LLM and turns its free-text answer into
typed results.

Model output is never trusted: JSON is located by a fallback chain, then every
field is coerced into shape. Anything that still goes wrong becomes a
default result with ``error`` set; callers never see an exception from
this layer.
"""

import json
import logging
import math
from typing import Any, Callable, Dict, List, Optional

from ..common.config import LLMConfig, RetryConfig
from ..common.errors import MalformedSummary, SummarizationFailed
from ..common.llm_client import LLMClient
from ..common.llm_utils import extract_json
from ..common.retry import retry_from_config
from ..common.schemas import (
    OlderRecords,
    PeriodSummaryResult,
    RecentRecord,
    Relevance,
    SummaryResult,
)
from .document_store import Document
from .prompts import build_period_prompt, build_query_prompt

logger = logging.getLogger("notebrief.retriever.summarizer")

EMPTY_SUMMARY = "No summary available."
FAILED_SUMMARY = "Summary could not be generated."

_RELEVANCE_VALUES = {r.value for r in Relevance}


def _as_str(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    if value is None or isinstance(value, (dict, list)):
        return default
    return str(value)


def _as_count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    if isinstance(value, (int, float)):
        return max(int(value), 0)
    if isinstance(value, str):
        try:
            return max(int(value.strip()), 0)
        except ValueError:
            return 0
    return 0


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def _get(parsed: Dict[str, Any], camel: str, snake: str) -> Any:
    if camel in parsed:
        return parsed[camel]
    return parsed.get(snake)


def _coerce_relevance(value: Any) -> Relevance:
    if isinstance(value, Relevance):
        return value
    normalized = value.strip().lower() if isinstance(value, str) else ""
    if normalized in _RELEVANCE_VALUES:
        return Relevance(normalized)
    return Relevance.MEDIUM


def validate_query_result(parsed: Any) -> SummaryResult:
    """
    Coerce an untyped payload into a SummaryResult.

    Total and idempotent: any input (including ``{}``, non-dicts, and
    fields of the wrong type) yields a complete result. Feeding the
    ``model_dump(by_alias=True)`` of a result back in returns an equal result.
    """
    if not isinstance(parsed, dict):
        parsed = {}

    records: List[RecentRecord] = []
    raw_records = _get(parsed, "recentRecords", "recent_records")
    if isinstance(raw_records, list):
        for item in raw_records:
            if not isinstance(item, dict):
                continue
            records.append(RecentRecord(
                date=_as_str(item.get("date")),
                title=_as_str(item.get("title")),
                content=_as_str(item.get("content")),
                relevance=_coerce_relevance(item.get("relevance")),
            ))

    older = _get(parsed, "olderRecords", "older_records")
    if not isinstance(older, dict):
        older = {}

    return SummaryResult(
        summary=_as_str(parsed.get("summary")) or EMPTY_SUMMARY,
        recent_records=records,
        older_records=OlderRecords(
            count=_as_count(older.get("count")),
            period=_as_str(older.get("period")),
            summary=_as_str(older.get("summary")),
        ),
        no_data=_as_bool(_get(parsed, "noData", "no_data")),
        error=_as_bool(parsed.get("error")),
    )


def validate_period_result(parsed: Any) -> PeriodSummaryResult:
    """Coerce an untyped payload into a PeriodSummaryResult (summary only)."""
    if not isinstance(parsed, dict):
        parsed = {}
    return PeriodSummaryResult(
        summary=_as_str(parsed.get("summary")) or EMPTY_SUMMARY,
        error=_as_bool(parsed.get("error")),
    )


def failed_query_result() -> SummaryResult:
    return SummaryResult(summary=FAILED_SUMMARY, no_data=True, error=True)


def failed_period_result() -> PeriodSummaryResult:
    return PeriodSummaryResult(summary=FAILED_SUMMARY, error=True)


class Summarizer:
    """
    Summarization client.

    Usage:
        summarizer = Summarizer(LLMClient.from_config(cfg.llm), cfg.llm, cfg.retry)
        result = summarizer.summarize_query("MCP server", ranked_docs)
    """

    def __init__(
        self,
        llm_client: LLMClient,
        llm_config: Optional[LLMConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self._llm = llm_client
        self._llm_config = llm_config or LLMConfig()
        self._retry = retry_config or RetryConfig()
        self._sleep = sleep

    @property
    def is_available(self) -> bool:
        return self._llm is not None and self._llm.is_available

    def summarize(self, prompt: str) -> str:
        """
        Send a prompt and return the raw model text.

        Raises:
            RetryExhausted: Every attempt failed (UpstreamError underneath)
        """
        cfg = self._llm_config
        return retry_from_config(
            lambda: self._llm.generate(
                prompt,
                temperature=cfg.temperature,
                max_tokens=cfg.max_output_tokens,
                timeout=cfg.timeout,
            ),
            self._retry,
            "llm summarize",
            sleep=self._sleep,
        )

    def _generate_json(self, prompt: str) -> Dict[str, Any]:
        if not self.is_available:
            raise SummarizationFailed("LLM client is not available")
        raw = self.summarize(prompt)
        parsed = json.loads(extract_json(raw))
        if not isinstance(parsed, dict):
            raise MalformedSummary(f"expected a JSON object, got {type(parsed).__name__}")
        return parsed

    def summarize_query(self, query: str, documents: List[Document]) -> SummaryResult:
        """Summarize ranked documents for a query. Never raises."""
        try:
            parsed = self._generate_json(build_query_prompt(query, documents))
            return validate_query_result(parsed)
        except Exception as e:
            logger.error("Query summarization failed: %s", e, exc_info=True)
            return failed_query_result()

    def summarize_period(self, documents: List[Document], options: Dict[str, Any]) -> PeriodSummaryResult:
        """Summarize documents in a date window. Never raises."""
        try:
            parsed = self._generate_json(build_period_prompt(documents, options))
            return validate_period_result(parsed)
        except Exception as e:
            logger.error("Period summarization failed: %s", e, exc_info=True)
            return failed_period_result()
