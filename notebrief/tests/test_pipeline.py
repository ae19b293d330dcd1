"""
Pipeline Scenario Tests

End-to-end behaviour of search_and_summarize and list_recent_with_summary
with the document store and LLM mocked out.
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from notebrief.common.config import SearchConfig
from notebrief.common.errors import RetryExhausted
from notebrief.common.schemas import PeriodOptions, PeriodSummaryResult, SummaryResult
from notebrief.retriever.document_store import Document, ERROR_TITLE
from notebrief.retriever.pipeline import GENERIC_ERROR, NO_DATA_SUMMARY, Pipeline


def _docs():
    return [
        Document(id="p1", title="MCP integration notes", date="2024-05-03"),
        Document(id="p2", title="Groceries", tags="food", date="2024-05-04"),
        Document(id="p3", title="Server", content="mcp server tuning", date="2024-05-01"),
    ]


@pytest.fixture
def store():
    store = Mock()
    store.search.return_value = _docs()
    store.list_period.return_value = _docs()
    return store


@pytest.fixture
def summarizer():
    summarizer = Mock()
    summarizer.summarize_query.return_value = SummaryResult(summary="digest")
    summarizer.summarize_period.return_value = PeriodSummaryResult(summary="## Week")
    return summarizer


@pytest.fixture
def pipeline(store, summarizer):
    return Pipeline(store, summarizer, SearchConfig())


class TestSearchAndSummarize:
    def test_happy_path(self, pipeline, store, summarizer):
        response = pipeline.search_and_summarize("  MCP server ", 5)

        assert response.ok is True
        assert response.query == "MCP server"
        store.search.assert_called_once_with("MCP server", 15, fetch_content=True)
        assert response.document_ids == ["p3", "p1"]
        assert response.result.summary == "digest"
        assert {"searchMs", "rankMs", "summarizeMs", "totalMs"} <= set(response.timing)

        ranked = summarizer.summarize_query.call_args.args[1]
        assert [d.id for d in ranked] == ["p3", "p1"]

    def test_scores_reported_per_document(self, pipeline):
        response = pipeline.search_and_summarize("MCP server", 5)
        # p1: title via keyword; p3: title via keyword + phrase in content
        assert response.scores == {"p1": 10, "p3": 12}

    def test_no_results_skips_llm(self, pipeline, store, summarizer):
        store.search.return_value = []

        response = pipeline.search_and_summarize("nothing here", 5)

        assert response.ok is True
        assert response.result.no_data is True
        assert response.result.summary == NO_DATA_SUMMARY
        summarizer.summarize_query.assert_not_called()

    def test_no_relevant_results_skips_llm(self, pipeline, store, summarizer):
        store.search.return_value = [Document(id="x", title="unrelated")]
        response = pipeline.search_and_summarize("MCP", 5)
        assert response.result.no_data is True
        summarizer.summarize_query.assert_not_called()

    def test_load_error_placeholders_not_ranked(self, pipeline, store, summarizer):
        store.search.return_value = _docs() + [
            Document(id="bad", title=ERROR_TITLE, content=ERROR_TITLE, load_error=True),
        ]

        response = pipeline.search_and_summarize("failed page", 5)

        assert response.ok is True
        assert response.result.no_data is True
        assert "bad" not in response.scores
        summarizer.summarize_query.assert_not_called()

    @pytest.mark.parametrize("query", ["", "   ", None, 42])
    def test_invalid_query(self, pipeline, store, query):
        response = pipeline.search_and_summarize(query, 5)
        assert response.ok is False
        assert response.invalid_input is True
        store.search.assert_not_called()

    def test_query_too_long(self, pipeline):
        response = pipeline.search_and_summarize("a" * 501, 5)
        assert response.ok is False
        assert "500" in response.error

    @pytest.mark.parametrize("limit,expected_candidates", [
        (0, 3),
        (-5, 3),
        (1000, 100),
        ("abc", 30),
        (float("inf"), 30),
        (float("nan"), 30),
        (40, 100),
    ])
    def test_limit_clamped(self, pipeline, store, limit, expected_candidates):
        pipeline.search_and_summarize("MCP", limit)
        assert store.search.call_args.args[1] == expected_candidates

    def test_upstream_failure_is_generic(self, pipeline, store, caplog):
        store.search.side_effect = RetryExhausted("notion search", 3)

        response = pipeline.search_and_summarize("MCP", 5)

        assert response.ok is False
        assert response.error == GENERIC_ERROR
        assert response.invalid_input is False
        assert "notion search" in caplog.text


class TestListRecentWithSummary:
    def test_days_back_clamped(self, pipeline, store):
        response = pipeline.list_recent_with_summary(PeriodOptions(days_back=100))

        today = datetime.now(timezone.utc).date()
        expected_start = (today - timedelta(days=30)).isoformat()
        assert store.list_period.call_args.args[0] == expected_start
        assert response.options.days_back == 30
        assert response.result.period.days_analyzed == 30
        assert response.result.period.end_date == today.isoformat()

    def test_options_normalized(self, pipeline, store):
        options = PeriodOptions(
            days_back=0,
            importance_filter=["high", "bogus", "highest"],
            max_pages=500,
            category="  work ",
            sort_by="random",
        )
        response = pipeline.list_recent_with_summary(options)

        kwargs = store.list_period.call_args.kwargs
        assert kwargs["importance_filter"] == ["highest", "high"]
        assert kwargs["category"] == "work"
        assert kwargs["limit"] == 50
        assert kwargs["sort_by"] == "date"
        assert kwargs["fetch_content"] is True
        assert response.options.days_back == 1

    def test_unknown_importance_only_becomes_none(self, pipeline, store):
        pipeline.list_recent_with_summary(PeriodOptions(importance_filter=["bogus"], category="   "))
        kwargs = store.list_period.call_args.kwargs
        assert kwargs["importance_filter"] is None
        assert kwargs["category"] is None

    def test_importance_sort_kept(self, pipeline, store):
        pipeline.list_recent_with_summary(PeriodOptions(sort_by="importance"))
        assert store.list_period.call_args.kwargs["sort_by"] == "importance"

    def test_happy_path_counts(self, pipeline, store, summarizer):
        docs = _docs() + [Document(id="bad", title=ERROR_TITLE, content=ERROR_TITLE, load_error=True)]
        store.list_period.return_value = docs

        response = pipeline.list_recent_with_summary(PeriodOptions(days_back=7))

        assert response.ok is True
        assert response.result.summary == "## Week"
        pages = response.result.pages_processed
        assert (pages.total_found, pages.after_filter, pages.processed) == (4, 3, 3)
        assert response.document_ids == ["p1", "p2", "p3"]

        sent_docs, prompt_options = summarizer.summarize_period.call_args.args
        assert [d.id for d in sent_docs] == ["p1", "p2", "p3"]
        assert prompt_options["days_back"] == 7

    def test_processed_capped_at_twenty(self, pipeline, store, summarizer):
        store.list_period.return_value = [Document(id=f"p{i}", title="t") for i in range(30)]
        response = pipeline.list_recent_with_summary(PeriodOptions(max_pages=50))
        assert response.result.pages_processed.processed == 20
        assert len(summarizer.summarize_period.call_args.args[0]) == 20

    def test_empty_period(self, pipeline, store, summarizer):
        store.list_period.return_value = []

        response = pipeline.list_recent_with_summary()

        assert response.ok is True
        assert response.result.pages_processed.total_found == 0
        assert "No documents" in response.result.summary
        summarizer.summarize_period.assert_not_called()

    def test_failure_is_generic(self, pipeline, store):
        store.list_period.side_effect = RuntimeError("secret internal detail")

        response = pipeline.list_recent_with_summary()

        assert response.ok is False
        assert response.error == GENERIC_ERROR
        assert "secret" not in response.model_dump_json()
