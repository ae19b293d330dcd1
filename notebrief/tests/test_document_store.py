"""
Tests for the Notion document store client

Covers query building, page mapping, body extraction, and failure isolation.
"""

import json
import pytest
import httpx

from notebrief.common.config import NotionConfig, RetryConfig
from notebrief.common.errors import InvalidQuery, RetryExhausted
from notebrief.retriever.document_store import (
    ERROR_TITLE,
    MAX_CONTENT_LENGTH,
    NotionDocumentStore,
    extract_block_text,
)


def _rich(text):
    return [{"type": "text", "plain_text": text}]


def make_page(page_id, title="", category=None, importance=None, tags=None,
              date=None, created="2024-05-01T09:00:00.000Z"):
    """Build a raw Notion page object"""
    properties = {"Title": {"type": "title", "title": _rich(title)}}
    if category is not None:
        properties["Category"] = {"type": "select", "select": {"name": category}}
    if importance is not None:
        properties["Importance"] = {"type": "select", "select": {"name": importance}}
    if tags is not None:
        properties["Tags"] = {"type": "rich_text", "rich_text": _rich(tags)}
    if date is not None:
        properties["Date"] = {"type": "date", "date": {"start": date}}
    return {
        "object": "page",
        "id": page_id,
        "created_time": created,
        "last_edited_time": "2024-05-02T09:00:00.000Z",
        "url": f"https://www.notion.so/{page_id}",
        "properties": properties,
    }


def make_block(block_type, text):
    return {"type": block_type, block_type: {"rich_text": _rich(text)}}


@pytest.fixture
def notion_config():
    return NotionConfig(api_key="secret", database_id="db1")


@pytest.fixture
def retry_config():
    return RetryConfig(max_retries=3, body_fetch_retries=2, base_delay_ms=1)


def make_store(handler, notion_config, retry_config, sleeps=None):
    http = httpx.Client(
        base_url=notion_config.base_url,
        transport=httpx.MockTransport(handler),
    )
    sleep = sleeps.append if sleeps is not None else (lambda s: None)
    return NotionDocumentStore(notion_config, retry_config, http_client=http, sleep=sleep)


class TestMultiTermFilter:
    @pytest.fixture
    def store(self, notion_config, retry_config):
        return make_store(lambda r: httpx.Response(200, json={}), notion_config, retry_config)

    def test_mcp_server_has_six_or_clauses(self, store):
        query = store.build_multi_term_filter("MCP server", 10)
        clauses = query["filter"]["or"]

        assert len(clauses) == 6
        assert clauses[0] == {"property": "Title", "title": {"contains": "MCP"}}
        assert clauses[1] == {"property": "Tags", "rich_text": {"contains": "MCP"}}
        assert clauses[2] == {"property": "Category", "select": {"equals": "MCP"}}
        assert clauses[3]["title"] == {"contains": "server"}

    @pytest.mark.parametrize("text,count", [
        ("one", 1),
        ("  two   words ", 2),
        ("a b c d e", 5),
    ])
    def test_three_clauses_per_keyword(self, store, text, count):
        query = store.build_multi_term_filter(text, 10)
        assert len(query["filter"]["or"]) == 3 * count
        assert all("or" not in clause for clause in query["filter"]["or"])

    def test_category_uses_exact_match(self, store):
        query = store.build_multi_term_filter("notes", 10)
        category_clauses = [c for c in query["filter"]["or"] if c["property"] == "Category"]
        assert category_clauses == [{"property": "Category", "select": {"equals": "notes"}}]

    def test_sort_and_page_size(self, store):
        query = store.build_multi_term_filter("x", 250)
        assert query["sorts"] == [
            {"property": "Date", "direction": "descending"},
            {"property": "Importance", "direction": "descending"},
        ]
        assert query["page_size"] == 100
        assert store.build_multi_term_filter("x", 7)["page_size"] == 7

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_empty_query_rejected(self, store, text):
        with pytest.raises(InvalidQuery):
            store.build_multi_term_filter(text, 10)

    def test_configured_property_types(self, retry_config):
        config = NotionConfig(api_key="k", database_id="d", tags_property="Labels",
                              tags_property_type="multi_select")
        store = make_store(lambda r: httpx.Response(200, json={}), config, retry_config)
        clauses = store.build_multi_term_filter("x", 5)["filter"]["or"]
        assert clauses[1] == {"property": "Labels", "multi_select": {"contains": "x"}}


class TestPeriodQuery:
    @pytest.fixture
    def store(self, notion_config, retry_config):
        return make_store(lambda r: httpx.Response(200, json={}), notion_config, retry_config)

    def test_date_only(self, store):
        query = store.build_filtered_period_query("2024-05-01")
        assert query["filter"] == {"property": "Date", "date": {"on_or_after": "2024-05-01"}}
        assert query["sorts"] == [{"property": "Date", "direction": "descending"}]

    def test_single_importance_and_category(self, store):
        query = store.build_filtered_period_query(
            "2024-05-01", importance_filter=["high"], category="work", limit=20
        )
        predicates = query["filter"]["and"]
        assert len(predicates) == 3
        assert predicates[1] == {"property": "Importance", "select": {"equals": "high"}}
        assert predicates[2] == {"property": "Category", "select": {"equals": "work"}}
        assert query["page_size"] == 20

    def test_multiple_importance_levels_or_combined(self, store):
        query = store.build_filtered_period_query("2024-05-01", importance_filter=["highest", "high"])
        importance = query["filter"]["and"][1]
        assert importance == {"or": [
            {"property": "Importance", "select": {"equals": "highest"}},
            {"property": "Importance", "select": {"equals": "high"}},
        ]}

    def test_importance_sort(self, store):
        query = store.build_filtered_period_query("2024-05-01", sort_by="importance")
        assert [s["property"] for s in query["sorts"]] == ["Importance", "Date"]


class TestMapping:
    @pytest.fixture
    def store(self, notion_config, retry_config):
        return make_store(lambda r: httpx.Response(200, json={}), notion_config, retry_config)

    def test_full_page(self, store):
        raw = make_page("p1", title="MCP notes", category="dev", importance="high",
                        tags="mcp, server", date="2024-05-03")
        doc = store.to_document(raw)

        assert doc.id == "p1"
        assert doc.title == "MCP notes"
        assert doc.category == "dev"
        assert doc.importance == "high"
        assert doc.tags == "mcp, server"
        assert doc.date == "2024-05-03"
        assert doc.content == ""
        assert doc.url == "https://www.notion.so/p1"
        assert doc.to_dict()["lastEditedTime"] == "2024-05-02T09:00:00.000Z"

    def test_defaults_and_created_time_fallback(self, store):
        doc = store.to_document(make_page("p2"))
        assert doc.title == "Untitled"
        assert doc.date == "2024-05-01T09:00:00.000Z"
        assert doc.category == ""

    def test_multi_select_tags_joined_and_truncated(self, store):
        raw = make_page("p3", title="t")
        raw["properties"]["Tags"] = {
            "type": "multi_select",
            "multi_select": [{"name": "a" * 300}, {"name": "b" * 300}],
        }
        doc = store.to_document(raw)
        assert len(doc.tags) == 500
        assert doc.tags.startswith("a" * 300 + ", ")

    def test_title_found_under_other_name(self, store):
        raw = make_page("p4")
        raw["properties"] = {"Name": {"type": "title", "title": _rich("Renamed")}}
        assert store.to_document(raw).title == "Renamed"


class TestSearch:
    def test_search_maps_records_and_isolates_failures(self, notion_config, retry_config):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"results": [
                make_page("p1", title="MCP integration notes"),
                "not a page",
                {"id": "p3", "properties": "broken"},
                make_page("p4", title="Server setup"),
            ]})

        store = make_store(handler, notion_config, retry_config)
        docs = store.search("MCP server", 10)

        assert [d.id for d in docs] == ["p1", "error-1", "p3", "p4"]
        assert docs[1].title == ERROR_TITLE and docs[1].load_error
        assert docs[2].title == ERROR_TITLE and docs[2].content == ERROR_TITLE
        assert all(d.content == "" for d in (docs[0], docs[3]))

        assert requests[0].url.path == "/v1/databases/db1/query"
        body = json.loads(requests[0].content)
        assert len(body["filter"]["or"]) == 6

    def test_search_fetches_bodies_when_requested(self, notion_config, retry_config):
        def handler(request):
            if request.url.path.endswith("/query"):
                return httpx.Response(200, json={"results": [make_page("p1", title="a")]})
            assert request.url.path == "/v1/blocks/p1/children"
            return httpx.Response(200, json={"results": [make_block("paragraph", "hello body")]})

        store = make_store(handler, notion_config, retry_config)
        docs = store.search("a", 5, fetch_content=True)
        assert docs[0].content == "hello body"

    def test_search_retries_then_raises(self, notion_config, retry_config):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, json={"message": "unavailable"})

        sleeps = []
        store = make_store(handler, notion_config, retry_config, sleeps=sleeps)

        with pytest.raises(RetryExhausted):
            store.search("x", 5)
        assert len(calls) == 3
        assert len(sleeps) == 2

    def test_list_period_posts_period_filter(self, notion_config, retry_config):
        bodies = []

        def handler(request):
            if request.url.path.endswith("/query"):
                bodies.append(json.loads(request.content))
                return httpx.Response(200, json={"results": []})
            return httpx.Response(200, json={"results": []})

        store = make_store(handler, notion_config, retry_config)
        assert store.list_period("2024-05-01", category="work", limit=10) == []
        assert bodies[0]["filter"]["and"][0]["date"] == {"on_or_after": "2024-05-01"}


class TestFetchBody:
    def test_failure_returns_error_result(self, notion_config, retry_config):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404, json={"message": "not found"})

        store = make_store(handler, notion_config, retry_config)
        body = store.fetch_body("missing")

        assert body.error is True
        assert body.content == ""
        assert len(calls) == 2  # reduced budget

    def test_transport_failure_returns_error_result(self, notion_config, retry_config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        store = make_store(handler, notion_config, retry_config)
        body = store.fetch_body("p1")
        assert body.error is True

    def test_success(self, notion_config, retry_config):
        def handler(request):
            return httpx.Response(200, json={"results": [
                make_block("heading_1", "Title"),
                make_block("paragraph", "Body"),
            ]})

        store = make_store(handler, notion_config, retry_config)
        body = store.fetch_body("p1")
        assert body.error is False
        assert body.content == "Title Body"

    def test_non_object_payload_returns_error_result(self, notion_config, retry_config):
        def handler(request):
            return httpx.Response(200, json=[1, 2])

        store = make_store(handler, notion_config, retry_config)
        body = store.fetch_body("p1")
        assert body.error is True
        assert body.content == ""

    def test_malformed_blocks_skipped(self, notion_config, retry_config):
        def handler(request):
            return httpx.Response(200, json={"results": [
                {"type": "paragraph", "paragraph": "x"},
                {"type": "quote", "quote": None},
                make_block("paragraph", "Body"),
            ]})

        store = make_store(handler, notion_config, retry_config)
        body = store.fetch_body("p1")
        assert body.error is False
        assert body.content == "Body"

    def test_non_list_results(self, notion_config, retry_config):
        def handler(request):
            return httpx.Response(200, json={"results": 5})

        store = make_store(handler, notion_config, retry_config)
        assert store.fetch_body("p1").content == ""


class TestExtractBlockText:
    def test_recognized_kinds_joined_with_spaces(self):
        blocks = [
            make_block("paragraph", "  one "),
            make_block("heading_2", "two"),
            make_block("bulleted_list_item", "three"),
            make_block("numbered_list_item", "four"),
            make_block("to_do", "five"),
            make_block("toggle", "six"),
            make_block("quote", "seven"),
            make_block("callout", "eight"),
            make_block("code", "nine"),
        ]
        assert extract_block_text(blocks) == "one two three four five six seven eight nine"

    def test_unknown_kinds_skipped(self):
        blocks = [
            make_block("paragraph", "kept"),
            {"type": "image", "image": {"external": {"url": "x"}}},
            make_block("synced_block", "dropped"),
            {"type": "divider", "divider": {}},
        ]
        assert extract_block_text(blocks) == "kept"

    def test_truncated(self):
        blocks = [make_block("paragraph", "x" * 800), make_block("paragraph", "y" * 800)]
        text = extract_block_text(blocks)
        assert len(text) == MAX_CONTENT_LENGTH

    def test_empty(self):
        assert extract_block_text([]) == ""
        assert extract_block_text([make_block("paragraph", "   ")]) == ""
