"""
Document Store Client

Queries a Notion database and maps its pages into Documents.

- Multi-term keyword filters (title / tags / category, OR-combined)
- Period filters (date window with optional importance and category)
- Per-page body text from block children, fetched on demand
"""

import logging
from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass

import httpx

from ..common.config import NotionConfig, RetryConfig
from ..common.errors import InvalidQuery, RetryExhausted, UpstreamError
from ..common.retry import retry_from_config

logger = logging.getLogger("notebrief.retriever.document_store")

MAX_PAGE_SIZE = 100
MAX_CONTENT_LENGTH = 1000
MAX_TAGS_LENGTH = 500
UNTITLED = "Untitled"
ERROR_TITLE = "[Error] Failed to load page"

# Block kinds whose rich_text is part of the body. Anything else is skipped.
TEXT_BLOCK_TYPES = frozenset({
    "paragraph",
    "heading_1",
    "heading_2",
    "heading_3",
    "bulleted_list_item",
    "numbered_list_item",
    "to_do",
    "toggle",
    "quote",
    "callout",
    "code",
})


@dataclass
class Document:
    """A single page from the document store"""
    id: str
    title: str = UNTITLED
    content: str = ""  # empty until fetch_body
    category: str = ""
    importance: str = ""
    tags: str = ""
    date: str = ""
    created_time: str = ""
    last_edited_time: str = ""
    url: str = ""
    score: int = 0  # set by ranking; 0 means unranked
    load_error: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "importance": self.importance,
            "tags": self.tags,
            "date": self.date,
            "createdTime": self.created_time,
            "lastEditedTime": self.last_edited_time,
            "url": self.url,
            "score": self.score,
        }


@dataclass
class BodyResult:
    """Body text of a page; ``error`` is set when it could not be fetched"""
    content: str = ""
    error: bool = False


def _rich_text_plain(items: Any) -> str:
    if not isinstance(items, list):
        return ""
    return "".join(
        item.get("plain_text", "") for item in items if isinstance(item, dict)
    )


def _property_text(prop: Optional[Dict[str, Any]]) -> str:
    """Flatten a Notion property value into a plain string"""
    if not prop:
        return ""
    prop_type = prop.get("type", "")
    value = prop.get(prop_type)

    if prop_type in ("title", "rich_text"):
        return _rich_text_plain(value)
    if prop_type in ("select", "status"):
        return (value or {}).get("name", "")
    if prop_type == "multi_select":
        return ", ".join(opt.get("name", "") for opt in (value or []))
    if prop_type == "date":
        return (value or {}).get("start", "")
    if value is None:
        return ""
    return str(value)


def extract_block_text(blocks: List[Dict[str, Any]], max_length: int = MAX_CONTENT_LENGTH) -> str:
    """
    Concatenate the text of recognized blocks.

    Unknown block kinds are dropped silently so new Notion block types
    never break body extraction.
    """
    if not isinstance(blocks, list):
        return ""
    parts: List[str] = []

    for block in blocks:
        if not isinstance(block, dict):
            continue
        block_type = block.get("type", "")
        if block_type not in TEXT_BLOCK_TYPES:
            continue

        block_data = block.get(block_type)
        if not isinstance(block_data, dict):
            continue
        text = _rich_text_plain(block_data.get("rich_text", [])).strip()
        if text:
            parts.append(text)

    return " ".join(parts).strip()[:max_length]


class NotionDocumentStore:
    """
    Client for a single Notion database.

    Usage:
        with NotionDocumentStore(config.notion, config.retry) as store:
            docs = store.search("MCP server", limit=10, fetch_content=True)
    """

    def __init__(
        self,
        notion_config: NotionConfig,
        retry_config: Optional[RetryConfig] = None,
        http_client: Optional[httpx.Client] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Initialize the store client.

        Args:
            notion_config: Credentials, database id, and property names
            retry_config: Backoff schedule (defaults to RetryConfig())
            http_client: Pre-built client, mainly for tests
            sleep: Sleep function used between retries
        """
        self._config = notion_config
        self._retry = retry_config or RetryConfig()
        self._sleep = sleep
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=notion_config.base_url,
            headers={
                "Authorization": f"Bearer {notion_config.api_key}",
                "Notion-Version": notion_config.api_version,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(notion_config.timeout),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._config.api_key and self._config.database_id)

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> "NotionDocumentStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Query building
    # ------------------------------------------------------------------

    def _predicate(self, prop: str, prop_type: str, op: str, value: Any) -> Dict[str, Any]:
        return {"property": prop, prop_type: {op: value}}

    def build_multi_term_filter(self, query: str, limit: int) -> Dict[str, Any]:
        """
        Build a database query matching any keyword in any field.

        Each whitespace-separated keyword contributes three clauses
        (title contains, tags contains, category equals), all flattened
        under one top-level ``or``.

        Raises:
            InvalidQuery: The query contains no keywords
        """
        keywords = (query or "").split()
        if not keywords:
            raise InvalidQuery("Search query must contain at least one keyword")

        cfg = self._config
        clauses: List[Dict[str, Any]] = []
        for keyword in keywords:
            clauses.append(self._predicate(cfg.title_property, "title", "contains", keyword))
            clauses.append(self._predicate(cfg.tags_property, cfg.tags_property_type, "contains", keyword))
            # exact match only: partial tokens would pull in whole categories
            clauses.append(self._predicate(cfg.category_property, cfg.category_property_type, "equals", keyword))

        return {
            "filter": {"or": clauses},
            "sorts": [
                {"property": cfg.date_property, "direction": "descending"},
                {"property": cfg.importance_property, "direction": "descending"},
            ],
            "page_size": min(limit, MAX_PAGE_SIZE),
        }

    def build_filtered_period_query(
        self,
        start_date: str,
        importance_filter: Optional[List[str]] = None,
        category: Optional[str] = None,
        limit: int = MAX_PAGE_SIZE,
        sort_by: str = "date",
    ) -> Dict[str, Any]:
        """Build a query for pages dated on or after ``start_date``."""
        cfg = self._config
        predicates: List[Dict[str, Any]] = [
            self._predicate(cfg.date_property, "date", "on_or_after", start_date)
        ]

        if importance_filter:
            if len(importance_filter) == 1:
                predicates.append(self._predicate(
                    cfg.importance_property, cfg.importance_property_type, "equals", importance_filter[0]
                ))
            else:
                predicates.append({"or": [
                    self._predicate(cfg.importance_property, cfg.importance_property_type, "equals", level)
                    for level in importance_filter
                ]})

        if category:
            predicates.append(self._predicate(
                cfg.category_property, cfg.category_property_type, "equals", category
            ))

        query_filter = predicates[0] if len(predicates) == 1 else {"and": predicates}

        if sort_by == "importance":
            sorts = [
                {"property": cfg.importance_property, "direction": "descending"},
                {"property": cfg.date_property, "direction": "descending"},
            ]
        else:
            sorts = [{"property": cfg.date_property, "direction": "descending"}]

        return {
            "filter": query_filter,
            "sorts": sorts,
            "page_size": min(limit, MAX_PAGE_SIZE),
        }

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _query_database(self, body: Dict[str, Any], label: str) -> List[Dict[str, Any]]:
        path = f"/databases/{self._config.database_id}/query"

        def _call() -> Dict[str, Any]:
            response = self._http.post(path, json=body)
            if not response.is_success:
                raise UpstreamError(
                    f"Notion query returned {response.status_code}",
                    status_code=response.status_code,
                )
            return response.json()

        data = retry_from_config(_call, self._retry, label, sleep=self._sleep)
        results = data.get("results", [])
        return results if isinstance(results, list) else []

    def search(self, query: str, limit: int, fetch_content: bool = False) -> List[Document]:
        """
        Find pages whose title, tags, or category match any keyword.

        Args:
            query: Free-text query, split on whitespace
            limit: Page size (capped at MAX_PAGE_SIZE)
            fetch_content: Also fetch each page's body text

        Returns:
            Documents in store order (date desc, importance desc)
        """
        body = self.build_multi_term_filter(query, limit)
        records = self._query_database(body, "notion search")
        documents = self._map_records(records)
        logger.info("Search matched %d page(s)", len(documents))

        if fetch_content:
            self._attach_bodies(documents)
        return documents

    def list_period(
        self,
        start_date: str,
        importance_filter: Optional[List[str]] = None,
        category: Optional[str] = None,
        limit: int = MAX_PAGE_SIZE,
        sort_by: str = "date",
        fetch_content: bool = True,
    ) -> List[Document]:
        """List pages dated within a window, optionally filtered."""
        body = self.build_filtered_period_query(
            start_date,
            importance_filter=importance_filter,
            category=category,
            limit=limit,
            sort_by=sort_by,
        )
        records = self._query_database(body, "notion period query")
        documents = self._map_records(records)
        logger.info("Period query since %s returned %d page(s)", start_date, len(documents))

        if fetch_content:
            self._attach_bodies(documents)
        return documents

    def fetch_body(self, document_id: str) -> BodyResult:
        """
        Fetch a page's body text.

        Never raises: failures come back as ``BodyResult(error=True)``.
        """
        path = f"/blocks/{document_id}/children"

        def _call() -> Dict[str, Any]:
            response = self._http.get(path, params={"page_size": MAX_PAGE_SIZE})
            if not response.is_success:
                raise UpstreamError(
                    f"Notion block fetch returned {response.status_code}",
                    status_code=response.status_code,
                )
            return response.json()

        try:
            data = retry_from_config(
                _call,
                self._retry,
                f"notion body fetch {document_id}",
                max_retries=self._retry.body_fetch_retries,
                sleep=self._sleep,
            )
        except RetryExhausted:
            return BodyResult(content="", error=True)

        if not isinstance(data, dict):
            logger.warning("Unexpected block payload for %s: %s", document_id, type(data).__name__)
            return BodyResult(content="", error=True)
        return BodyResult(content=extract_block_text(data.get("results")))

    def _attach_bodies(self, documents: List[Document]) -> None:
        failures = 0
        for doc in documents:
            if doc.load_error:
                continue
            body = self.fetch_body(doc.id)
            if body.error:
                failures += 1
            doc.content = body.content
        if failures:
            logger.warning("Body unavailable for %d of %d page(s)", failures, len(documents))

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def _map_records(self, records: List[Any]) -> List[Document]:
        documents: List[Document] = []
        seen_ids = set()

        for index, raw in enumerate(records):
            try:
                doc = self.to_document(raw)
            except Exception as e:
                logger.warning("Failed to map page at index %d: %s", index, e)
                doc = self._placeholder(raw, index)

            if doc.id in seen_ids:
                continue
            seen_ids.add(doc.id)
            documents.append(doc)

        return documents

    def _placeholder(self, raw: Any, index: int) -> Document:
        raw_id = raw.get("id") if isinstance(raw, dict) else None
        return Document(
            id=raw_id if isinstance(raw_id, str) and raw_id else f"error-{index}",
            title=ERROR_TITLE,
            content=ERROR_TITLE,
            load_error=True,
        )

    def _extract_title(self, properties: Dict[str, Any]) -> str:
        """Configured title property first, then any title-typed property"""
        title = _property_text(properties.get(self._config.title_property))
        if title:
            return title
        for prop in properties.values():
            if isinstance(prop, dict) and prop.get("type") == "title":
                return _property_text(prop)
        return ""

    def to_document(self, raw: Dict[str, Any]) -> Document:
        """Map a raw Notion page object to a Document (no body text)."""
        if not isinstance(raw, dict):
            raise TypeError(f"expected page object, got {type(raw).__name__}")

        page_id = raw.get("id")
        if not isinstance(page_id, str) or not page_id:
            raise ValueError("page has no id")

        properties = raw.get("properties") or {}
        if not isinstance(properties, dict):
            raise TypeError("page properties must be an object")

        cfg = self._config
        created_time = raw.get("created_time", "")

        return Document(
            id=page_id,
            title=self._extract_title(properties).strip() or UNTITLED,
            category=_property_text(properties.get(cfg.category_property)),
            importance=_property_text(properties.get(cfg.importance_property)),
            tags=_property_text(properties.get(cfg.tags_property))[:MAX_TAGS_LENGTH],
            date=_property_text(properties.get(cfg.date_property)) or created_time,
            created_time=created_time,
            last_edited_time=raw.get("last_edited_time", ""),
            url=raw.get("url", ""),
        )
