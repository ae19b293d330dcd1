"""
Configuration Management for notebrief

Loads configuration from ~/.notebrief/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import List

logger = logging.getLogger("notebrief.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".notebrief"
CONFIG_PATH = CONFIG_DIR / "config.json"

DEFAULT_IMPORTANCE_LEVELS = ["highest", "high", "medium", "low"]


@dataclass
class NotionConfig:
    """Notion database configuration"""
    api_key: str = ""
    database_id: str = ""
    api_version: str = "2022-06-28"
    base_url: str = "https://api.notion.com/v1"
    timeout: float = 30.0
    title_property: str = "Title"
    category_property: str = "Category"
    importance_property: str = "Importance"
    tags_property: str = "Tags"
    date_property: str = "Date"
    # Notion filter types for the non-title properties
    category_property_type: str = "select"
    importance_property_type: str = "select"
    tags_property_type: str = "rich_text"


@dataclass
class LLMConfig:
    """Summarization model configuration"""
    provider: str = "google"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_output_tokens: int = 2048
    timeout: float = 60.0


@dataclass
class RetryConfig:
    """Backoff schedule shared by every network call site"""
    max_retries: int = 3
    body_fetch_retries: int = 2
    base_delay_ms: int = 1000
    backoff_factor: float = 2.0


@dataclass
class SearchConfig:
    """Limits applied by the search and period pipelines"""
    max_page_size: int = 100
    max_query_length: int = 500
    candidate_multiplier: int = 3
    max_days_back: int = 30
    max_pages: int = 50
    importance_levels: List[str] = field(
        default_factory=lambda: list(DEFAULT_IMPORTANCE_LEVELS)
    )


@dataclass
class ServerConfig:
    """HTTP surface configuration"""
    host: str = "0.0.0.0"
    port: int = 8080
    api_key: str = ""
    rate_limit_per_minute: int = 30


@dataclass
class NotebriefConfig:
    """Main notebrief configuration"""
    notion: NotionConfig = field(default_factory=NotionConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def _parse_notion_config(data: dict) -> NotionConfig:
    """Parse notion section from config dict"""
    notion_data = data.get("notion", {})
    defaults = NotionConfig()
    properties = notion_data.get("properties", {})
    return NotionConfig(
        api_key=notion_data.get("api_key", ""),
        database_id=notion_data.get("database_id", ""),
        api_version=notion_data.get("api_version", defaults.api_version),
        base_url=notion_data.get("base_url", defaults.base_url),
        timeout=notion_data.get("timeout", defaults.timeout),
        title_property=properties.get("title", defaults.title_property),
        category_property=properties.get("category", defaults.category_property),
        importance_property=properties.get("importance", defaults.importance_property),
        tags_property=properties.get("tags", defaults.tags_property),
        date_property=properties.get("date", defaults.date_property),
        category_property_type=properties.get("category_type", defaults.category_property_type),
        importance_property_type=properties.get("importance_type", defaults.importance_property_type),
        tags_property_type=properties.get("tags_type", defaults.tags_property_type),
    )


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    defaults = LLMConfig()
    return LLMConfig(
        provider=llm_data.get("provider", defaults.provider),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", defaults.google_model),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", defaults.anthropic_model),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", defaults.openai_model),
        temperature=llm_data.get("temperature", defaults.temperature),
        max_output_tokens=llm_data.get("max_output_tokens", defaults.max_output_tokens),
        timeout=llm_data.get("timeout", defaults.timeout),
    )


def _parse_retry_config(data: dict) -> RetryConfig:
    """Parse retry section from config dict"""
    retry_data = data.get("retry", {})
    defaults = RetryConfig()
    return RetryConfig(
        max_retries=max(1, int(retry_data.get("max_retries", defaults.max_retries))),
        body_fetch_retries=max(1, int(retry_data.get("body_fetch_retries", defaults.body_fetch_retries))),
        base_delay_ms=retry_data.get("base_delay_ms", defaults.base_delay_ms),
        backoff_factor=retry_data.get("backoff_factor", defaults.backoff_factor),
    )


def _parse_search_config(data: dict) -> SearchConfig:
    """Parse search section from config dict"""
    search_data = data.get("search", {})
    defaults = SearchConfig()
    return SearchConfig(
        max_page_size=search_data.get("max_page_size", defaults.max_page_size),
        max_query_length=search_data.get("max_query_length", defaults.max_query_length),
        candidate_multiplier=search_data.get("candidate_multiplier", defaults.candidate_multiplier),
        max_days_back=search_data.get("max_days_back", defaults.max_days_back),
        max_pages=search_data.get("max_pages", defaults.max_pages),
        importance_levels=list(
            search_data.get("importance_levels", defaults.importance_levels)
        ),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    """Parse server section from config dict"""
    server_data = data.get("server", {})
    defaults = ServerConfig()
    return ServerConfig(
        host=server_data.get("host", defaults.host),
        port=server_data.get("port", defaults.port),
        api_key=server_data.get("api_key", ""),
        rate_limit_per_minute=server_data.get(
            "rate_limit_per_minute", defaults.rate_limit_per_minute
        ),
    )


def load_config() -> NotebriefConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.notebrief/config.json)
    3. Default values
    """
    config = NotebriefConfig()

    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.notion = _parse_notion_config(data)
            config.llm = _parse_llm_config(data)
            config.retry = _parse_retry_config(data)
            config.search = _parse_search_config(data)
            config.server = _parse_server_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file: %s", e)

    if os.getenv("NOTION_API_KEY"):
        config.notion.api_key = os.getenv("NOTION_API_KEY")
    if os.getenv("NOTION_DATABASE_ID"):
        config.notion.database_id = os.getenv("NOTION_DATABASE_ID")
    if os.getenv("NOTION_VERSION"):
        config.notion.api_version = os.getenv("NOTION_VERSION")

    _env_llm_map = {
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "GOOGLE_MODEL": "google_model",
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "NOTEBRIEF_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)

    if os.getenv("NOTEBRIEF_API_KEY"):
        config.server.api_key = os.getenv("NOTEBRIEF_API_KEY")
    if os.getenv("NOTEBRIEF_PORT"):
        config.server.port = int(os.getenv("NOTEBRIEF_PORT"))
    if os.getenv("NOTEBRIEF_RATE_LIMIT"):
        config.server.rate_limit_per_minute = int(os.getenv("NOTEBRIEF_RATE_LIMIT"))

    return config
