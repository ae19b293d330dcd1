"""
notebrief Common Module

Shared infrastructure for the retriever pipeline and the HTTP server.
"""

from .config import NotebriefConfig, load_config
from .errors import (
    NotebriefError,
    InvalidQuery,
    UpstreamError,
    JsonExtractionFailed,
    MalformedSummary,
    SummarizationFailed,
    RetryExhausted,
)
from .llm_client import LLMClient
from .llm_utils import extract_json
from .retry import with_retry

__all__ = [
    "NotebriefConfig",
    "load_config",
    "NotebriefError",
    "InvalidQuery",
    "UpstreamError",
    "JsonExtractionFailed",
    "MalformedSummary",
    "SummarizationFailed",
    "RetryExhausted",
    "LLMClient",
    "extract_json",
    "with_retry",
]
