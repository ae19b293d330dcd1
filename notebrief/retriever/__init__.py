"""
Retriever - Search and Summarize Personal Notes

Finds notes in a Notion database and summarizes them with an LLM.

Key Components:
- NotionDocumentStore: Builds filter queries and maps pages to Documents
- rank_by_relevance: Additive field/body scoring
- build_query_prompt / build_period_prompt: Prompt construction
- Summarizer: LLM call plus tolerant JSON parsing
- Pipeline: End-to-end search and period digests

Pipeline:
1. Query Notion with an OR-of-keywords filter (or a date window)
2. Fetch body text for each candidate page
3. Score and rank candidates
4. Summarize the top documents with the LLM
"""

from .document_store import NotionDocumentStore, Document, BodyResult, extract_block_text
from .ranking import rank_by_relevance, score_document
from .prompts import build_query_prompt, build_period_prompt
from .summarizer import Summarizer, validate_query_result, validate_period_result
from .pipeline import Pipeline

__all__ = [
    "NotionDocumentStore",
    "Document",
    "BodyResult",
    "extract_block_text",
    "rank_by_relevance",
    "score_document",
    "build_query_prompt",
    "build_period_prompt",
    "Summarizer",
    "validate_query_result",
    "validate_period_result",
    "Pipeline",
]
