"""
notebrief

Search and summarize a personal Notion knowledge base with an LLM.

Usage:
    from notebrief.common import load_config, LLMClient
    from notebrief.retriever import NotionDocumentStore, Summarizer, Pipeline
"""

__version__ = "0.1.0"
