"""
notebrief Server

FastAPI server exposing the retrieval pipeline.

Endpoints:
- GET /health: Health check
- POST /search: Search notes and summarize the matches
- POST /recent: Digest notes from a recent period

Every endpoint except /health requires the X-API-Key header when
server.api_key is configured, and is rate limited per client.
"""

import hmac
import logging
from datetime import datetime, timezone
from typing import Optional
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..common.config import load_config, NotebriefConfig
from ..common.llm_client import LLMClient
from ..common.schemas import PeriodOptions, PeriodResponse, SearchResponse
from ..retriever.document_store import NotionDocumentStore
from ..retriever.pipeline import Pipeline
from ..retriever.summarizer import Summarizer
from .rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger("notebrief.api.server")


# Global state
config: Optional[NotebriefConfig] = None
store: Optional[NotionDocumentStore] = None
pipeline: Optional[Pipeline] = None
rate_limiter: Optional[SlidingWindowRateLimiter] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup"""
    global config, store, pipeline, rate_limiter

    load_dotenv()
    config = load_config()
    logger.info("Starting up (LLM provider: %s)", config.llm.provider)

    store = NotionDocumentStore(config.notion, config.retry)
    if not store.is_configured:
        logger.warning("Notion API key or database id missing; searches will fail")

    llm_client = LLMClient.from_config(config.llm)
    if not llm_client.is_available:
        logger.warning("LLM client unavailable; summaries will be returned as errors")

    summarizer = Summarizer(llm_client, config.llm, config.retry)
    pipeline = Pipeline(store, summarizer, config.search)
    rate_limiter = SlidingWindowRateLimiter(config.server.rate_limit_per_minute)

    logger.info("Ready on port %d", config.server.port)

    yield

    logger.info("Shutting down...")
    store.close()


app = FastAPI(
    title="notebrief",
    description="Search and summarize a personal Notion knowledge base",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# Request Models
# =============================================================================

class SearchRequest(BaseModel):
    """Search request"""
    query: str
    limit: int = Field(default=10)


# =============================================================================
# Auth & Rate Limiting
# =============================================================================

def require_client(
    request: Request,
    x_api_key: Optional[str] = Header(None),
) -> str:
    """Authenticate the caller and apply the rate limit; returns the client id."""
    expected = config.server.api_key if config else ""

    if expected:
        if not x_api_key or not hmac.compare_digest(x_api_key.encode(), expected.encode()):
            raise HTTPException(status_code=401, detail="Invalid API key")
        client_id = f"key:{x_api_key[:8]}"
    else:
        client_id = f"host:{request.client.host if request.client else 'unknown'}"

    if rate_limiter and not rate_limiter.allow(client_id):
        logger.warning("Rate limit exceeded for %s", client_id)
        raise HTTPException(status_code=429, detail="Too many requests")

    return client_id


def _require_pipeline() -> Pipeline:
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return pipeline


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/health")
def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "notebrief",
        "initialized": pipeline is not None,
        "notion_configured": store.is_configured if store else False,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/search")
def search(body: SearchRequest, client_id: str = Depends(require_client)):
    """Search notes matching a query and summarize them."""
    response: SearchResponse = _require_pipeline().search_and_summarize(body.query, body.limit)

    if response.ok:
        status = 200
    elif response.invalid_input:
        status = 400
    else:
        status = 502
    return JSONResponse(status_code=status, content=response.model_dump(mode="json", by_alias=True))


@app.post("/recent")
def recent(body: PeriodOptions, client_id: str = Depends(require_client)):
    """Digest notes from the last N days."""
    response: PeriodResponse = _require_pipeline().list_recent_with_summary(body)
    status = 200 if response.ok else 502
    return JSONResponse(status_code=status, content=response.model_dump(mode="json", by_alias=True))


# =============================================================================
# CLI Entry Point
# =============================================================================

def run_server():
    """Run the notebrief server"""
    import uvicorn

    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    server_config = load_config().server

    logger.info("Starting server on %s:%d", server_config.host, server_config.port)
    uvicorn.run(
        "notebrief.api.server:app",
        host=server_config.host,
        port=server_config.port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
