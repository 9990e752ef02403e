"""
Substack Intelligence - HTTP entry point.

Thin FastAPI surface over the extraction client:
- POST /extract        one newsletter
- POST /extract/batch  several newsletters, processed sequentially
- GET  /extract/stats  cache diagnostics
- GET  /health

Extraction failures are reported in the response metadata (never as 5xx);
only bad input (422) or a missing Anthropic credential (503) fail the request.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Security
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, Field

from . import __version__
from .analyst import (
    BatchCoordinator,
    BatchItem,
    BatchResult,
    ClaudeExtractor,
    ClientNotInitializedError,
    ExtractionResult,
    ExtractionStats,
    PreconditionError,
)
from .config import settings

logger = logging.getLogger(__name__)

MAX_BATCH_ITEMS = 25


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()
    # Tests may pre-populate app.state.extractor with a stubbed client
    if getattr(app.state, "extractor", None) is None:
        app.state.extractor = ClaudeExtractor()
    extractor = app.state.extractor
    if not extractor.initialized:
        logger.warning("Claude client not initialized - /extract will return 503")
    logger.info(
        f"Extraction service started (cache={extractor.cache_enabled}, "
        f"rate_limit={extractor.rate_limit_enabled}, fallback={extractor.config.fallback_enabled})"
    )

    yield

    try:
        await extractor.close()
        logger.info("Claude client closed")
    except Exception as e:
        logger.warning(f"Error closing Claude client: {e}")
    finally:
        # A later startup in this process must build a fresh client
        app.state.extractor = None


app = FastAPI(
    title="Substack Intelligence",
    description="Extract company mentions from newsletter content",
    version=__version__,
    lifespan=lifespan,
)


# ----- API Key Security -----

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str = Security(api_key_header)):
    """Verify API key for protected endpoints."""
    if not api_key:
        raise HTTPException(status_code=401, detail="API key required")
    if api_key not in settings.valid_api_keys:
        raise HTTPException(status_code=403, detail="Invalid API key")
    return api_key


def get_extractor(request: Request) -> ClaudeExtractor:
    return request.app.state.extractor


# ----- Request/Response Models -----

class ExtractRequest(BaseModel):
    content: str = Field(max_length=200_000)
    source_label: str = Field(max_length=255)


class BatchExtractRequest(BaseModel):
    items: List[BatchItem] = Field(max_length=MAX_BATCH_ITEMS)


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    claude_initialized: bool
    cache_enabled: bool
    rate_limit_enabled: bool


# ----- Endpoints -----

@app.get("/health", response_model=HealthResponse)
async def health_check(extractor: ClaudeExtractor = Depends(get_extractor)):
    return HealthResponse(
        status="healthy" if extractor.initialized else "degraded",
        timestamp=datetime.now(timezone.utc),
        claude_initialized=extractor.initialized,
        cache_enabled=extractor.cache_enabled,
        rate_limit_enabled=extractor.rate_limit_enabled,
    )


@app.post("/extract", response_model=ExtractionResult)
async def extract_companies(
    request: ExtractRequest,
    api_key: str = Depends(verify_api_key),
    extractor: ClaudeExtractor = Depends(get_extractor),
):
    """Extract company mentions from one newsletter."""
    try:
        return await extractor.extract_companies(request.content, request.source_label)
    except ClientNotInitializedError as e:
        logger.error(f"Extraction unavailable: {e}")
        raise HTTPException(status_code=503, detail="Extraction service not configured")
    except PreconditionError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/extract/batch", response_model=BatchResult)
async def extract_companies_batch(
    request: BatchExtractRequest,
    api_key: str = Depends(verify_api_key),
    extractor: ClaudeExtractor = Depends(get_extractor),
):
    """
    Extract companies from several newsletters, one at a time.

    Items are spaced by the configured batch delay; failed items are counted
    in `failed` and described in `failures`.
    """
    coordinator = BatchCoordinator(extractor)
    try:
        return await coordinator.batch_extract(request.items)
    except ClientNotInitializedError as e:
        logger.error(f"Batch extraction unavailable: {e}")
        raise HTTPException(status_code=503, detail="Extraction service not configured")


@app.get("/extract/stats", response_model=Optional[ExtractionStats])
async def extraction_stats(
    api_key: str = Depends(verify_api_key),
    extractor: ClaudeExtractor = Depends(get_extractor),
):
    """Cache statistics (null when caching is disabled)."""
    return await extractor.get_stats()
