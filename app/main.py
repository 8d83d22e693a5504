"""
FastAPI Application - Funding Rate Aggregator API

Serves cross-exchange perpetual funding data from the in-memory cache that the
ingest scheduler keeps fresh.

Supported Exchanges:
    - Aster
    - Paradex
    - Lighter
    - Hyperliquid
    - EdgeX

Endpoints:
    - GET /api/health                  Liveness check
    - GET /api/funding/latest          Latest snapshots across exchanges (?refresh=true)
    - GET /api/funding/history         History for one symbol (?symbol&range&granularity&refresh)
    - GET /api/exchanges               Registered connectors

Usage:
    uvicorn app.main:app --reload --host 0.0.0.0 --port 4000

Docs:
    - Swagger: http://localhost:4000/docs
    - ReDoc: http://localhost:4000/redoc
"""

import re
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings, validate_configuration
from core.logging import logger
from core.schemas import FundingHistoryResponse, FundingLatestResponse
from core.utils.time import current_utc_iso
from services.funding_service import get_funding_service
from services.ingest_scheduler import IngestScheduler, get_or_refresh_history

DEFAULT_RANGE_HOURS = 24
DEFAULT_GRANULARITY_HOURS = 1

_DURATION_PATTERN = re.compile(r"(\d+)([hd])")


def parse_duration_hours(value: Optional[str], default: int) -> int:
    """
    Parse "<n>h" or "<n>d" into hours.

    Examples:
        >>> parse_duration_hours("7d", 24)
        168
        >>> parse_duration_hours("weekly", 24)
        24
    """
    match = _DURATION_PATTERN.search(value or "")
    if not match:
        return default
    amount = int(match.group(1))
    hours = amount * 24 if match.group(2) == "d" else amount
    return hours if hours > 0 else default


# ============================================
# Services
# ============================================

funding_service = get_funding_service()
scheduler = IngestScheduler(
    funding_service,
    interval_ms=settings.funding_refresh_interval_ms,
    history_symbols=settings.history_symbols_list,
    history_granularity_hours=settings.funding_history_granularity_hours,
    history_lookback_hours=settings.funding_history_lookback_hours,
)


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("=== Application Starting ===")
    try:
        validate_configuration()
        await funding_service.initialize()
        await scheduler.start()
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("=== Shutting Down ===")
    try:
        await scheduler.stop()
        await funding_service.shutdown()
        logger.info("=== Shutdown Complete ===")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="Funding Rate Aggregator API",
    description=(
        "Perpetual futures funding rates from Aster, Paradex, Lighter, Hyperliquid and EdgeX, "
        "normalized to percent per funding period.\n\n"
        "## REST Endpoints\n"
        "- `GET /api/funding/latest` - Latest snapshots across exchanges\n"
        "- `GET /api/funding/history` - Funding history for one symbol\n"
        "- `GET /api/exchanges` - Registered connectors\n"
        "- `GET /api/health` - Health check\n\n"
        "Pass `refresh=true` to bypass the cache."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


# ============================================
# System Endpoints
# ============================================

@app.get("/api/health", tags=["System"])
async def health_check():
    """Liveness check."""
    return {"status": "ok", "timestamp": current_utc_iso()}


@app.get("/api/exchanges", tags=["System"])
async def list_exchanges():
    """List registered funding connectors."""
    return {"exchanges": funding_service.connector_names}


# ============================================
# Funding Endpoints
# ============================================

@app.get("/api/funding/latest", response_model=FundingLatestResponse, tags=["Funding"])
async def get_latest_funding(
    refresh: bool = Query(False, description="Bypass the cache and refresh now")
):
    """Latest funding snapshots across all exchanges."""
    cache = await funding_service.get_cached_latest(force_refresh=refresh)
    return FundingLatestResponse(
        updated_at=cache.updated_at or current_utc_iso(),
        snapshots=cache.snapshots,
    )


@app.get("/api/funding/history", response_model=FundingHistoryResponse, tags=["Funding"])
async def get_funding_history(
    symbol: str = Query("BTC", description="Base symbol, e.g. BTC"),
    range: str = Query("24h", description="Lookback, e.g. 24h or 7d"),
    granularity: str = Query("1h", description="Bucket size, e.g. 1h or 1d"),
    refresh: bool = Query(False, description="Bypass the cache and refresh now")
):
    """Funding history for one symbol across all exchanges."""
    range_hours = parse_duration_hours(range, DEFAULT_RANGE_HOURS)
    granularity_hours = parse_duration_hours(granularity, DEFAULT_GRANULARITY_HOURS)

    points = await get_or_refresh_history(
        funding_service,
        symbol,
        granularity_hours,
        range_hours,
        force_refresh=refresh,
    )
    return FundingHistoryResponse(
        symbol=symbol,
        range=range,
        granularity=granularity,
        points=points,
    )
