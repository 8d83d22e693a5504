"""
Normalized Data Schemas

This module defines Pydantic models for funding data and connector configuration.
These schemas provide a unified, exchange-agnostic data format.

Key Principle:
    Regardless of which exchange the data comes from (Aster, Paradex, EdgeX, ...),
    it gets normalized into these standardized schemas. Python attributes are
    snake_case; serialized JSON uses camelCase aliases so the public response
    shapes read `fundingRatePct`, `periodHours`, `updatedAt` and so on.

Models:
    - FundingSnapshot: One exchange's current funding state for one instrument
    - FundingHistoryPoint: One aggregated historical funding bucket
    - SnapshotCache: The "latest" cache slot (updatedAt + snapshots)
    - HistoryParams: Time range and granularity of a history request
    - ConnectorOptions: Per-connector configuration overrides
    - FundingLatestResponse / FundingHistoryResponse: Read-surface envelopes

Timestamps are canonical ISO-8601 strings (UTC, millisecond precision, "Z" suffix),
produced by core.normalization.to_canonical_timestamp.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from core.utils.time import datetime_to_timestamp


class CamelModel(BaseModel):
    """Base model that serializes with camelCase aliases and accepts either spelling."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ============================================
# Funding Snapshot Schema
# ============================================

class FundingSnapshot(CamelModel):
    """
    Funding Snapshot Data Model

    One exchange's current funding state for one instrument.

    Attributes:
        symbol: Exchange-native instrument spelling (e.g. "BTCUSDT", "BTC-USD-PERP")
        exchange: Source exchange label (e.g. "Aster", "EdgeX")
        funding_rate_pct: Signed funding rate in percent for one funding period
        period_hours: Length of the funding period the rate applies to
        mark_price: Mark/index price if the exchange provides one
        collected_at: When the rate was observed (canonical ISO string)
        next_funding_at: Next funding settlement (canonical ISO string) if known

    Notes:
        - period_hours should be positive; non-positive values are logged by the
          aggregation service rather than rejected here
        - Positive rate: longs pay shorts
    """

    symbol: str = Field(..., examples=["BTCUSDT", "BTC-USD-PERP"])
    exchange: str = Field(..., examples=["Aster", "Paradex"])
    funding_rate_pct: float = Field(..., description="Funding rate in percent per period")
    period_hours: float = Field(..., description="Funding interval in hours")
    mark_price: Optional[float] = Field(None, description="Mark price if available")
    collected_at: str = Field(..., description="Observation time (ISO-8601 UTC)")
    next_funding_at: Optional[str] = Field(None, description="Next funding time (ISO-8601 UTC)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "symbol": "BTCUSDT",
                "exchange": "Aster",
                "fundingRatePct": 0.01,
                "periodHours": 8,
                "markPrice": 43210.12,
                "collectedAt": "2023-11-14T22:13:20.000Z",
                "nextFundingAt": "2023-11-15T00:00:00.000Z"
            }
        }
    )


# ============================================
# Funding History Schema
# ============================================

class FundingHistoryPoint(CamelModel):
    """
    Funding History Point Data Model

    One bucket of historical funding for one symbol on one exchange.

    Attributes:
        symbol: Exchange-native instrument spelling
        exchange: Source exchange label
        bucket_start: Bucket start (canonical ISO string)
        bucket_duration_hours: Bucket length in hours
        avg_funding_rate_pct / max_funding_rate_pct / min_funding_rate_pct:
            Percent rates rounded to 6 decimal places
        source_count: Number of raw observations folded into the bucket
    """

    symbol: str
    exchange: str
    bucket_start: str
    bucket_duration_hours: float = Field(..., gt=0)
    avg_funding_rate_pct: float
    max_funding_rate_pct: float
    min_funding_rate_pct: float
    source_count: int = Field(0, ge=0)


# ============================================
# Cache / Request Schemas
# ============================================

class SnapshotCache(CamelModel):
    """
    The "latest" cache slot.

    updated_at is None until the first refresh has completed.
    """

    updated_at: Optional[str] = None
    snapshots: List[FundingSnapshot] = Field(default_factory=list)


class HistoryParams(BaseModel):
    """
    Time range and granularity for a history request.

    Attributes:
        from_time: Inclusive lower bound (timezone-aware)
        to_time: Upper bound (timezone-aware)
        granularity_hours: Requested bucket size in hours
    """

    from_time: datetime
    to_time: datetime
    granularity_hours: float = Field(..., gt=0)

    @property
    def from_ms(self) -> int:
        return datetime_to_timestamp(self.from_time, milliseconds=True)

    @property
    def to_ms(self) -> int:
        return datetime_to_timestamp(self.to_time, milliseconds=True)


class ConnectorOptions(BaseModel):
    """
    Per-connector configuration.

    Every field is optional; connectors fall back to their own defaults.

    Attributes:
        base_url: REST base URL override
        api_key / api_secret: Credentials (only Aster uses an API key today)
        markets / max_markets: Explicit market allow-list and polling cap (Paradex)
        contract_ids / max_contracts: Explicit contract allow-list and polling cap (EdgeX)
    """

    base_url: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    markets: Optional[List[str]] = None
    max_markets: Optional[int] = None
    contract_ids: Optional[List[str]] = None
    max_contracts: Optional[int] = None

    @field_validator("max_markets", "max_contracts")
    @classmethod
    def validate_caps(cls, v: Optional[int]) -> Optional[int]:
        """Caps below 1 are raised to 1"""
        if v is None:
            return v
        return max(1, v)


# ============================================
# Read Surface Envelopes
# ============================================

class FundingLatestResponse(CamelModel):
    """Response envelope for the latest-snapshots endpoint."""

    updated_at: str
    snapshots: List[FundingSnapshot]


class FundingHistoryResponse(CamelModel):
    """Response envelope for the per-symbol history endpoint."""

    symbol: str
    range: str
    granularity: str
    points: List[FundingHistoryPoint]
