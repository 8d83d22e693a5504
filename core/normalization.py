"""
Normalization Layer

Pure functions that turn heterogeneous upstream values into canonical records.

Exchanges disagree on almost everything:
- Rates arrive as fractions (0.0001) or strings ("0.0001"); we store percent
- Timestamps arrive as epoch seconds, epoch milliseconds or ISO strings
- Optional fields are missing, null, or non-numeric strings

Entry points:
    to_canonical_timestamp(value) -> Optional[str]
    build_snapshot(...) -> FundingSnapshot
    build_history_point(...) -> FundingHistoryPoint
"""

import math
from datetime import datetime
from typing import Optional, Union

from core.schemas import FundingHistoryPoint, FundingSnapshot
from core.utils.time import current_utc_iso, parse_iso_datetime, to_iso_string, to_utc_datetime

TimestampLike = Union[int, float, str, datetime, None]
NumberLike = Union[int, float, str, None]

HISTORY_PRECISION = 6


def to_canonical_timestamp(value: TimestampLike) -> Optional[str]:
    """
    Convert any supported timestamp representation to a canonical ISO string.

    Args:
        value: Epoch seconds, epoch milliseconds (>= 1e12), ISO string,
               numeric string, datetime, or None

    Returns:
        Canonical ISO string, or None for missing/non-finite input

    Raises:
        ValueError: If a string is neither numeric nor ISO-8601

    Examples:
        >>> to_canonical_timestamp(1700000000)
        '2023-11-14T22:13:20.000Z'
        >>> to_canonical_timestamp(1700000000000)
        '2023-11-14T22:13:20.000Z'
        >>> to_canonical_timestamp(None) is None
        True
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return to_iso_string(value)

    if isinstance(value, bool):
        return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        numeric = parse_number(text)
        if numeric is not None:
            return to_iso_string(to_utc_datetime(numeric))
        return to_iso_string(parse_iso_datetime(text))

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        return to_iso_string(to_utc_datetime(value))

    return None


def parse_number(value: NumberLike) -> Optional[float]:
    """
    Parse an upstream numeric field.

    Returns:
        float for numbers and numeric strings; None for None, empty or
        non-numeric strings, and non-finite values
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        numeric = float(value)
    elif isinstance(value, str):
        try:
            numeric = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    return numeric if math.isfinite(numeric) else None


def fraction_to_pct(value: NumberLike) -> float:
    """Convert a fractional rate (0.0001) to percent (0.01); missing values become 0."""
    numeric = parse_number(value)
    return (numeric or 0.0) * 100


def round_to_precision(value: float, precision: int = HISTORY_PRECISION) -> float:
    """
    Round a float to a fixed number of decimal places.

    Example:
        >>> round_to_precision(0.0123456789)
        0.012346
    """
    return round(value, precision)


def build_snapshot(
    symbol: str,
    exchange: str,
    funding_rate_pct: float,
    period_hours: float,
    collected_at: TimestampLike,
    mark_price: Optional[float] = None,
    next_funding_at: TimestampLike = None,
) -> FundingSnapshot:
    """
    Build a canonical FundingSnapshot.

    collected_at falls back to "now" when it cannot be resolved; mark_price and
    next_funding_at default to None.
    """
    return FundingSnapshot(
        symbol=symbol,
        exchange=exchange,
        funding_rate_pct=funding_rate_pct,
        period_hours=period_hours,
        mark_price=mark_price,
        collected_at=to_canonical_timestamp(collected_at) or current_utc_iso(),
        next_funding_at=to_canonical_timestamp(next_funding_at),
    )


def build_history_point(
    symbol: str,
    exchange: str,
    bucket_start: TimestampLike,
    bucket_duration_hours: float,
    avg_funding_rate_pct: float,
    max_funding_rate_pct: Optional[float] = None,
    min_funding_rate_pct: Optional[float] = None,
    source_count: int = 0,
) -> FundingHistoryPoint:
    """
    Build a canonical FundingHistoryPoint.

    max/min default to the average; every percentage is rounded to 6 decimals.

    Example:
        >>> build_history_point("BTC", "Aster", 1700000000000, 1, 0.0123456789).avg_funding_rate_pct
        0.012346
    """
    return FundingHistoryPoint(
        symbol=symbol,
        exchange=exchange,
        bucket_start=to_canonical_timestamp(bucket_start) or current_utc_iso(),
        bucket_duration_hours=bucket_duration_hours,
        avg_funding_rate_pct=round_to_precision(avg_funding_rate_pct),
        max_funding_rate_pct=round_to_precision(
            max_funding_rate_pct if max_funding_rate_pct is not None else avg_funding_rate_pct
        ),
        min_funding_rate_pct=round_to_precision(
            min_funding_rate_pct if min_funding_rate_pct is not None else avg_funding_rate_pct
        ),
        source_count=source_count,
    )
