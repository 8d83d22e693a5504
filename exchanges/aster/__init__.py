"""
Aster Funding Connector

Aster is a Binance-compatible perpetual futures exchange.

Endpoints Used:
    GET /fapi/v1/premiumIndex   - Latest funding for every symbol
    GET /fapi/v1/fundingRate    - Funding history for one symbol

Symbols:
    Native symbols are Binance style pairs ("BTCUSDT"). Base symbols passed to
    fetch_history are mapped BTC -> BTCUSDT and ETH -> ETHUSDT; anything else is
    passed through unchanged.

Funding Period:
    premiumIndex carries no interval field, so the period is inferred from
    nextFundingTime - time. Gaps shorter than 30 minutes (or missing fields)
    fall back to 8 hours.
"""

import re
from typing import Any, Dict, List

from core.connector_interface import FundingConnector
from core.exceptions import EmptyResponseError
from core.normalization import build_history_point, build_snapshot, fraction_to_pct, parse_number
from core.schemas import FundingHistoryPoint, FundingSnapshot, HistoryParams
from .api_client import AsterAPIClient

DEFAULT_PERIOD_HOURS = 8.0
MIN_INFERRED_PERIOD_HOURS = 0.5

SYMBOL_MAP = {
    "BTC": "BTCUSDT",
    "ETH": "ETHUSDT",
}


def resolve_symbol(symbol: str) -> str:
    """
    Map a base symbol to Aster's native pair.

    Example:
        >>> resolve_symbol("btc")
        'BTCUSDT'
        >>> resolve_symbol("SOLUSDT")
        'SOLUSDT'
    """
    key = re.sub(r"[^A-Za-z]", "", symbol).upper()
    return SYMBOL_MAP.get(key, symbol)


def infer_period_hours(record: Dict[str, Any]) -> float:
    """
    Infer the funding period from the gap between time and nextFundingTime.

    Example:
        >>> infer_period_hours({"time": 0, "nextFundingTime": 4 * 3600 * 1000})
        4.0
    """
    next_funding = parse_number(record.get("nextFundingTime"))
    observed = parse_number(record.get("time"))
    if next_funding is not None and observed is not None:
        diff_ms = next_funding - observed
        if diff_ms > 0:
            hours = diff_ms / (1000 * 60 * 60)
            if hours >= MIN_INFERRED_PERIOD_HOURS:
                return round(hours, 2)
    return DEFAULT_PERIOD_HOURS


class AsterConnector(FundingConnector):
    """Funding connector for Aster."""

    name = "aster"
    label = "Aster"

    def create_client(self) -> AsterAPIClient:
        return AsterAPIClient(base_url=self.options.base_url, api_key=self.options.api_key)

    async def _fetch_latest(self) -> List[FundingSnapshot]:
        client = await self.get_client()
        records = await client.get_premium_index()

        if not records:
            raise EmptyResponseError("Aster premium index response empty")

        return [
            build_snapshot(
                symbol=record.get("symbol", ""),
                exchange=self.label,
                funding_rate_pct=fraction_to_pct(record.get("lastFundingRate")),
                period_hours=infer_period_hours(record),
                mark_price=parse_number(record.get("markPrice")),
                collected_at=parse_number(record.get("time")),
                next_funding_at=parse_number(record.get("nextFundingTime")),
            )
            for record in records
        ]

    async def _fetch_history(self, symbol: str, params: HistoryParams) -> List[FundingHistoryPoint]:
        client = await self.get_client()
        native = resolve_symbol(symbol)
        records = await client.get_funding_rate_history(native, params.from_ms, params.to_ms)

        if not records:
            raise EmptyResponseError(f"Aster funding history empty for {symbol}")

        return [
            build_history_point(
                symbol=record.get("symbol") or native,
                exchange=self.label,
                bucket_start=record.get("fundingTime"),
                bucket_duration_hours=params.granularity_hours,
                avg_funding_rate_pct=fraction_to_pct(record.get("fundingRate")),
                source_count=1,
            )
            for record in records
        ]


__all__ = ["AsterConnector", "AsterAPIClient", "resolve_symbol", "infer_period_hours"]
