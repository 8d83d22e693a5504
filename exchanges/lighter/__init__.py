"""
Lighter Funding Connector

Lighter publishes one funding-rates endpoint covering every market. Records may
name the instrument as "market" or "symbol" and the rate as "rate",
"fundingRate" or "funding_rate".

History:
    Lighter has no public funding history endpoint. fetch_history synthesizes
    points from the current snapshots whose ticker matches the requested symbol
    (one point per snapshot, at its collectedAt). This is a stand-in and is
    logged as such; it is not real history. During a rate-limit cooldown the
    cached snapshots are used.
"""

import re
from typing import List

from core.connector_interface import FundingConnector
from core.exceptions import EmptyResponseError
from core.normalization import build_history_point, build_snapshot, fraction_to_pct, parse_number
from core.schemas import FundingHistoryPoint, FundingSnapshot, HistoryParams
from .api_client import LighterAPIClient, LighterFundingRecord

DEFAULT_PERIOD_HOURS = 8.0
DEFAULT_EXCHANGE_LABEL = "lighter"


def normalize_ticker(symbol: str) -> str:
    """
    Reduce an instrument name to its base ticker.

    Example:
        >>> normalize_ticker("BTC-USD-PERP")
        'BTC'
        >>> normalize_ticker("ethusdt")
        'ETH'
    """
    letters = re.sub(r"[^A-Za-z]", "", symbol)
    letters = re.sub(r"PERP$", "", letters, flags=re.IGNORECASE)
    letters = re.sub(r"USD[TC]?$", "", letters, flags=re.IGNORECASE)
    return letters.upper()


class LighterConnector(FundingConnector):
    """Funding connector for Lighter."""

    name = "lighter"
    label = "Lighter"

    def create_client(self) -> LighterAPIClient:
        return LighterAPIClient(base_url=self.options.base_url)

    async def _fetch_latest(self) -> List[FundingSnapshot]:
        client = await self.get_client()
        records = await client.get_funding_rates()

        if not records:
            raise EmptyResponseError("Lighter funding rates response empty")

        snapshots = []
        for record in records:
            snapshot = self._to_snapshot(record)
            if snapshot is not None:
                snapshots.append(snapshot)

        if not snapshots:
            raise EmptyResponseError("Lighter funding rates contained no usable records")
        return snapshots

    def _to_snapshot(self, record: LighterFundingRecord):
        symbol = record.instrument
        if not symbol:
            self.logger.warning(f"Lighter record missing market or symbol field: {record.model_dump(exclude_none=True)}")
            return None

        interval = parse_number(record.raw_interval_hours)
        return build_snapshot(
            symbol=symbol,
            exchange=(record.exchange or DEFAULT_EXCHANGE_LABEL).lower(),
            funding_rate_pct=fraction_to_pct(record.raw_rate),
            period_hours=interval if interval is not None and interval > 0 else DEFAULT_PERIOD_HOURS,
            mark_price=None,
            collected_at=record.raw_collected_at,
        )

    async def fetch_history(self, symbol: str, params: HistoryParams) -> List[FundingHistoryPoint]:
        """
        Synthesize history from fetch_latest.

        fetch_latest owns the cooldown: a 429 starts it once, and while it runs
        the cached snapshots are used for synthesis.
        """
        return await self._fetch_history(symbol, params)

    async def _fetch_history(self, symbol: str, params: HistoryParams) -> List[FundingHistoryPoint]:
        target = normalize_ticker(symbol)
        snapshots = await self.fetch_latest()
        matching = [s for s in snapshots if normalize_ticker(s.symbol) == target]

        if not matching:
            raise EmptyResponseError(f"Lighter history unavailable for {symbol}")

        self.logger.debug(
            f"Lighter history for {symbol} synthesized from {len(matching)} latest snapshot(s)"
        )
        return [
            build_history_point(
                symbol=snapshot.symbol,
                exchange=snapshot.exchange,
                bucket_start=snapshot.collected_at,
                bucket_duration_hours=params.granularity_hours,
                avg_funding_rate_pct=snapshot.funding_rate_pct,
                source_count=1,
            )
            for snapshot in matching
        ]


__all__ = ["LighterConnector", "LighterAPIClient", "normalize_ticker"]
