"""
Hyperliquid Funding Connector

Hyperliquid is a decentralized perpetual futures exchange. Its symbols are bare
coins ("BTC", "ETH") rather than pairs.

API Documentation:
    https://hyperliquid.gitbook.io/hyperliquid-docs/for-developers/api

Latest:
    predictedFundings returns predictions for several venues per coin; only the
    HlPerp venue is used. Hyperliquid quotes the rate per 8h period, there is no
    mark price in the response, and collectedAt is the time of the call.

History:
    fundingRates records prefer fundingRate8h over fundingRate. Each record
    becomes one bucket starting at its startTime.
"""

import re
from typing import List

from core.connector_interface import FundingConnector
from core.exceptions import EmptyResponseError
from core.normalization import build_history_point, build_snapshot, fraction_to_pct
from core.schemas import FundingHistoryPoint, FundingSnapshot, HistoryParams
from core.utils.time import current_utc_iso
from .api_client import HyperliquidAPIClient

PERIOD_HOURS = 8.0


def resolve_coin(symbol: str) -> str:
    """
    Strip anything that is not a letter and uppercase.

    Example:
        >>> resolve_coin("btc-perp")
        'BTCPERP'
        >>> resolve_coin("eth")
        'ETH'
    """
    return re.sub(r"[^A-Za-z]", "", symbol).upper()


class HyperliquidConnector(FundingConnector):
    """Funding connector for Hyperliquid."""

    name = "hyperliquid"
    label = "Hyperliquid"

    def create_client(self) -> HyperliquidAPIClient:
        return HyperliquidAPIClient(base_url=self.options.base_url)

    async def _fetch_latest(self) -> List[FundingSnapshot]:
        client = await self.get_client()
        predicted = await client.get_predicted_fundings()
        collected_at = current_utc_iso()

        snapshots = [
            build_snapshot(
                symbol=resolve_coin(coin),
                exchange=self.label,
                funding_rate_pct=fraction_to_pct(data.get("fundingRate")),
                period_hours=PERIOD_HOURS,
                mark_price=None,
                collected_at=collected_at,
                next_funding_at=data.get("nextFundingTime"),
            )
            for coin, data in predicted.items()
        ]

        if not snapshots:
            raise EmptyResponseError("Hyperliquid predicted funding response empty")

        return snapshots

    async def _fetch_history(self, symbol: str, params: HistoryParams) -> List[FundingHistoryPoint]:
        client = await self.get_client()
        coin = resolve_coin(symbol)
        records = await client.get_funding_history(
            coin, params.from_ms, params.to_ms, params.granularity_hours
        )

        if not records:
            raise EmptyResponseError(f"Hyperliquid funding history empty for {symbol}")

        points = []
        for record in records:
            rate = record.get("fundingRate8h")
            if rate is None:
                rate = record.get("fundingRate")
            points.append(
                build_history_point(
                    symbol=resolve_coin(record.get("coin") or coin),
                    exchange=self.label,
                    bucket_start=record.get("startTime"),
                    bucket_duration_hours=params.granularity_hours,
                    avg_funding_rate_pct=fraction_to_pct(rate),
                    source_count=1,
                )
            )
        return points


__all__ = ["HyperliquidConnector", "HyperliquidAPIClient", "resolve_coin"]
