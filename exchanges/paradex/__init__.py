"""
Paradex Funding Connector

Paradex lists perpetuals as "<BASE>-USD-PERP". There is no bulk funding
endpoint, so the latest view polls funding/data once per market.

Markets:
    - An explicit `markets` option wins
    - Otherwise /v1/markets filtered to PERP markets ending in -USD-PERP,
      cached on the connector state for the metadata TTL
    - If the market list cannot be fetched: stale cache, then DEFAULT_MARKETS

Latest:
    One request per market (page_size=1), capped at max_markets (default 300).
    A 404 for one market is skipped.

History:
    Cursor pagination over funding/data with a fixed delay between pages.
    A 404 ends the loop; a 429 that survives client retries ends the loop and
    starts the connector cooldown, keeping whatever pages were collected.
"""

import asyncio
import re
from typing import List, Optional

import aiohttp

from core.connector_interface import FundingConnector
from core.exceptions import EmptyResponseError, FundingBoardError, NotFoundError, RateLimitedError
from core.normalization import build_history_point, build_snapshot, fraction_to_pct, parse_number
from core.schemas import FundingHistoryPoint, FundingSnapshot, HistoryParams
from .api_client import ParadexAPIClient

DEFAULT_MARKETS = ["BTC-USD-PERP", "ETH-USD-PERP", "SOL-USD-PERP"]
DEFAULT_MAX_MARKETS = 300
DEFAULT_PERIOD_HOURS = 8.0
MARKET_SUFFIX = "-USD-PERP"


def normalize_base_symbol(symbol: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", symbol).upper()


def is_usd_perp(symbol: str) -> bool:
    return symbol.upper().endswith(MARKET_SUFFIX)


class ParadexConnector(FundingConnector):
    """Funding connector for Paradex."""

    name = "paradex"
    label = "Paradex"

    LATEST_REQUEST_DELAY_SECONDS = 0.1
    HISTORY_PAGE_DELAY_SECONDS = 0.2
    HISTORY_PAGE_SIZE = 500

    def create_client(self) -> ParadexAPIClient:
        return ParadexAPIClient(base_url=self.options.base_url)

    @property
    def max_markets(self) -> int:
        return self.options.max_markets or DEFAULT_MAX_MARKETS

    # ============================================
    # Market Resolution
    # ============================================

    async def get_markets(self) -> List[str]:
        """
        Resolve the list of markets to poll.

        Returns:
            Market symbols; never empty
        """
        if self.options.markets:
            return list(self.options.markets)

        if self.state.metadata_is_fresh():
            return list(self.state.metadata)

        client = await self.get_client()
        try:
            results = await client.get_markets()
            markets = [
                item["symbol"]
                for item in results
                if item.get("asset_kind") == "PERP"
                and isinstance(item.get("symbol"), str)
                and is_usd_perp(item["symbol"])
            ]
            if not markets:
                raise EmptyResponseError("Paradex markets response empty")
            self.state.store_metadata(markets)
            return markets
        except (FundingBoardError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            if self.state.metadata:
                self.logger.warning(f"Paradex markets refresh failed, using stale list: {e}")
                return list(self.state.metadata)
            self.logger.warning(f"Paradex markets unavailable, using defaults: {e}")
            return list(DEFAULT_MARKETS)

    async def resolve_market(self, symbol: str) -> str:
        """
        Map a base symbol ("BTC") to a Paradex market ("BTC-USD-PERP").

        Symbols that already look like a market are returned unchanged; unknown
        symbols are returned as given.
        """
        if is_usd_perp(symbol):
            return symbol

        wanted = normalize_base_symbol(symbol)
        for market in await self.get_markets():
            if normalize_base_symbol(market.split("-")[0]) == wanted:
                return market
        return symbol

    # ============================================
    # Fetch Hooks
    # ============================================

    async def _fetch_latest(self) -> List[FundingSnapshot]:
        client = await self.get_client()
        markets = [m for m in await self.get_markets() if is_usd_perp(m)][: self.max_markets]

        snapshots: List[FundingSnapshot] = []
        for index, market in enumerate(markets):
            if index and self.LATEST_REQUEST_DELAY_SECONDS:
                await asyncio.sleep(self.LATEST_REQUEST_DELAY_SECONDS)

            try:
                page = await client.get_funding_data(market, page_size=1)
            except NotFoundError:
                self.logger.warning(f"Paradex market {market} not found")
                continue

            if not page["results"]:
                continue
            record = page["results"][0]

            snapshots.append(
                build_snapshot(
                    symbol=market,
                    exchange=self.label,
                    funding_rate_pct=fraction_to_pct(record.get("funding_rate")),
                    period_hours=self._period_hours(record.get("funding_period_hours"), DEFAULT_PERIOD_HOURS),
                    mark_price=None,
                    collected_at=record.get("created_at"),
                )
            )

        if not snapshots:
            raise EmptyResponseError("Paradex latest funding response empty")
        return snapshots

    async def _fetch_history(self, symbol: str, params: HistoryParams) -> List[FundingHistoryPoint]:
        client = await self.get_client()
        market = await self.resolve_market(symbol)

        points: List[FundingHistoryPoint] = []
        cursor: Optional[str] = None

        while True:
            try:
                page = await client.get_funding_data(
                    market,
                    start_at=params.from_ms,
                    end_at=params.to_ms,
                    page_size=self.HISTORY_PAGE_SIZE,
                    cursor=cursor,
                )
            except NotFoundError:
                self.logger.warning(f"Paradex market {market} not found for history")
                break
            except RateLimitedError:
                self.logger.warning(f"Paradex rate limit encountered for {market} history")
                self.enter_cooldown()
                break

            for record in page["results"]:
                rate_8h = parse_number(record.get("funding_rate_8h"))
                points.append(
                    build_history_point(
                        symbol=record.get("market") or market,
                        exchange=self.label,
                        bucket_start=record.get("created_at"),
                        bucket_duration_hours=self._period_hours(
                            record.get("funding_period_hours"), params.granularity_hours
                        ),
                        avg_funding_rate_pct=fraction_to_pct(record.get("funding_rate")),
                        max_funding_rate_pct=rate_8h * 100 if rate_8h is not None else None,
                        source_count=1,
                    )
                )

            cursor = page["next"]
            if not cursor:
                break
            await asyncio.sleep(self.HISTORY_PAGE_DELAY_SECONDS)

        if not points:
            self.logger.warning(f"Paradex funding history empty for {market}")
        return points

    @staticmethod
    def _period_hours(value, fallback: float) -> float:
        hours = parse_number(value)
        return hours if hours is not None and hours > 0 else fallback


__all__ = ["ParadexConnector", "ParadexAPIClient", "DEFAULT_MARKETS"]
