"""
Paradex REST API Client

Endpoints Used:
    GET /v1/markets        - Market list (symbol, asset_kind, ...)
    GET /v1/funding/data   - Funding records for one market, newest first,
                             cursor paginated via the "next" field

Usage:
    async with ParadexAPIClient() as client:
        markets = await client.get_markets()
        page = await client.get_funding_data("BTC-USD-PERP", page_size=1)
"""

from typing import Any, Dict, List, Optional

from core.exceptions import MalformedResponseError
from core.http_client import BaseAPIClient


class ParadexAPIClient(BaseAPIClient):
    """Async HTTP client for the Paradex public REST API."""

    exchange = "paradex"
    DEFAULT_BASE_URL = "https://api.prod.paradex.trade"
    PREFIX = "/v1"

    async def get_markets(self) -> List[Dict[str, Any]]:
        """
        Fetch all markets.

        Returns:
            The "results" list of the response
        """
        data = await self._get(f"{self.PREFIX}/markets")
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Paradex markets returned {type(data).__name__}")
        return data.get("results") or []

    async def get_funding_data(
        self,
        market: str,
        start_at: Optional[int] = None,
        end_at: Optional[int] = None,
        page_size: int = 100,
        cursor: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Fetch one page of funding records for a market.

        Args:
            market: Paradex market symbol (e.g. "BTC-USD-PERP")
            start_at / end_at: Optional time window in milliseconds
            page_size: Records per page
            cursor: Cursor returned as "next" by the previous page

        Returns:
            {"next": Optional[str], "results": List[dict]}
        """
        params = {
            "market": market,
            "start_at": start_at,
            "end_at": end_at,
            "page_size": page_size,
            "cursor": cursor,
        }
        data = await self._get(f"{self.PREFIX}/funding/data", params=params)
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Paradex funding/data returned {type(data).__name__}")
        return {"next": data.get("next") or None, "results": data.get("results") or []}
