"""
Aster REST API Client

Aster exposes a Binance-compatible futures API under /fapi/v1.

Endpoints Used:
    GET /fapi/v1/premiumIndex   - Mark price, last funding rate, next funding time
    GET /fapi/v1/fundingRate    - Funding rate history (up to 1000 records)

Authentication:
    Public endpoints work without a key. When an API key is configured it is
    sent as the X-MBX-APIKEY header.

Usage:
    async with AsterAPIClient() as client:
        records = await client.get_premium_index()
        history = await client.get_funding_rate_history("BTCUSDT", start_ms, end_ms)
"""

from typing import Any, Dict, List, Optional

from core.exceptions import MalformedResponseError
from core.http_client import BaseAPIClient


class AsterAPIClient(BaseAPIClient):
    """
    Async HTTP client for the Aster futures REST API.

    Methods return the raw upstream records (lists of dicts); the connector
    normalizes them.
    """

    exchange = "aster"
    DEFAULT_BASE_URL = "https://fapi.asterdex.com"
    PREFIX = "/fapi/v1"
    HISTORY_LIMIT = 1000

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        if self.api_key:
            headers["X-MBX-APIKEY"] = self.api_key
        return headers

    async def get_premium_index(self, symbol: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Fetch premium index records.

        Args:
            symbol: Optional exchange symbol (e.g. "BTCUSDT"); all symbols when omitted

        Returns:
            List of premiumIndex records. A single-symbol query returns an object
            upstream; it is wrapped in a list here.
        """
        data = await self._get(f"{self.PREFIX}/premiumIndex", params={"symbol": symbol})
        if isinstance(data, dict):
            return [data]
        if not isinstance(data, list):
            raise MalformedResponseError(f"Aster premiumIndex returned {type(data).__name__}")
        return data

    async def get_funding_rate_history(
        self,
        symbol: str,
        start_time: int,
        end_time: int,
        limit: int = HISTORY_LIMIT
    ) -> List[Dict[str, Any]]:
        """
        Fetch funding rate history for one symbol.

        Args:
            symbol: Exchange symbol (e.g. "BTCUSDT")
            start_time: Start time in milliseconds
            end_time: End time in milliseconds
            limit: Maximum records (Aster caps this at 1000)
        """
        params = {
            "symbol": symbol,
            "startTime": start_time,
            "endTime": end_time,
            "limit": limit,
        }
        data = await self._get(f"{self.PREFIX}/fundingRate", params=params)
        if not isinstance(data, list):
            raise MalformedResponseError(f"Aster fundingRate returned {type(data).__name__}")
        return data
