"""
Hyperliquid REST API Client

This module provides an async HTTP client for the Hyperliquid REST API.
Hyperliquid uses POST requests with a JSON body whose "type" selects the query.

API Documentation:
    https://hyperliquid.gitbook.io/hyperliquid-docs/for-developers/api

Endpoints Used:
    POST /info            {"type": "predictedFundings"}
    POST /fundingHistory  {"type": "fundingHistory", "coin", "startTime", "endTime", "intervalHours"}

Usage:
    async with HyperliquidAPIClient() as client:
        predicted = await client.get_predicted_fundings()
        history = await client.get_funding_history("BTC", start_ms, end_ms, 1)
"""

from typing import Any, Dict, List

from core.exceptions import MalformedResponseError
from core.http_client import BaseAPIClient

HYPERLIQUID_VENUE = "HlPerp"


class HyperliquidAPIClient(BaseAPIClient):
    """
    Async HTTP client for Hyperliquid REST API

    Example:
        >>> async with HyperliquidAPIClient() as client:
        ...     predicted = await client.get_predicted_fundings()
        ...     print(predicted["BTC"]["fundingRate"])

    Notes:
        - Responses are decoded into plain dicts keyed by coin / record
        - Only Hyperliquid's own venue (HlPerp) is kept from predictedFundings
    """

    exchange = "hyperliquid"
    DEFAULT_BASE_URL = "https://api.hyperliquid.xyz"

    async def get_predicted_fundings(self) -> Dict[str, Dict[str, Any]]:
        """
        Fetch predicted next funding for all coins.

        Returns:
            Mapping of coin -> {"fundingRate": ..., "nextFundingTime": ...}
            for the HlPerp venue. Coins without an HlPerp entry are omitted.

        Response Format:
            [
              ["BTC", [
                ["BinPerp", {"fundingRate": "0.00015", ...}],
                ["HlPerp", {"fundingRate": "0.0001", "nextFundingTime": 1733961600000}],
              ]],
              ...
            ]
        """
        data = await self._post("/info", {"type": "predictedFundings"})

        if not isinstance(data, list):
            raise MalformedResponseError(f"Hyperliquid predictedFundings returned {type(data).__name__}")

        # Parse nested structure: [[coin, [[venue, data], ...]], ...]
        result: Dict[str, Dict[str, Any]] = {}
        for item in data:
            if not isinstance(item, list) or len(item) < 2:
                continue

            coin, venues = item[0], item[1]
            for venue in venues or []:
                if not isinstance(venue, list) or len(venue) < 2:
                    continue
                if venue[0] == HYPERLIQUID_VENUE and isinstance(venue[1], dict):
                    result[coin] = venue[1]
                    break

        self.logger.debug(f"Fetched predicted funding for {len(result)} coins")
        return result

    async def get_funding_history(
        self,
        coin: str,
        start_time: int,
        end_time: int,
        interval_hours: float
    ) -> List[Dict[str, Any]]:
        """
        Fetch funding history for one coin.

        Returns:
            The fundingRates list of the response (empty if absent)
        """
        payload = {
            "type": "fundingHistory",
            "coin": coin,
            "startTime": start_time,
            "endTime": end_time,
            "intervalHours": interval_hours,
        }
        data = await self._post("/fundingHistory", payload)

        if not isinstance(data, dict):
            raise MalformedResponseError(f"Hyperliquid fundingHistory returned {type(data).__name__}")

        return data.get("fundingRates") or []
