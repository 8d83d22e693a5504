"""
EdgeX REST API Client

Every EdgeX response is wrapped in an envelope {"code": "SUCCESS", "data": ...}.
A code other than SUCCESS is reported as MalformedResponseError.

Endpoints Used:
    GET /api/v1/public/meta/getMetaData                  - Contract list
    GET /api/v1/public/funding/getLatestFundingRate      - Latest funding for one contract
    GET /api/v1/public/funding/getFundingRatePage        - Paginated funding history

Pagination:
    getFundingRatePage returns {"dataList": [...], "nextPageOffsetData": "..."}.
    Pass nextPageOffsetData back as offsetData until it is empty. Page size is
    capped at 100 by the exchange.
"""

from typing import Any, Dict, List, Optional

from core.exceptions import MalformedResponseError
from core.http_client import BaseAPIClient

SUCCESS_CODE = "SUCCESS"
MAX_PAGE_SIZE = 100


class EdgeXAPIClient(BaseAPIClient):
    """Async HTTP client for the EdgeX public REST API."""

    exchange = "edgex"
    DEFAULT_BASE_URL = "https://pro.edgex.exchange"

    async def _get_data(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self._get(path, params=params)
        if not isinstance(response, dict):
            raise MalformedResponseError(f"EdgeX {path} returned {type(response).__name__}")
        if response.get("code") != SUCCESS_CODE:
            raise MalformedResponseError(f"EdgeX {path} response code {response.get('code') or 'UNKNOWN'}")
        return response.get("data")

    async def get_contracts(self) -> List[Dict[str, Any]]:
        """
        Fetch the contract list from exchange metadata.

        Returns:
            Contracts with contractId coerced to str. Contracts flagged
            enableDisplay=false or enableTrade=false are dropped.
        """
        data = await self._get_data("/api/v1/public/meta/getMetaData") or {}
        contracts = []
        for contract in data.get("contractList") or []:
            if contract.get("enableDisplay") is False or contract.get("enableTrade") is False:
                continue
            if contract.get("contractId") is None:
                continue
            contracts.append({**contract, "contractId": str(contract["contractId"])})
        return contracts

    async def get_latest_funding(self, contract_id: str) -> List[Dict[str, Any]]:
        """Fetch latest funding records for one contract."""
        data = await self._get_data(
            "/api/v1/public/funding/getLatestFundingRate",
            params={"contractId": contract_id},
        )
        return data or []

    async def get_funding_rate_page(
        self,
        contract_id: str,
        begin: Optional[int] = None,
        end: Optional[int] = None,
        size: int = MAX_PAGE_SIZE,
        offset: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Fetch one page of funding history.

        Args:
            contract_id: EdgeX contract id
            begin: filterBeginTimeInclusive in milliseconds
            end: filterEndTimeExclusive in milliseconds
            size: Page size (clamped to 1..100)
            offset: nextPageOffsetData from the previous page

        Returns:
            {"dataList": List[dict], "nextPageOffsetData": Optional[str]}
        """
        params = {
            "contractId": contract_id,
            "size": min(max(size, 1), MAX_PAGE_SIZE),
            "offsetData": offset or None,
            "filterBeginTimeInclusive": begin or None,
            "filterEndTimeExclusive": end or None,
        }
        data = await self._get_data("/api/v1/public/funding/getFundingRatePage", params=params) or {}
        return {
            "dataList": data.get("dataList") or [],
            "nextPageOffsetData": data.get("nextPageOffsetData") or None,
        }
