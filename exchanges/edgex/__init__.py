"""
EdgeX Funding Connector

EdgeX identifies instruments by numeric contract id ("10000001") with a display
name ("BTCUSDT"). Funding is fetched one contract at a time.

Contracts:
    - Metadata is cached on the connector state for the metadata TTL (10 min)
    - An explicit `contract_ids` option filters by id or name
    - If metadata is unavailable: stale cache, then DEFAULT_CONTRACT_IDS

Latest:
    Sequential requests, REQUEST_INTERVAL_SECONDS apart, capped at
    max_contracts (default 200). A 429 that survives client retries starts the
    cooldown and stops the loop; any other per-contract failure is logged and
    skipped. With nothing collected, the last good result is served if there is one.

History:
    The requested base symbol is matched against contract names, either
    directly ("BTCUSDT") or via derive_base_symbol ("1000PEPEUSDT" -> "PEPE").
    Pages are followed through nextPageOffsetData.
"""

import asyncio
import re
from typing import Any, Dict, List, Optional

import aiohttp

from core.connector_interface import ConnectorState, FundingConnector
from core.exceptions import EmptyResponseError, FundingBoardError, NotFoundError, RateLimitedError
from core.normalization import build_history_point, build_snapshot, fraction_to_pct, parse_number
from core.schemas import FundingHistoryPoint, FundingSnapshot, HistoryParams
from .api_client import EdgeXAPIClient

DEFAULT_CONTRACT_IDS = ["10000001", "10000002"]
DEFAULT_MAX_CONTRACTS = 200
DEFAULT_PERIOD_HOURS = 8.0
SYMBOL_PREFIXES = ["1000", "1"]
SYMBOL_SUFFIXES = ["USDTPERP", "USDPERP", "USDCPERP", "USDT", "USDC", "USD", "PERP"]

Contract = Dict[str, Any]


# ============================================
# Symbol Helpers
# ============================================

def normalize_contract_name(value: Optional[str]) -> str:
    if not value:
        return ""
    return re.sub(r"[^A-Za-z0-9]", "", value).upper()


def derive_base_symbol(value: Optional[str]) -> str:
    """
    Reduce a contract name to its base asset.

    Strips one leading multiplier prefix, then quote/PERP suffixes repeatedly,
    then any trailing digits.

    Examples:
        >>> derive_base_symbol("BTCUSDT")
        'BTC'
        >>> derive_base_symbol("1000PEPEUSDT")
        'PEPE'
        >>> derive_base_symbol("ETH-USD-PERP")
        'ETH'
    """
    clean = normalize_contract_name(value)
    if not clean:
        return ""

    for prefix in SYMBOL_PREFIXES:
        if clean.startswith(prefix) and len(clean) > len(prefix):
            clean = clean[len(prefix):]
            break

    removed = True
    while removed:
        removed = False
        for suffix in SYMBOL_SUFFIXES:
            if clean.endswith(suffix) and len(clean) > len(suffix):
                clean = clean[: -len(suffix)]
                removed = True
                break

    return re.sub(r"[0-9]+$", "", clean)


def resolve_period_hours(record: Dict[str, Any], contract: Optional[Contract] = None) -> float:
    """Funding interval from the record, then the contract, else 8 hours."""
    for source in (record, contract or {}):
        minutes = parse_number(source.get("fundingRateIntervalMin"))
        if minutes is not None and minutes > 0:
            return minutes / 60
    return DEFAULT_PERIOD_HOURS


def _first_number(*values) -> Optional[float]:
    for value in values:
        numeric = parse_number(value)
        if numeric is not None:
            return numeric
    return None


# ============================================
# Connector
# ============================================

class EdgeXConnector(FundingConnector):
    """Funding connector for EdgeX."""

    name = "edgex"
    label = "EdgeX"

    REQUEST_INTERVAL_SECONDS = 0.25
    HISTORY_PAGE_SIZE = 100

    def create_client(self) -> EdgeXAPIClient:
        return EdgeXAPIClient(base_url=self.options.base_url)

    @property
    def max_contracts(self) -> int:
        return self.options.max_contracts or DEFAULT_MAX_CONTRACTS

    # ============================================
    # Contract Resolution
    # ============================================

    async def _load_contracts(self) -> List[Contract]:
        if self.state.metadata_is_fresh():
            return list(self.state.metadata)

        client = await self.get_client()
        contracts = await client.get_contracts()
        self.state.store_metadata(contracts)
        return contracts

    async def resolve_contracts(self) -> List[Contract]:
        """
        Resolve the contracts to poll, applying the explicit filter and fallbacks.

        Returns:
            Contracts (possibly empty when explicit ids match nothing known)
        """
        explicit = [value.upper() for value in self.options.contract_ids or []]
        fallback = [{"contractId": cid, "contractName": cid} for cid in DEFAULT_CONTRACT_IDS]

        def fallback_contracts() -> List[Contract]:
            if not explicit:
                return fallback
            return [c for c in fallback if c["contractId"].upper() in explicit]

        try:
            contracts = await self._load_contracts()
        except (FundingBoardError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            if self.state.metadata:
                self.logger.warning(f"EdgeX metadata refresh failed, using stale contracts: {e}")
                contracts = list(self.state.metadata)
            else:
                self.logger.warning(f"EdgeX contract resolution fallback due to error: {e}")
                return fallback_contracts()

        if not contracts:
            return fallback_contracts()

        if not explicit:
            return contracts

        filtered = [
            c for c in contracts
            if c["contractId"].upper() in explicit
            or (c.get("contractName") or "").upper() in explicit
        ]
        return filtered or fallback_contracts()

    async def find_contract(self, symbol: str) -> Optional[Contract]:
        target_name = normalize_contract_name(symbol)
        target_base = derive_base_symbol(symbol)
        for contract in await self.resolve_contracts():
            name = contract.get("contractName")
            if normalize_contract_name(name) == target_name:
                return contract
            if derive_base_symbol(name) == target_base:
                return contract
        return None

    # ============================================
    # Fetch Hooks
    # ============================================

    async def _fetch_latest(self) -> List[FundingSnapshot]:
        contracts = await self.resolve_contracts()
        if not contracts:
            raise EmptyResponseError("EdgeX contracts unavailable")

        client = await self.get_client()
        unique = list({c["contractId"]: c for c in contracts}.values())[: self.max_contracts]
        snapshots: List[FundingSnapshot] = []

        for index, contract in enumerate(unique):
            if self.state.in_cooldown():
                break
            if index and self.REQUEST_INTERVAL_SECONDS:
                await asyncio.sleep(self.REQUEST_INTERVAL_SECONDS)

            contract_id = contract["contractId"]
            try:
                records = await client.get_latest_funding(contract_id)
            except RateLimitedError as e:
                self.logger.warning(f"EdgeX failed to fetch latest funding for {contract_id}: {e}")
                self.enter_cooldown()
                break
            except (FundingBoardError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                self.logger.warning(f"EdgeX failed to fetch latest funding for {contract_id}: {e}")
                continue

            for record in records:
                if str(record.get("contractId")) != contract_id:
                    continue
                snapshots.append(self._to_snapshot(record, contract))

        if not snapshots:
            cached = self.state.cached_latest()
            if cached is not None:
                self.logger.warning(f"EdgeX returned no funding; serving {len(cached)} cached snapshots")
                return cached
            raise EmptyResponseError("EdgeX latest funding response empty")

        return snapshots

    def _to_snapshot(self, record: Dict[str, Any], contract: Contract) -> FundingSnapshot:
        return build_snapshot(
            symbol=contract.get("contractName") or record.get("contractName") or contract["contractId"],
            exchange=self.label,
            funding_rate_pct=fraction_to_pct(record.get("fundingRate")),
            period_hours=resolve_period_hours(record, contract),
            mark_price=_first_number(record.get("indexPrice"), record.get("oraclePrice")),
            collected_at=_first_number(record.get("fundingTimestamp"), record.get("fundingTime")),
            next_funding_at=parse_number(record.get("fundingTime")),
        )

    async def _fetch_history(self, symbol: str, params: HistoryParams) -> List[FundingHistoryPoint]:
        contract = await self.find_contract(symbol)
        if contract is None:
            raise EmptyResponseError(f"EdgeX contract not found for symbol {symbol}")

        client = await self.get_client()
        contract_id = contract["contractId"]
        points: List[FundingHistoryPoint] = []
        offset: Optional[str] = None

        while True:
            try:
                page = await client.get_funding_rate_page(
                    contract_id,
                    begin=params.from_ms,
                    end=params.to_ms,
                    size=self.HISTORY_PAGE_SIZE,
                    offset=offset,
                )
            except RateLimitedError:
                self.logger.warning(f"EdgeX rate limit encountered for {contract_id} history")
                self.enter_cooldown()
                break
            except NotFoundError:
                self.logger.warning(f"EdgeX contract {contract_id} history not found")
                break

            for record in page["dataList"]:
                bucket_start = _first_number(record.get("fundingTimestamp"), record.get("fundingTime"))
                points.append(
                    build_history_point(
                        symbol=contract.get("contractName") or record.get("contractName") or contract_id,
                        exchange=self.label,
                        bucket_start=bucket_start if bucket_start is not None else params.from_ms,
                        bucket_duration_hours=resolve_period_hours(record, contract) or params.granularity_hours,
                        avg_funding_rate_pct=fraction_to_pct(record.get("fundingRate")),
                        source_count=1,
                    )
                )

            offset = page["nextPageOffsetData"]
            if not offset:
                break
            if self.REQUEST_INTERVAL_SECONDS:
                await asyncio.sleep(self.REQUEST_INTERVAL_SECONDS)

        if not points:
            cached = self.state.cached_history(ConnectorState.history_key(symbol, params))
            if cached is not None:
                return cached
            self.logger.warning(f"EdgeX funding history empty for {symbol}")
        return points


__all__ = ["EdgeXConnector", "EdgeXAPIClient", "derive_base_symbol", "DEFAULT_CONTRACT_IDS"]
