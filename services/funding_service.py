"""
Funding Aggregation Service

Fans out to every registered connector, merges the results, and keeps the
in-memory store up to date.

Fan-out:
    All connector calls are launched together and joined with
    asyncio.gather(..., return_exceptions=True). One connector failing (or
    hanging) never cancels or delays the others. Each call produces a
    ConnectorOutcome; failures are logged with the connector label and
    contribute no records. _fan_out itself never raises.

Read policy:
    get_cached_latest / get_cached_history_for_symbol return the cached value
    unless force_refresh is set or nothing has been cached yet, in which case
    they refresh first.
"""

import asyncio
from typing import Awaitable, Callable, List, NamedTuple, Optional

from core.connector_interface import FundingConnector
from core.connector_manager import ConnectorManager, get_manager
from core.logging import get_logger, log_connector_failure
from core.schemas import FundingHistoryPoint, HistoryParams, SnapshotCache
from core.utils.time import current_utc_iso
from storage.memory_store import InMemoryFundingStore

logger = get_logger(__name__)


class ConnectorOutcome(NamedTuple):
    """Result of one connector call inside a fan-out."""

    name: str
    value: Optional[list] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class FundingService:
    """
    Aggregates funding data across connectors.

    Attributes:
        store: Cache the service writes to (sole writer)
        manager: Registry of connectors to fan out to

    Example:
        >>> service = FundingService()
        >>> latest = await service.get_cached_latest()
        >>> print(latest.updated_at, len(latest.snapshots))
    """

    def __init__(
        self,
        store: Optional[InMemoryFundingStore] = None,
        manager: Optional[ConnectorManager] = None
    ):
        self.store = store or InMemoryFundingStore()
        self.manager = manager or get_manager()

    @property
    def connector_names(self) -> List[str]:
        return self.manager.list_connectors()

    # ============================================
    # Fan-out
    # ============================================

    async def _fan_out(
        self,
        call: Callable[[FundingConnector], Awaitable[list]]
    ) -> List[ConnectorOutcome]:
        connectors = self.manager.connectors()

        async def run(connector: FundingConnector) -> list:
            return await call(connector)

        results = await asyncio.gather(*(run(c) for c in connectors), return_exceptions=True)

        outcomes = []
        for connector, result in zip(connectors, results):
            if isinstance(result, BaseException):
                outcomes.append(ConnectorOutcome(name=connector.label, error=result))
            else:
                outcomes.append(ConnectorOutcome(name=connector.label, value=list(result or [])))
        return outcomes

    @staticmethod
    def _merge(outcomes: List[ConnectorOutcome], operation: str) -> list:
        merged = []
        for outcome in outcomes:
            if outcome.ok:
                merged.extend(outcome.value)
            else:
                log_connector_failure(outcome.name, operation, outcome.error)
        return merged

    # ============================================
    # Latest Snapshots
    # ============================================

    async def refresh_latest(self) -> SnapshotCache:
        """
        Fetch latest snapshots from every connector and replace the cached value.

        updated_at is the latest collected_at among the merged snapshots, or
        now when no connector returned anything. Snapshots with a non-positive
        period are logged and kept.
        """
        outcomes = await self._fan_out(lambda connector: connector.fetch_latest())
        snapshots = self._merge(outcomes, "latest funding")

        # Canonical ISO strings compare chronologically
        updated_at = max((s.collected_at for s in snapshots), default=None) or current_utc_iso()

        invalid = [s for s in snapshots if not s.period_hours or s.period_hours <= 0]
        if invalid:
            sample = ", ".join(f"{s.exchange}:{s.symbol}={s.period_hours}" for s in invalid[:5])
            logger.warning(f"Invalid periodHours detected for {len(invalid)} snapshots ({sample})")

        payload = SnapshotCache(updated_at=updated_at, snapshots=snapshots)
        self.store.set_latest(payload)

        succeeded = sum(1 for o in outcomes if o.ok)
        logger.info(
            f"Refreshed latest funding: {len(snapshots)} snapshots "
            f"from {succeeded}/{len(outcomes)} connectors"
        )
        return payload

    async def get_cached_latest(self, force_refresh: bool = False) -> SnapshotCache:
        cached = self.store.get_latest()
        if force_refresh or cached.updated_at is None:
            return await self.refresh_latest()
        return cached

    # ============================================
    # History
    # ============================================

    async def refresh_history_for_symbol(
        self,
        symbol: str,
        params: HistoryParams,
        granularity_key: str
    ) -> List[FundingHistoryPoint]:
        """
        Fetch history for one symbol from every connector and replace the
        cached bucket for (symbol, granularity_key).
        """
        outcomes = await self._fan_out(lambda connector: connector.fetch_history(symbol, params))
        points = self._merge(outcomes, "history")

        self.store.set_history(symbol, granularity_key, points)
        logger.info(f"Refreshed {symbol.upper()} history ({granularity_key}): {len(points)} points")
        return points

    async def get_cached_history_for_symbol(
        self,
        symbol: str,
        params: HistoryParams,
        granularity_key: str,
        force_refresh: bool = False
    ) -> List[FundingHistoryPoint]:
        cached = self.store.get_history(symbol, granularity_key)
        if force_refresh or not cached:
            return await self.refresh_history_for_symbol(symbol, params, granularity_key)
        return cached

    # ============================================
    # Lifecycle
    # ============================================

    async def initialize(self) -> None:
        await self.manager.initialize_all()

    async def shutdown(self) -> None:
        await self.manager.shutdown_all()


# ============================================
# Global Service Instance
# ============================================

_service: Optional[FundingService] = None


def get_funding_service() -> FundingService:
    """Get the global FundingService instance (singleton pattern)."""
    global _service
    if _service is None:
        _service = FundingService()
    return _service
