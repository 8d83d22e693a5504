"""
In-Memory Funding Store

Process-wide cache with two shapes:
- one "latest" slot (SnapshotCache: updatedAt + snapshots)
- a map from "<SYMBOL>::<granularity key>" to a list of FundingHistoryPoint

Every read and write copies the records, so callers never hold references to
cache-owned objects. There is no eviction; the scheduler drives a small fixed
set of history keys. Nothing survives a restart.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from core.schemas import FundingHistoryPoint, SnapshotCache


def _copy_points(points: Iterable[FundingHistoryPoint]) -> List[FundingHistoryPoint]:
    return [point.model_copy() for point in points]


class InMemoryFundingStore:
    """
    Volatile funding cache.

    Example:
        >>> store = InMemoryFundingStore()
        >>> store.get_latest().updated_at is None
        True
        >>> store.set_history("btc", "1h-24h", points)
        >>> len(store.get_history("BTC", "1h-24h")) == len(points)
        True
    """

    def __init__(self):
        self._latest = SnapshotCache()
        self._history: Dict[str, List[FundingHistoryPoint]] = {}

    @staticmethod
    def key_for(symbol: str, granularity_key: str) -> str:
        return f"{symbol.upper()}::{granularity_key}"

    def get_latest(self) -> SnapshotCache:
        return self._latest.model_copy(deep=True)

    def set_latest(self, payload: SnapshotCache) -> None:
        # Single assignment; readers see either the old or the new value
        self._latest = payload.model_copy(deep=True)

    def get_history(self, symbol: str, granularity_key: str) -> List[FundingHistoryPoint]:
        return _copy_points(self._history.get(self.key_for(symbol, granularity_key), []))

    def set_history(self, symbol: str, granularity_key: str, points: List[FundingHistoryPoint]) -> None:
        self._history[self.key_for(symbol, granularity_key)] = _copy_points(points)

    def history_keys(self) -> List[str]:
        return list(self._history.keys())


def create_in_memory_store(
    latest: Optional[SnapshotCache] = None,
    history: Optional[Iterable[Tuple[str, str, List[FundingHistoryPoint]]]] = None
) -> InMemoryFundingStore:
    """
    Build a store pre-populated with a latest payload and/or history entries.

    Args:
        latest: Initial latest slot
        history: (symbol, granularity_key, points) tuples
    """
    store = InMemoryFundingStore()
    if latest is not None:
        store.set_latest(latest)
    for symbol, granularity_key, points in history or []:
        store.set_history(symbol, granularity_key, points)
    return store
