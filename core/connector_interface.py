"""
Connector Interface - Abstract Contract for All Funding Sources

This module defines the abstract base class that every exchange adapter implements.
The aggregation service only ever talks to FundingConnector, so adding an exchange
never touches the service, the scheduler, or the API routes.

Contract:
    fetch_latest() -> List[FundingSnapshot]
        Current funding for every instrument the adapter covers.
        Raises when the upstream has nothing usable; the caller treats that as
        "source unavailable this cycle".

    fetch_history(symbol, params) -> List[FundingHistoryPoint]
        Funding history for one base symbol ("BTC") within params.from/to.

Rate-limit cooldown:
    fetch_latest/fetch_history are template methods around the adapter hooks
    _fetch_latest/_fetch_history. When a hook raises RateLimitedError (the HTTP
    client already retried), the connector enters a cooldown window
    (COOLDOWN_SECONDS). While cooling down no upstream call is made: the last
    good result is served instead, or RateLimitedError is raised if there is none.

State:
    All mutable adapter state lives on a ConnectorState owned by the instance
    (metadata cache with TTL, last-good snapshots, history cache, cooldown
    deadline). Two instances of the same adapter never share state.

Example:
    class AsterConnector(FundingConnector):
        name = "aster"
        label = "Aster"

        def create_client(self):
            return AsterAPIClient(base_url=self.options.base_url)

        async def _fetch_latest(self):
            client = await self.get_client()
            ...
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from core.exceptions import RateLimitedError
from core.http_client import BaseAPIClient
from core.logging import get_logger
from core.schemas import ConnectorOptions, FundingHistoryPoint, FundingSnapshot, HistoryParams

METADATA_TTL_SECONDS = 10 * 60
COOLDOWN_SECONDS = 60.0
MS_PER_HOUR = 3_600_000


# ============================================
# Per-Connector State
# ============================================

class ConnectorState:
    """
    Mutable state owned by a single connector instance.

    Attributes:
        metadata: Cached market/contract list (adapter-specific items)
        metadata_fetched_at: Clock reading of the last metadata refresh
        last_latest: Last successful fetch_latest result
        history_cache: Last successful history result per symbol, span and granularity
        rate_limited_until: Clock reading at which the cooldown ends
        clock: Monotonic clock (injectable for tests)
    """

    def __init__(
        self,
        metadata_ttl_seconds: float = METADATA_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.metadata_ttl_seconds = metadata_ttl_seconds
        self.clock = clock
        self.metadata: Optional[List[Any]] = None
        self.metadata_fetched_at: float = 0.0
        self.last_latest: Optional[List[FundingSnapshot]] = None
        self.history_cache: Dict[str, List[FundingHistoryPoint]] = {}
        self.rate_limited_until: float = 0.0

    # Metadata

    def metadata_is_fresh(self) -> bool:
        if self.metadata is None:
            return False
        return self.clock() - self.metadata_fetched_at < self.metadata_ttl_seconds

    def store_metadata(self, items: List[Any]) -> None:
        self.metadata = list(items)
        self.metadata_fetched_at = self.clock()

    # Cooldown

    def in_cooldown(self) -> bool:
        return self.clock() < self.rate_limited_until

    def arm_cooldown(self, seconds: float) -> None:
        self.rate_limited_until = self.clock() + seconds

    # Last-good results

    def remember_latest(self, snapshots: List[FundingSnapshot]) -> None:
        self.last_latest = [s.model_copy() for s in snapshots]

    def cached_latest(self) -> Optional[List[FundingSnapshot]]:
        if self.last_latest is None:
            return None
        return [s.model_copy() for s in self.last_latest]

    def remember_history(self, key: str, points: List[FundingHistoryPoint]) -> None:
        self.history_cache[key] = [p.model_copy() for p in points]

    def cached_history(self, key: str) -> Optional[List[FundingHistoryPoint]]:
        points = self.history_cache.get(key)
        if points is None:
            return None
        return [p.model_copy() for p in points]

    @staticmethod
    def history_key(symbol: str, params: HistoryParams) -> str:
        """
        Key for the last-good history of a symbol.

        Windows with the same span and granularity share one key, whatever
        their end time.

        Example:
            >>> ConnectorState.history_key("btc", params)  # 24h window, 1h buckets
            'BTC::24h::1h'
        """
        span_hours = round((params.to_ms - params.from_ms) / MS_PER_HOUR, 3)
        return f"{symbol.upper()}::{span_hours:g}h::{params.granularity_hours:g}h"


# ============================================
# Connector Base Class
# ============================================

class FundingConnector(ABC):
    """
    Abstract Base Class for Funding Connectors

    Class Attributes:
        name: Registry key (lowercase, e.g. "aster", "edgex")
        label: Exchange label written into records (e.g. "Aster", "EdgeX")
        COOLDOWN_SECONDS: Length of the rate-limit cooldown window

    Abstract Methods:
        - create_client: Build the adapter's REST client
        - _fetch_latest: Adapter-specific latest fetch
        - _fetch_history: Adapter-specific history fetch

    Optional Methods (can be overridden):
        - initialize: Open the REST client session
        - shutdown: Close the REST client session
        - health_check: Verify the upstream is reachable
    """

    name: str
    label: str
    COOLDOWN_SECONDS = COOLDOWN_SECONDS

    def __init__(
        self,
        options: Optional[ConnectorOptions] = None,
        state: Optional[ConnectorState] = None
    ):
        self.options = options or ConnectorOptions()
        self.state = state or ConnectorState()
        self.client: Optional[BaseAPIClient] = None
        self.logger = get_logger(self.__class__.__module__)

    # ============================================
    # Public Contract (template methods)
    # ============================================

    async def fetch_latest(self) -> List[FundingSnapshot]:
        """
        Fetch current funding snapshots, honouring the rate-limit cooldown.

        Raises:
            RateLimitedError: Cooling down with no previous result to serve
            FundingBoardError: Whatever the adapter raised otherwise
        """
        if self.state.in_cooldown():
            return self._serve_latest_during_cooldown()

        try:
            snapshots = await self._fetch_latest()
        except RateLimitedError:
            self.enter_cooldown()
            return self._serve_latest_during_cooldown()

        self.state.remember_latest(snapshots)
        return snapshots

    async def fetch_history(self, symbol: str, params: HistoryParams) -> List[FundingHistoryPoint]:
        """
        Fetch funding history for a base symbol, honouring the rate-limit cooldown.

        Successful non-empty results are cached per (symbol, lookback span, granularity)
        and served while the connector cools down.
        """
        key = ConnectorState.history_key(symbol, params)

        if self.state.in_cooldown():
            return self._serve_history_during_cooldown(key)

        try:
            points = await self._fetch_history(symbol, params)
        except RateLimitedError:
            self.enter_cooldown()
            return self._serve_history_during_cooldown(key)

        if points:
            self.state.remember_history(key, points)
        return points

    def enter_cooldown(self) -> None:
        """Start the rate-limit cooldown window."""
        self.state.arm_cooldown(self.COOLDOWN_SECONDS)
        self.logger.warning(
            f"{self.label} rate limited; pausing upstream calls for {self.COOLDOWN_SECONDS:.0f}s"
        )

    def _serve_latest_during_cooldown(self) -> List[FundingSnapshot]:
        cached = self.state.cached_latest()
        if cached is None:
            raise RateLimitedError(f"{self.label} is rate limited and has no cached snapshots", 429, "")
        self.logger.warning(f"{self.label} cooling down; serving {len(cached)} cached snapshots")
        return cached

    def _serve_history_during_cooldown(self, key: str) -> List[FundingHistoryPoint]:
        cached = self.state.cached_history(key)
        if cached is None:
            raise RateLimitedError(f"{self.label} is rate limited and has no cached history for {key}", 429, "")
        self.logger.warning(f"{self.label} cooling down; serving {len(cached)} cached history points")
        return cached

    # ============================================
    # Adapter Hooks
    # ============================================

    @abstractmethod
    def create_client(self) -> BaseAPIClient:
        """Build the REST client for this exchange from self.options."""

    @abstractmethod
    async def _fetch_latest(self) -> List[FundingSnapshot]:
        """Fetch current snapshots from the upstream. No cooldown handling needed."""

    @abstractmethod
    async def _fetch_history(self, symbol: str, params: HistoryParams) -> List[FundingHistoryPoint]:
        """Fetch history for a base symbol from the upstream. No cooldown handling needed."""

    # ============================================
    # Lifecycle
    # ============================================

    async def get_client(self) -> BaseAPIClient:
        """Return the open REST client, initializing the connector on first use."""
        if self.client is None or self.client.session is None:
            await self.initialize()
        return self.client

    async def initialize(self) -> None:
        """
        Open the REST client session.

        Called by ConnectorManager.initialize_all(); calling it again is a no-op
        while the session is open.
        """
        if self.client is None:
            self.client = self.create_client()
        await self.client.open()
        self.logger.debug(f"{self.label} connector initialized")

    async def shutdown(self) -> None:
        """Close the REST client session."""
        if self.client is not None:
            await self.client.close()
        self.logger.debug(f"{self.label} connector shut down")

    async def health_check(self) -> bool:
        """
        Check whether the upstream currently yields funding data.

        Returns:
            bool: True if fetch_latest returned at least one snapshot

        Notes:
            - Never raises; errors are logged and reported as False
        """
        try:
            snapshots = await self.fetch_latest()
            return len(snapshots) > 0
        except Exception as e:
            self.logger.error(f"{self.label} health check failed: {e}")
            return False

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name!r})>"
