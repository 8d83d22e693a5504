"""
Ingest Scheduler

Drives periodic refresh of the funding service.

States:
    idle -> running   start(): runs one cycle immediately, then one per interval
    running -> idle   stop(): cancels the timer; cycles already in flight finish

Cycle:
    1. Refresh latest snapshots
    2. Refresh history for every configured symbol concurrently
    Each step's failure is logged and isolated from the others.

Cycles are not queued: every tick spawns its own task even if the previous
cycle is still running.
"""

import asyncio
import contextlib
from datetime import timedelta
from typing import List, Optional, Set

from core.logging import get_logger
from core.schemas import FundingHistoryPoint, HistoryParams
from core.utils.time import current_utc_datetime
from services.funding_service import FundingService

DEFAULT_INTERVAL_MS = 120_000
DEFAULT_HISTORY_SYMBOLS = ["BTC", "ETH"]
DEFAULT_HISTORY_LOOKBACK_HOURS = 24
DEFAULT_HISTORY_GRANULARITY_HOURS = 1


def history_key(granularity_hours: float, lookback_hours: float) -> str:
    """
    Cache key descriptor for a granularity/lookback pair.

    Example:
        >>> history_key(1, 24)
        '1h-24h'
    """
    return f"{granularity_hours:g}h-{lookback_hours:g}h"


def history_params(granularity_hours: float, lookback_hours: float) -> HistoryParams:
    """Window ending now and starting lookback_hours earlier."""
    now = current_utc_datetime()
    return HistoryParams(
        from_time=now - timedelta(hours=lookback_hours),
        to_time=now,
        granularity_hours=granularity_hours,
    )


async def get_or_refresh_history(
    service: FundingService,
    symbol: str,
    granularity_hours: float,
    lookback_hours: float,
    force_refresh: bool = False
) -> List[FundingHistoryPoint]:
    """
    Read history for a symbol through the service cache, refreshing when empty
    or forced.
    """
    return await service.get_cached_history_for_symbol(
        symbol,
        history_params(granularity_hours, lookback_hours),
        history_key(granularity_hours, lookback_hours),
        force_refresh=force_refresh,
    )


class IngestScheduler:
    """
    Background service that refreshes funding data on a fixed interval.

    Example:
        >>> scheduler = IngestScheduler(service, interval_ms=60_000)
        >>> await scheduler.start()
        >>> ...
        >>> await scheduler.stop()
    """

    def __init__(
        self,
        service: FundingService,
        interval_ms: Optional[int] = None,
        history_symbols: Optional[List[str]] = None,
        history_granularity_hours: Optional[float] = None,
        history_lookback_hours: Optional[float] = None
    ) -> None:
        self._logger = get_logger(__name__)
        self.service = service
        self.interval_ms = interval_ms or DEFAULT_INTERVAL_MS
        self.history_symbols = list(
            history_symbols if history_symbols is not None else DEFAULT_HISTORY_SYMBOLS
        )
        self.history_granularity_hours = history_granularity_hours or DEFAULT_HISTORY_GRANULARITY_HOURS
        self.history_lookback_hours = history_lookback_hours or DEFAULT_HISTORY_LOOKBACK_HOURS

        self._running = asyncio.Event()
        self._timer: Optional[asyncio.Task] = None
        self._cycles: Set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    async def start(self) -> None:
        if self._running.is_set():
            return
        self._running.set()
        self._logger.info(
            f"Starting ingest scheduler (every {self.interval_ms}ms, "
            f"history for {', '.join(self.history_symbols) or 'no symbols'})"
        )
        self._spawn_cycle()
        self._timer = asyncio.create_task(self._tick(), name="ingest_scheduler")

    async def stop(self) -> None:
        if not self._running.is_set():
            return
        self._logger.info("Stopping ingest scheduler...")
        self._running.clear()
        if self._timer:
            self._timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._timer
            self._timer = None

    # ============================================
    # Core Loop
    # ============================================

    async def _tick(self) -> None:
        interval = self.interval_ms / 1000
        while self._running.is_set():
            await asyncio.sleep(interval)
            if not self._running.is_set():
                break
            self._spawn_cycle()

    def _spawn_cycle(self) -> None:
        task = asyncio.create_task(self.run_cycle())
        self._cycles.add(task)
        task.add_done_callback(self._cycles.discard)

    async def run_cycle(self) -> None:
        """Run one refresh cycle. Never raises."""
        try:
            await self.service.refresh_latest()
        except Exception as e:
            self._logger.warning(f"Failed to refresh latest funding snapshots: {e}")

        params = history_params(self.history_granularity_hours, self.history_lookback_hours)
        key = history_key(self.history_granularity_hours, self.history_lookback_hours)

        await asyncio.gather(
            *(self._refresh_symbol(symbol, params, key) for symbol in self.history_symbols)
        )

    async def _refresh_symbol(self, symbol: str, params: HistoryParams, key: str) -> None:
        try:
            await self.service.refresh_history_for_symbol(symbol, params, key)
        except Exception as e:
            self._logger.warning(f"Failed to refresh history for {symbol}: {e}")
