from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from src.app.ports.output import IBusFeedProvider
from src.domain.algorithms.bus_filters import available_routes, filter_buses
from src.domain.exceptions.feed import FeedError
from src.domain.models.bus import Bus, OccupancyLevel
from src.domain.models.timing import TimingStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CachedTimingStatus:
    status: TimingStatus
    fetched_at: float


@dataclass(slots=True)
class TrackingCoordinator:
    """Owns the current bus collection and the per-bus timing status cache.

    - `refresh()` replaces the collection wholesale and prunes the cache.
    - `fetch_timing_status()` fills the cache, skipping fresh entries and ids
      that already have a lookup in flight.
    - `start()`/`stop()` run `refresh()` periodically in a background task.

    All state is mutated from a single event loop; check-and-mark steps never
    span an `await`, so no lock is needed.
    """

    feed_provider: IBusFeedProvider
    timing_status_ttl_s: float = 300.0
    refresh_interval_s: float = 30.0
    clock: Callable[[], float] = time.time

    buses: tuple[Bus, ...] = field(default=(), init=False)
    is_loading: bool = field(default=False, init=False)
    error_message: str | None = field(default=None, init=False)
    last_refreshed_at: float | None = field(default=None, init=False)

    _timing_cache: dict[str, CachedTimingStatus] = field(
        default_factory=dict, init=False, repr=False
    )
    _timing_in_flight: set[str] = field(default_factory=set, init=False, repr=False)
    _refresh_task: asyncio.Task[None] | None = field(
        default=None, init=False, repr=False
    )

    def _is_stale(self, cached: CachedTimingStatus) -> bool:
        return (self.clock() - cached.fetched_at) > self.timing_status_ttl_s

    def _prune_timing_cache(self, buses: tuple[Bus, ...]) -> None:
        valid_ids = {b.id for b in buses}
        self._timing_cache = {
            bus_id: cached
            for bus_id, cached in self._timing_cache.items()
            if bus_id in valid_ids and not self._is_stale(cached)
        }

    def _store(self, bus_id: str, status: TimingStatus) -> None:
        self._timing_cache[bus_id] = CachedTimingStatus(
            status=status, fetched_at=self.clock()
        )

    async def refresh(self) -> None:
        if self.is_loading:
            logger.debug("Refresh already in progress; skipping")
            return

        self.is_loading = True
        try:
            buses = await self.feed_provider.list_buses()
        except FeedError as exc:
            logger.warning("Bus refresh failed: %s", exc)
            self.error_message = str(exc) or exc.__class__.__name__
            return
        finally:
            self.is_loading = False

        self.buses = buses
        self.last_refreshed_at = self.clock()
        self._prune_timing_cache(buses)
        self.error_message = None

    def timing_status(self, bus_id: str) -> TimingStatus | None:
        cached = self._timing_cache.get(bus_id)
        if cached is None:
            return None
        if self._is_stale(cached):
            del self._timing_cache[bus_id]
            return None
        return cached.status

    async def fetch_timing_status(self, bus: Bus) -> None:
        """Populate the timing cache for `bus`.

        Returns without fetching on a fresh cache hit, or when a lookup for
        the same id is already running (the duplicate caller gets nothing and
        must read the cache later).
        """

        cached = self._timing_cache.get(bus.id)
        if cached is not None and not self._is_stale(cached):
            return

        if bus.id in self._timing_in_flight:
            logger.debug("Timing lookup already in flight for bus %s", bus.id)
            return

        journey_code = (
            bus.journey_code if bus.journey_code is not None else bus.vehicle_ref
        )
        if journey_code is None:
            self._store(bus.id, TimingStatus.unknown())
            return

        self._timing_in_flight.add(bus.id)
        try:
            status = await self.feed_provider.fetch_timing_status(journey_code)
        except FeedError as exc:
            logger.warning("Timing lookup failed for bus %s: %s", bus.id, exc)
            self._store(bus.id, TimingStatus.unknown())
            self.error_message = str(exc) or exc.__class__.__name__
        else:
            self._store(bus.id, status or TimingStatus.unknown())
        finally:
            self._timing_in_flight.discard(bus.id)

    def bus(self, bus_id: str) -> Bus | None:
        for b in self.buses:
            if b.id == bus_id:
                return b
        return None

    def filtered_buses(
        self,
        *,
        routes: set[str] | None = None,
        query: str | None = None,
        occupancy: OccupancyLevel | None = None,
        focused_bus_id: str | None = None,
    ) -> tuple[Bus, ...]:
        return filter_buses(
            self.buses,
            routes=routes,
            query=query,
            occupancy=occupancy,
            focused_bus_id=focused_bus_id,
        )

    def available_routes(self) -> tuple[str, ...]:
        return available_routes(self.buses)

    @property
    def is_running(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def _refresh_loop(self) -> None:
        while True:
            try:
                await self.refresh()
            except Exception:
                logger.exception("Unexpected error during periodic bus refresh")
            await asyncio.sleep(self.refresh_interval_s)

    def start(self) -> None:
        """Start periodic refresh on the running loop; no-op if already running."""

        if self.is_running:
            return
        self._refresh_task = asyncio.create_task(self._refresh_loop())

    async def stop(self) -> None:
        task = self._refresh_task
        self._refresh_task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
