from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models.bus import Bus
from src.domain.models.timing import TimingStatus


class IBusFeedProvider(ABC):
    """Port for the live bus feed: the vehicle list and per-vehicle timings.

    Implementations raise `FeedError` subclasses on failure.
    """

    @abstractmethod
    async def list_buses(self) -> tuple[Bus, ...]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_timing_status(self, journey_code: str) -> TimingStatus | None:
        raise NotImplementedError
