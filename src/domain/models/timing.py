from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.domain.exceptions.feed import BusDecodeError
from src.domain.models.feed_fields import opt_int


class TimingState(Enum):
    ON_TIME = 0
    EARLY = 1
    LATE = 2
    UNKNOWN = -1


@dataclass(frozen=True, slots=True)
class TimingStatus:
    """Punctuality of one vehicle, from the per-vehicle details endpoint."""

    minutes: int | None = None
    status: int | None = None

    @staticmethod
    def unknown() -> "TimingStatus":
        return TimingStatus(minutes=None, status=None)

    @staticmethod
    def from_feed(record: Any) -> "TimingStatus | None":
        if not isinstance(record, Mapping):
            return None
        return TimingStatus(
            minutes=opt_int(record, "Minutes"),
            status=opt_int(record, "Status"),
        )

    @staticmethod
    def from_vehicle_details(payload: Any) -> "TimingStatus | None":
        """Extract the nested `TimingStatus` object from a vehicle details body.

        None when the body has no (or a null) `TimingStatus`. A body or
        `TimingStatus` that is not a JSON object raises `BusDecodeError`.
        """

        if not isinstance(payload, Mapping):
            raise BusDecodeError("vehicle details body is not an object")
        raw = payload.get("TimingStatus")
        if raw is None:
            return None
        if not isinstance(raw, Mapping):
            raise BusDecodeError("TimingStatus is not an object")
        return TimingStatus.from_feed(raw)

    @property
    def state(self) -> TimingState:
        if self.status is None:
            return TimingState.UNKNOWN
        try:
            return TimingState(self.status)
        except ValueError:
            return TimingState.UNKNOWN

    @property
    def description(self) -> str:
        if self.status is None:
            return "Timing: Unknown"
        state = self.state
        if state is TimingState.LATE:
            delay = self.minutes or 0
            return f"Timing: Late by {delay} min{'' if delay == 1 else 's'}"
        if state is TimingState.EARLY:
            return "Timing: Early"
        if state is TimingState.ON_TIME:
            return "Timing: On time"
        return f"Timing: Status {self.status}"
