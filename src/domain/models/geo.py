from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class GeoPoint:
    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.lat <= 90.0):
            raise ValueError(f"Invalid latitude: {self.lat}")
        if not (-180.0 <= self.lon <= 180.0):
            raise ValueError(f"Invalid longitude: {self.lon}")

    @staticmethod
    def parse(lat: str, lon: str) -> "GeoPoint | None":
        """Build a point from the feed's string-encoded coordinates.

        Returns None when either value is not a finite float or is out of range.
        """

        try:
            return GeoPoint(lat=_finite_float(lat), lon=_finite_float(lon))
        except ValueError:
            return None


def _finite_float(raw: str) -> float:
    # float() also takes padding and digit separators; the feed never does.
    if raw != raw.strip() or "_" in raw:
        raise ValueError(f"Malformed coordinate: {raw!r}")
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError(f"Non-finite coordinate: {raw}")
    return value
