from .bus import Bus, Occupancy, OccupancyLevel, decode_buses
from .geo import GeoPoint
from .timing import TimingState, TimingStatus

__all__ = [
    "Bus",
    "GeoPoint",
    "Occupancy",
    "OccupancyLevel",
    "TimingState",
    "TimingStatus",
    "decode_buses",
]
