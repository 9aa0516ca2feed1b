from __future__ import annotations

from collections.abc import Iterable

from src.domain.models.bus import Bus, OccupancyLevel


def _sort_key(bus: Bus) -> tuple[str, str]:
    route = bus.route_label or bus.title
    return (route.casefold(), bus.destination_label)


def matches_route_filter(bus: Bus, routes: set[str] | None) -> bool:
    if not routes:
        return True
    route = bus.route_label
    return route is not None and route in routes


def matches_search_query(bus: Bus, query: str | None) -> bool:
    q = (query or "").strip().lower()
    if not q:
        return True
    haystack = " ".join((bus.title, bus.destination_label, bus.route_label or ""))
    return q in haystack.lower()


def matches_occupancy_filter(bus: Bus, level: OccupancyLevel | None) -> bool:
    return level is None or bus.occupancy_level is level


def filter_buses(
    buses: Iterable[Bus],
    *,
    routes: set[str] | None = None,
    query: str | None = None,
    occupancy: OccupancyLevel | None = None,
    focused_bus_id: str | None = None,
) -> tuple[Bus, ...]:
    """Return the buses to display, sorted by route then destination.

    A focused bus that is still present overrides every other filter.
    """

    buses = tuple(buses)

    if focused_bus_id is not None:
        for bus in buses:
            if bus.id == focused_bus_id:
                return (bus,)

    selected = [
        b
        for b in buses
        if matches_route_filter(b, routes)
        and matches_search_query(b, query)
        and matches_occupancy_filter(b, occupancy)
    ]
    selected.sort(key=_sort_key)
    return tuple(selected)


def available_routes(buses: Iterable[Bus]) -> tuple[str, ...]:
    labels = {b.route_label for b in buses if b.route_label}
    return tuple(sorted(labels, key=lambda r: (r.casefold(), r)))
