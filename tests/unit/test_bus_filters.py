from __future__ import annotations

from src.domain.algorithms.bus_filters import available_routes, filter_buses
from src.domain.models.bus import Bus, Occupancy, OccupancyLevel


def _bus(bus_id: str, **kwargs) -> Bus:
    return Bus(id=bus_id, latitude="52.1", longitude="-0.1", **kwargs)


BUSES = (
    _bus(
        "b1",
        published_line_name="X2",
        destination_stop_full_name="Airport",
        occupancy=Occupancy(seated_capacity=40, seated_occupancy=2),
    ),
    _bus(
        "b2",
        published_line_name="a1",
        destination_stop_full_name="Town Centre",
        occupancy=Occupancy(seated_capacity=40, seated_occupancy=39),
    ),
    _bus("b3", published_line_name="A1", destination_stop_full_name="Harbour"),
    _bus("b4", vehicle_ref="V9", destination="Depot"),
)


def test_no_filters_sorts_by_route_then_destination() -> None:
    out = filter_buses(BUSES)
    assert [b.id for b in out] == ["b3", "b2", "b4", "b1"]


def test_route_filter_excludes_buses_without_route_label() -> None:
    out = filter_buses(BUSES, routes={"X2", "V9"})
    assert [b.id for b in out] == ["b1"]


def test_search_matches_title_destination_and_route_case_insensitively() -> None:
    assert [b.id for b in filter_buses(BUSES, query="  airPORT ")] == ["b1"]
    assert [b.id for b in filter_buses(BUSES, query="depot")] == ["b4"]
    assert len(filter_buses(BUSES, query="   ")) == len(BUSES)


def test_occupancy_filter() -> None:
    out = filter_buses(BUSES, occupancy=OccupancyLevel.FULL)
    assert [b.id for b in out] == ["b2"]


def test_filters_combine() -> None:
    out = filter_buses(BUSES, routes={"A1", "a1"}, query="harbour")
    assert [b.id for b in out] == ["b3"]


def test_focused_bus_overrides_other_filters() -> None:
    out = filter_buses(BUSES, routes={"X2"}, focused_bus_id="b4")
    assert [b.id for b in out] == ["b4"]


def test_missing_focused_bus_is_ignored() -> None:
    out = filter_buses(BUSES, routes={"X2"}, focused_bus_id="gone")
    assert [b.id for b in out] == ["b1"]


def test_available_routes_unique_and_sorted() -> None:
    assert available_routes(BUSES + (_bus("b5", line_ref=" X2 "),)) == (
        "A1",
        "a1",
        "X2",
    )
