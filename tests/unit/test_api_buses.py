from __future__ import annotations

from dataclasses import dataclass, field

import httpx
import pytest
from src.adapters.api.dependencies import get_tracking_coordinator
from src.app.services.tracking_coordinator import TrackingCoordinator
from src.domain.exceptions.feed import FeedUnavailableError
from src.domain.models import Bus, Occupancy, TimingStatus
from src.main import app


@dataclass
class _FakeFeedProvider:
    buses: tuple[Bus, ...] = ()
    timing: TimingStatus | None = None
    buses_error: Exception | None = None
    timing_calls: list[str] = field(default_factory=list)

    async def list_buses(self) -> tuple[Bus, ...]:
        if self.buses_error is not None:
            raise self.buses_error
        return self.buses

    async def fetch_timing_status(self, journey_code: str) -> TimingStatus | None:
        self.timing_calls.append(journey_code)
        return self.timing


BUSES = (
    Bus.from_feed(
        {
            "Latitude": "52.1234",
            "Longitude": "-0.1234",
            "VehicleRef": "Vehicle-42",
            "LineRef": "Line 123",
            "PublishedLineName": "  123A  ",
            "DestinationStopFullName": "Central Station",
            "JourneyCode": "JC1",
        }
    ),
    Bus(
        id="b2",
        latitude="not-a-number",
        longitude="0.0",
        published_line_name="7",
        destination="Airport",
        occupancy=Occupancy(seated_capacity=40, seated_occupancy=40),
    ),
)


async def _client_for(coordinator: TrackingCoordinator) -> httpx.AsyncClient:
    app.dependency_overrides[get_tracking_coordinator] = lambda: coordinator
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


async def _refreshed(provider: _FakeFeedProvider) -> TrackingCoordinator:
    coordinator = TrackingCoordinator(feed_provider=provider)
    await coordinator.refresh()
    return coordinator


@pytest.mark.unit
@pytest.mark.anyio
async def test_get_buses_returns_sorted_display_fields() -> None:
    coordinator = await _refreshed(_FakeFeedProvider(buses=BUSES))

    async with await _client_for(coordinator) as client:
        resp = await client.get("/buses")

    app.dependency_overrides.clear()

    assert resp.status_code == 200
    payload = resp.json()
    assert payload["total_count"] == 2
    assert payload["error_message"] is None
    assert payload["refreshed_at"] is not None
    assert [b["id"] for b in payload["buses"]] == ["Vehicle-42_Line 123", "b2"]

    vehicle, airport = payload["buses"]
    assert airport["coordinate"] is None
    assert airport["occupancy_level"] == "full"
    assert airport["destination_label"] == "Airport"
    assert vehicle["coordinate"] == {"lat": 52.1234, "lon": -0.1234}
    assert vehicle["route_label"] == "123A"
    assert vehicle["line_badge_text"] == "123A"
    assert vehicle["occupancy_description"] == "Occupancy: Unknown"


@pytest.mark.unit
@pytest.mark.anyio
async def test_get_buses_applies_filters() -> None:
    coordinator = await _refreshed(_FakeFeedProvider(buses=BUSES))

    async with await _client_for(coordinator) as client:
        by_route = await client.get("/buses", params={"route": ["123A"]})
        by_query = await client.get("/buses", params={"q": "airport"})
        by_occupancy = await client.get("/buses", params={"occupancy": "full"})
        bad_occupancy = await client.get("/buses", params={"occupancy": "roomy"})

    app.dependency_overrides.clear()

    assert [b["id"] for b in by_route.json()["buses"]] == ["Vehicle-42_Line 123"]
    assert [b["id"] for b in by_query.json()["buses"]] == ["b2"]
    assert [b["id"] for b in by_occupancy.json()["buses"]] == ["b2"]
    assert bad_occupancy.status_code == 422


@pytest.mark.unit
@pytest.mark.anyio
async def test_routes_and_single_bus() -> None:
    coordinator = await _refreshed(_FakeFeedProvider(buses=BUSES))

    async with await _client_for(coordinator) as client:
        routes = await client.get("/buses/routes")
        found = await client.get("/buses/b2")
        missing = await client.get("/buses/nope")

    app.dependency_overrides.clear()

    assert routes.json() == ["123A", "7"]
    assert found.json()["title"] == "7"
    assert missing.status_code == 404


@pytest.mark.unit
@pytest.mark.anyio
async def test_timing_endpoint_fetches_once_then_serves_cache() -> None:
    provider = _FakeFeedProvider(buses=BUSES, timing=TimingStatus(minutes=5, status=2))
    coordinator = await _refreshed(provider)

    async with await _client_for(coordinator) as client:
        first = await client.get("/buses/Vehicle-42_Line 123/timing")
        second = await client.get("/buses/Vehicle-42_Line 123/timing")

    app.dependency_overrides.clear()

    assert provider.timing_calls == ["JC1"]
    assert first.status_code == 200
    assert first.json() == second.json()
    assert first.json()["state"] == "late"
    assert first.json()["description"] == "Timing: Late by 5 mins"
    assert first.json()["is_cached"] is True


@pytest.mark.unit
@pytest.mark.anyio
async def test_refresh_endpoint_reports_feed_errors() -> None:
    provider = _FakeFeedProvider(buses=BUSES)
    coordinator = await _refreshed(provider)
    provider.buses_error = FeedUnavailableError("Bus feed unavailable")

    async with await _client_for(coordinator) as client:
        resp = await client.post("/buses/refresh")

    app.dependency_overrides.clear()

    assert resp.status_code == 200
    assert resp.json()["error_message"] == "Bus feed unavailable"
    assert resp.json()["total_count"] == 2


@pytest.mark.unit
@pytest.mark.anyio
async def test_health() -> None:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/health")

    assert resp.json() == {"status": "ok"}


@pytest.mark.unit
@pytest.mark.anyio
async def test_lifespan_runs_refresh_loop_while_serving(monkeypatch) -> None:
    from src.main import lifespan

    monkeypatch.delenv("AUTO_REFRESH", raising=False)
    coordinator = TrackingCoordinator(feed_provider=_FakeFeedProvider(buses=BUSES))
    app.state.tracking_coordinator = coordinator
    try:
        async with lifespan(app):
            assert coordinator.is_running
        assert not coordinator.is_running
    finally:
        del app.state.tracking_coordinator


@pytest.mark.unit
@pytest.mark.anyio
async def test_bus_ids_containing_slashes_are_routable() -> None:
    slashed = Bus.from_feed(
        {
            "Latitude": "52.1",
            "Longitude": "-0.1",
            "VehicleRef": "V1",
            "LineRef": "X1/2",
            "JourneyCode": "JC9",
        }
    )
    provider = _FakeFeedProvider(
        buses=(slashed,), timing=TimingStatus(minutes=0, status=0)
    )
    coordinator = await _refreshed(provider)

    async with await _client_for(coordinator) as client:
        plain = await client.get("/buses/V1_X1/2")
        encoded = await client.get("/buses/V1_X1%2F2")
        timing = await client.get("/buses/V1_X1%2F2/timing")

    app.dependency_overrides.clear()

    assert slashed.id == "V1_X1/2"
    assert plain.status_code == 200
    assert plain.json()["id"] == "V1_X1/2"
    assert encoded.json()["id"] == "V1_X1/2"
    assert timing.status_code == 200
    assert timing.json()["bus_id"] == "V1_X1/2"
    assert timing.json()["state"] == "on_time"
    assert provider.timing_calls == ["JC9"]
