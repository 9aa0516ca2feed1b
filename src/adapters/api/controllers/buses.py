from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from src.adapters.api.dependencies import get_tracking_coordinator
from src.adapters.api.schemas.buses import (
    BusesResponseSchema,
    BusSchema,
    GeoPointSchema,
    OccupancySchema,
    TimingStatusSchema,
)
from src.app.services.tracking_coordinator import TrackingCoordinator
from src.domain.models import Bus, OccupancyLevel

router = APIRouter(prefix="/buses", tags=["buses"])


def _bus_to_schema(bus: Bus) -> BusSchema:
    coord = bus.coordinate
    occ = bus.occupancy
    return BusSchema(
        id=bus.id,
        title=bus.title,
        subtitle=bus.subtitle,
        route_label=bus.route_label,
        line_badge_text=bus.line_badge_text,
        destination_label=bus.destination_label,
        coordinate=(
            GeoPointSchema(lat=coord.lat, lon=coord.lon) if coord is not None else None
        ),
        occupancy_level=bus.occupancy_level.value,
        occupancy_description=bus.occupancy_description,
        occupancy=(
            OccupancySchema(
                seated_capacity=occ.seated_capacity,
                seated_occupancy=occ.seated_occupancy,
                wheelchair_capacity=occ.wheelchair_capacity,
                wheelchair_occupancy=occ.wheelchair_occupancy,
                status=occ.status,
            )
            if occ is not None
            else None
        ),
        vehicle_ref=bus.vehicle_ref,
        line_ref=bus.line_ref,
        journey_code=bus.journey_code,
        operator_ref=bus.operator_ref,
        direction_ref=bus.direction_ref,
        bearing=bus.bearing,
        vehicle_at_stop=bus.vehicle_at_stop,
        current_stop_name=bus.current_stop_full_name or bus.current_stop_name,
        next_stop_name=bus.next_stop_full_name or bus.next_stop_name,
        last_updated=bus.last_updated,
        departure_time=bus.departure_time,
        recorded_at_time=bus.recorded_at_time,
        valid_until_time=bus.valid_until_time,
    )


def _buses_response(
    coordinator: TrackingCoordinator, buses: tuple[Bus, ...]
) -> BusesResponseSchema:
    refreshed_at = coordinator.last_refreshed_at
    return BusesResponseSchema(
        refreshed_at=(
            datetime.fromtimestamp(refreshed_at, tz=timezone.utc)
            if refreshed_at is not None
            else None
        ),
        is_loading=coordinator.is_loading,
        error_message=coordinator.error_message,
        total_count=len(coordinator.buses),
        buses=[_bus_to_schema(b) for b in buses],
    )


@router.get("", response_model=BusesResponseSchema)
def list_buses(
    route: list[str] | None = Query(default=None),
    q: str | None = None,
    occupancy: OccupancyLevel | None = None,
    focus: str | None = None,
    coordinator: TrackingCoordinator = Depends(get_tracking_coordinator),
) -> BusesResponseSchema:
    buses = coordinator.filtered_buses(
        routes=set(route) if route else None,
        query=q,
        occupancy=occupancy,
        focused_bus_id=focus,
    )
    return _buses_response(coordinator, buses)


@router.post("/refresh", response_model=BusesResponseSchema)
async def refresh_buses(
    coordinator: TrackingCoordinator = Depends(get_tracking_coordinator),
) -> BusesResponseSchema:
    await coordinator.refresh()
    return _buses_response(coordinator, coordinator.filtered_buses())


@router.get("/routes", response_model=list[str])
def list_routes(
    coordinator: TrackingCoordinator = Depends(get_tracking_coordinator),
) -> list[str]:
    return list(coordinator.available_routes())


# Feed ids may contain "/". The timing route must be registered first.
@router.get("/{bus_id:path}/timing", response_model=TimingStatusSchema)
async def get_bus_timing(
    bus_id: str,
    coordinator: TrackingCoordinator = Depends(get_tracking_coordinator),
) -> TimingStatusSchema:
    bus = coordinator.bus(bus_id)
    if bus is None:
        raise HTTPException(status_code=404, detail=f"Unknown bus: {bus_id}")

    await coordinator.fetch_timing_status(bus)

    # None while another request's lookup for this bus is still running.
    status = coordinator.timing_status(bus_id)
    if status is None:
        return TimingStatusSchema(bus_id=bus_id, is_cached=False)
    return TimingStatusSchema(
        bus_id=bus_id,
        minutes=status.minutes,
        status=status.status,
        state=status.state.name.lower(),
        description=status.description,
        is_cached=True,
    )


@router.get("/{bus_id:path}", response_model=BusSchema)
def get_bus(
    bus_id: str,
    coordinator: TrackingCoordinator = Depends(get_tracking_coordinator),
) -> BusSchema:
    bus = coordinator.bus(bus_id)
    if bus is None:
        raise HTTPException(status_code=404, detail=f"Unknown bus: {bus_id}")
    return _bus_to_schema(bus)
