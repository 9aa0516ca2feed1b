from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class GeoPointSchema(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class OccupancySchema(BaseModel):
    seated_capacity: int | None = None
    seated_occupancy: int | None = None
    wheelchair_capacity: int | None = None
    wheelchair_occupancy: int | None = None
    status: int | None = None


class BusSchema(BaseModel):
    id: str
    title: str
    subtitle: str
    route_label: str | None = None
    line_badge_text: str | None = None
    destination_label: str
    coordinate: GeoPointSchema | None = None
    occupancy_level: str
    occupancy_description: str
    occupancy: OccupancySchema | None = None
    vehicle_ref: str | None = None
    line_ref: str | None = None
    journey_code: str | None = None
    operator_ref: str | None = None
    direction_ref: str | None = None
    bearing: str | None = None
    vehicle_at_stop: bool | None = None
    current_stop_name: str | None = None
    next_stop_name: str | None = None
    last_updated: datetime | None = None
    departure_time: datetime | None = None
    recorded_at_time: datetime | None = None
    valid_until_time: datetime | None = None


class BusesResponseSchema(BaseModel):
    refreshed_at: datetime | None = None
    is_loading: bool
    error_message: str | None = None
    total_count: int
    buses: list[BusSchema]


class TimingStatusSchema(BaseModel):
    bus_id: str
    minutes: int | None = None
    status: int | None = None
    state: str | None = None
    description: str | None = None
    is_cached: bool
