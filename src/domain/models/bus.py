from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from src.domain.algorithms.bus_identity import make_stable_identifier
from src.domain.algorithms.feed_dates import parse_iso8601_date, parse_legacy_date
from src.domain.exceptions.feed import BusDecodeError
from src.domain.models.feed_fields import opt_bool, opt_int, opt_str, required_str
from src.domain.models.geo import GeoPoint

PLENTY_RATIO = 0.4
LIMITED_RATIO = 0.85


class OccupancyLevel(str, Enum):
    UNKNOWN = "unknown"
    PLENTY = "plenty"
    LIMITED = "limited"
    FULL = "full"

    @property
    def description(self) -> str:
        return _OCCUPANCY_DESCRIPTIONS[self]


_OCCUPANCY_DESCRIPTIONS = {
    OccupancyLevel.UNKNOWN: "Occupancy: Unknown",
    OccupancyLevel.PLENTY: "Occupancy: Many seats",
    OccupancyLevel.LIMITED: "Occupancy: Few seats",
    OccupancyLevel.FULL: "Occupancy: Full",
}


def _trimmed(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True, slots=True)
class Occupancy:
    seated_capacity: int | None = None
    seated_occupancy: int | None = None
    wheelchair_capacity: int | None = None
    wheelchair_occupancy: int | None = None
    status: int | None = None

    @staticmethod
    def from_feed(record: Any) -> "Occupancy | None":
        if not isinstance(record, Mapping):
            return None
        return Occupancy(
            seated_capacity=opt_int(record, "SeatedCapacity"),
            seated_occupancy=opt_int(record, "SeatedOccupancy"),
            wheelchair_capacity=opt_int(record, "WheelchairCapacity"),
            wheelchair_occupancy=opt_int(record, "WheelchairOccupancy"),
            status=opt_int(record, "Status"),
        )


@dataclass(frozen=True, slots=True)
class Bus:
    """One observed vehicle/journey snapshot from the live feed.

    `latitude`/`longitude` keep the feed's raw strings; use `coordinate` for
    the parsed position.
    """

    id: str
    latitude: str
    longitude: str
    route_description: str | None = None
    published_line_name: str | None = None
    line_ref: str | None = None
    destination: str | None = None
    destination_stop_name: str | None = None
    destination_stop_locality: str | None = None
    destination_stop_full_name: str | None = None
    current_stop_name: str | None = None
    current_stop_locality: str | None = None
    current_stop_full_name: str | None = None
    next_stop_name: str | None = None
    next_stop_locality: str | None = None
    next_stop_full_name: str | None = None
    vehicle_ref: str | None = None
    direction_ref: str | None = None
    operator_ref: str | None = None
    destination_ref: str | None = None
    stop_point_ref: str | None = None
    visit_number: str | None = None
    block_ref: str | None = None
    ticket_machine_service_code: str | None = None
    journey_code: str | None = None
    timing_status: str | None = None
    bearing: str | None = None
    data_set_id: int | None = None
    vehicle_at_stop: bool | None = None
    occupancy: Occupancy | None = None
    last_updated: datetime | None = None
    db_created: datetime | None = None
    departure_time: datetime | None = None
    recorded_at_time: datetime | None = None
    valid_until_time: datetime | None = None

    @staticmethod
    def from_feed(record: Any) -> "Bus":
        """Decode one raw feed object.

        Only `Latitude` and `Longitude` are mandatory (as strings); every other
        field degrades to None when absent, null or of the wrong type.

        Raises:
            BusDecodeError: if the record is not an object or a coordinate key
                is missing or not a string.
        """

        if not isinstance(record, Mapping):
            raise BusDecodeError(
                f"expected a JSON object, got {type(record).__name__}"
            )

        latitude = required_str(record, "Latitude")
        longitude = required_str(record, "Longitude")

        vehicle_ref = opt_str(record, "VehicleRef")
        line_ref = opt_str(record, "LineRef")
        journey_code = opt_str(record, "JourneyCode")
        ticket_machine_service_code = opt_str(record, "TicketMachineServiceCode")
        block_ref = opt_str(record, "BlockRef")
        stop_point_ref = opt_str(record, "StopPointRef")
        recorded_at_time = parse_iso8601_date(opt_str(record, "RecordedAtTime"))
        valid_until_time = parse_iso8601_date(opt_str(record, "ValidUntilTime"))

        bus_id = make_stable_identifier(
            vehicle_ref=vehicle_ref,
            line_ref=line_ref,
            journey_code=journey_code,
            ticket_machine_service_code=ticket_machine_service_code,
            block_ref=block_ref,
            stop_point_ref=stop_point_ref,
            latitude=latitude,
            longitude=longitude,
            recorded_at=recorded_at_time,
            valid_until=valid_until_time,
        )

        return Bus(
            id=bus_id,
            latitude=latitude,
            longitude=longitude,
            route_description=opt_str(record, "RouteDescription"),
            published_line_name=opt_str(record, "PublishedLineName"),
            line_ref=line_ref,
            destination=opt_str(record, "Destination"),
            destination_stop_name=opt_str(record, "DestinationStopName"),
            destination_stop_locality=opt_str(record, "DestinationStopLocality"),
            destination_stop_full_name=opt_str(record, "DestinationStopFullName"),
            current_stop_name=opt_str(record, "CurrentStopName"),
            current_stop_locality=opt_str(record, "CurrentStopLocality"),
            current_stop_full_name=opt_str(record, "CurrentStopFullName"),
            next_stop_name=opt_str(record, "NextStopName"),
            next_stop_locality=opt_str(record, "NextStopLocality"),
            next_stop_full_name=opt_str(record, "NextStopFullName"),
            vehicle_ref=vehicle_ref,
            direction_ref=opt_str(record, "DirectionRef"),
            operator_ref=opt_str(record, "OperatorRef"),
            destination_ref=opt_str(record, "DestinationRef"),
            stop_point_ref=stop_point_ref,
            visit_number=opt_str(record, "VisitNumber"),
            block_ref=block_ref,
            ticket_machine_service_code=ticket_machine_service_code,
            journey_code=journey_code,
            timing_status=opt_str(record, "TimingStatus"),
            bearing=opt_str(record, "Bearing"),
            data_set_id=opt_int(record, "DataSetId"),
            vehicle_at_stop=opt_bool(record, "VehicleAtStop"),
            occupancy=Occupancy.from_feed(record.get("Occupancy")),
            last_updated=parse_legacy_date(opt_str(record, "LastUpdated")),
            db_created=parse_legacy_date(opt_str(record, "DbCreated")),
            departure_time=parse_iso8601_date(opt_str(record, "DepartureTime")),
            recorded_at_time=recorded_at_time,
            valid_until_time=valid_until_time,
        )

    @property
    def coordinate(self) -> GeoPoint | None:
        return GeoPoint.parse(self.latitude, self.longitude)

    @property
    def title(self) -> str:
        for value in (self.published_line_name, self.line_ref, self.vehicle_ref):
            if value is not None:
                return value
        return "Bus"

    @property
    def subtitle(self) -> str:
        for value in (
            self.destination_stop_full_name,
            self.destination_stop_name,
            self.current_stop_full_name,
            self.current_stop_name,
        ):
            if value is not None:
                return value
        return ""

    @property
    def line_badge_text(self) -> str | None:
        name = (
            self.published_line_name
            if self.published_line_name is not None
            else self.line_ref
        )
        trimmed = _trimmed(name)
        return trimmed[:4] if trimmed else None

    @property
    def route_label(self) -> str | None:
        return _trimmed(self.published_line_name) or _trimmed(self.line_ref)

    @property
    def destination_label(self) -> str:
        return self.subtitle or self.destination or ""

    @property
    def occupancy_level(self) -> OccupancyLevel:
        occ = self.occupancy
        if occ is None:
            return OccupancyLevel.UNKNOWN
        capacity = occ.seated_capacity
        seated = occ.seated_occupancy
        if capacity is None or capacity <= 0 or seated is None:
            return OccupancyLevel.UNKNOWN

        ratio = seated / capacity
        if ratio < PLENTY_RATIO:
            return OccupancyLevel.PLENTY
        if ratio < LIMITED_RATIO:
            return OccupancyLevel.LIMITED
        return OccupancyLevel.FULL

    @property
    def occupancy_description(self) -> str:
        return self.occupancy_level.description


def decode_buses(payload: Any) -> tuple[Bus, ...]:
    """Decode a whole feed response.

    The response is one decode unit: a single malformed record fails the batch.
    """

    if not isinstance(payload, Sequence) or isinstance(payload, (str, bytes)):
        raise BusDecodeError(
            f"expected a JSON array of buses, got {type(payload).__name__}"
        )

    out: list[Bus] = []
    for index, record in enumerate(payload):
        try:
            out.append(Bus.from_feed(record))
        except BusDecodeError as exc:
            raise BusDecodeError(str(exc), index=index) from exc
    return tuple(out)
