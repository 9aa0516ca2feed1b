from __future__ import annotations

from datetime import datetime
from uuid import uuid4


def make_stable_identifier(
    *,
    vehicle_ref: str | None,
    line_ref: str | None,
    journey_code: str | None,
    ticket_machine_service_code: str | None,
    block_ref: str | None,
    stop_point_ref: str | None,
    latitude: str,
    longitude: str,
    recorded_at: datetime | None,
    valid_until: datetime | None,
) -> str:
    """Derive an id for a feed record that has no reliable primary key.

    Operational references win over weaker proxies:
      1) vehicle + line
      2) vehicle
      3) journey code, ticket machine service code, block, stop point
      4) position + timestamps joined with `_`
      5) a random token (no continuity across refreshes)

    The position-based fallback changes whenever the vehicle moves, so such
    records show up as new entities on every refresh.
    """

    if vehicle_ref is not None and line_ref is not None:
        return f"{vehicle_ref}_{line_ref}"
    # Ids are never empty.
    if vehicle_ref:
        return vehicle_ref

    for candidate in (
        journey_code,
        ticket_machine_service_code,
        block_ref,
        stop_point_ref,
    ):
        if candidate:
            return candidate

    components: list[str] = []
    if latitude:
        components.append(latitude)
    if longitude:
        components.append(longitude)
    if recorded_at is not None:
        components.append(str(int(recorded_at.timestamp())))
    if valid_until is not None:
        components.append(str(int(valid_until.timestamp())))

    if components:
        return "_".join(components)

    return str(uuid4()).upper()
