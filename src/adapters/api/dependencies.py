from __future__ import annotations

import os

from fastapi import Request

from src.adapters.feed.http_bus_feed_provider import HttpBusFeedProvider
from src.app.services.tracking_coordinator import TrackingCoordinator


def build_tracking_coordinator() -> TrackingCoordinator:
    coordinator = TrackingCoordinator(feed_provider=HttpBusFeedProvider())

    # Allow tuning via env without changing code.
    if os.getenv("TIMING_STATUS_TTL_S"):
        coordinator.timing_status_ttl_s = float(os.environ["TIMING_STATUS_TTL_S"])
    if os.getenv("REFRESH_INTERVAL_S"):
        coordinator.refresh_interval_s = float(os.environ["REFRESH_INTERVAL_S"])

    return coordinator


def get_tracking_coordinator(request: Request) -> TrackingCoordinator:
    coordinator = getattr(request.app.state, "tracking_coordinator", None)
    if coordinator is None:
        raise RuntimeError("Tracking coordinator not configured")
    return coordinator
