from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from src.app.ports.output import IBusFeedProvider
from src.domain.exceptions.feed import BusDecodeError, FeedUnavailableError
from src.domain.models.bus import Bus, decode_buses
from src.domain.models.timing import TimingStatus

logger = logging.getLogger(__name__)

DEFAULT_BUSES_URL = (
    "https://portal.go-coach.co.uk/v5/widget/api/buses"
    "?region=&showBusesNotInService=false"
)
DEFAULT_VEHICLE_URL = "https://portal.go-coach.co.uk/api/vehicle/"
DEFAULT_REFERER = (
    "https://portal.go-coach.co.uk/WidgetV5/BusTracker"
    "?guid=d434607b-a8ad-450a-a16c-98ede0e08af3&style=gocoach"
    "&showBusTimings=true&operators=GoCoach&region=&origin=&destination="
)
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 "
    "Mobile/15E148 Safari/604.1"
)

_VEHICLE_QUERY = {
    "includeLastCleanedLog": "true",
    "includeTimings": "true",
    "includeLiveOccupancy": "true",
}


@dataclass(slots=True)
class HttpBusFeedProvider(IBusFeedProvider):
    """Fetches the bus tracker widget feed over HTTP.

    Env vars:
      - BUS_FEED_URL: bus list endpoint (default: Go Coach widget feed)
      - BUS_VEHICLE_URL: per-vehicle endpoint base, journey code is appended
      - BUS_FEED_REFERER / BUS_FEED_USER_AGENT: browser-like headers
      - BUS_FEED_TIMEOUT_S: request timeout (default 15)
      - BUS_FEED_MAX_ATTEMPTS: attempts per request (default 3)
      - BUS_FEED_RETRY_DELAY_S: fixed delay between attempts (default 0.5)

    Notes:
      - The upstream rejects requests without a widget Referer and a browser
        User-Agent, so both are always sent.
      - Non-2xx responses and transport errors are retried; invalid URLs
        and decode errors are not.
    """

    buses_url: str | None = None
    vehicle_url: str | None = None
    referer: str | None = None
    user_agent: str | None = None
    timeout_s: float | None = None
    max_attempts: int | None = None
    retry_delay_s: float | None = None
    transport: httpx.AsyncBaseTransport | None = None

    def __post_init__(self) -> None:
        if self.buses_url is None:
            self.buses_url = os.getenv("BUS_FEED_URL", DEFAULT_BUSES_URL)
        if self.vehicle_url is None:
            self.vehicle_url = os.getenv("BUS_VEHICLE_URL", DEFAULT_VEHICLE_URL)
        if self.referer is None:
            self.referer = os.getenv("BUS_FEED_REFERER", DEFAULT_REFERER)
        if self.user_agent is None:
            self.user_agent = os.getenv("BUS_FEED_USER_AGENT", DEFAULT_USER_AGENT)
        if self.timeout_s is None:
            self.timeout_s = float(os.getenv("BUS_FEED_TIMEOUT_S", "15"))
        if self.max_attempts is None:
            self.max_attempts = int(os.getenv("BUS_FEED_MAX_ATTEMPTS", "3"))
        if self.retry_delay_s is None:
            self.retry_delay_s = float(os.getenv("BUS_FEED_RETRY_DELAY_S", "0.5"))
        self.max_attempts = max(1, self.max_attempts)

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": self.user_agent or DEFAULT_USER_AGENT,
            "Referer": self.referer or DEFAULT_REFERER,
        }

    def _vehicle_url(self, journey_code: str) -> str:
        base = (self.vehicle_url or DEFAULT_VEHICLE_URL).rstrip("/")
        return f"{base}/{quote(journey_code, safe='')}"

    async def _get_json(
        self, url: str, *, params: dict[str, str] | None = None
    ) -> Any:
        attempts = self.max_attempts or 1
        last_exc: httpx.HTTPError | None = None

        async with httpx.AsyncClient(
            timeout=self.timeout_s, transport=self.transport
        ) as client:
            for attempt in range(1, attempts + 1):
                try:
                    resp = await client.get(
                        url, params=params, headers=self._headers()
                    )
                    resp.raise_for_status()
                    break
                except httpx.InvalidURL as exc:
                    raise FeedUnavailableError(
                        f"Bus feed url is invalid: {url}: {exc}"
                    ) from exc
                except httpx.HTTPError as exc:
                    last_exc = exc
                    logger.warning(
                        "Bus feed request failed (attempt %d/%d) url=%s: %s",
                        attempt,
                        attempts,
                        url,
                        exc,
                    )
                    if attempt < attempts and self.retry_delay_s:
                        await asyncio.sleep(self.retry_delay_s)
            else:
                raise FeedUnavailableError(
                    f"Bus feed unavailable after {attempts} attempts: {last_exc}"
                ) from last_exc

        try:
            return resp.json()
        except ValueError as exc:
            raise BusDecodeError(f"response is not valid JSON: {exc}") from exc

    async def fetch_bus_records(self) -> Any:
        """Raw decoded JSON body of the bus list endpoint."""

        return await self._get_json(self.buses_url or DEFAULT_BUSES_URL)

    async def list_buses(self) -> tuple[Bus, ...]:
        payload = await self.fetch_bus_records()
        buses = decode_buses(payload)
        logger.debug("Decoded %d buses from feed", len(buses))
        return buses

    async def fetch_timing_status(self, journey_code: str) -> TimingStatus | None:
        payload = await self._get_json(
            self._vehicle_url(journey_code), params=dict(_VEHICLE_QUERY)
        )
        return TimingStatus.from_vehicle_details(payload)
