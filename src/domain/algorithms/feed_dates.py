from __future__ import annotations

import math
import re
from datetime import datetime, timezone

# Internet date-time with mandatory fractional seconds and a `Z` or `+HH:MM` zone.
_ISO8601_FRACTIONAL = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"\.(?P<fraction>\d+)"
    r"(?P<zone>Z|[+-]\d{2}:\d{2})$"
)


def parse_legacy_date(raw: str | None) -> datetime | None:
    """Parse the feed's `/Date(<millis>)/` wrapper into an aware UTC datetime.

    The number between the first `(` and the first `)` is read as (possibly
    fractional) milliseconds since the epoch. Anything unparsable yields None.
    """

    if not isinstance(raw, str):
        return None

    start = raw.find("(")
    end = raw.find(")")
    if start < 0 or end < 0 or end <= start:
        return None

    digits = raw[start + 1 : end]
    if digits != digits.strip() or "_" in digits:
        return None
    try:
        millis = float(digits)
    except ValueError:
        return None
    if not math.isfinite(millis):
        return None

    try:
        return datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_iso8601_date(raw: str | None) -> datetime | None:
    """Parse e.g. `2025-10-28T08:41:39.123+00:00`; None when it does not match."""

    if not isinstance(raw, str):
        return None

    m = _ISO8601_FRACTIONAL.match(raw)
    if m is None:
        return None

    # fromisoformat only takes up to microsecond precision.
    fraction = m.group("fraction")[:6].ljust(6, "0")
    zone = "+00:00" if m.group("zone") == "Z" else m.group("zone")

    try:
        return datetime.fromisoformat(f"{m.group('base')}.{fraction}{zone}")
    except ValueError:
        return None
