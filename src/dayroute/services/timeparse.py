"""Lenient ISO-8601 parsing helpers shared by the pipeline."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..config import settings

_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def local_zone(name: str | None = None) -> tzinfo:
    zone_name = (name or settings.timezone or "UTC").strip()
    if zone_name.upper() in {"UTC", "Z"}:
        return timezone.utc
    try:
        return ZoneInfo(zone_name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def parse_iso(value: Any, zone: tzinfo | None = None) -> Optional[datetime]:
    """Parse an ISO timestamp into an aware datetime; anything unparsable is None."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone or local_zone())
    return parsed


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def parse_clock(value: Any) -> Optional[time]:
    """Parse an "HH:MM[:SS]" wall-clock string."""

    if not isinstance(value, str):
        return None
    match = _CLOCK_PATTERN.match(value.strip())
    if not match:
        return None
    hours = min(23, int(match.group(1)))
    minutes = min(59, int(match.group(2)))
    seconds = min(59, int(match.group(3) or 0))
    return time(hours, minutes, seconds)


def at_clock(day: date, clock: time, zone: tzinfo) -> datetime:
    return datetime.combine(day, clock, tzinfo=zone)
