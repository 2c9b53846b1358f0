"""Colour bands and human-readable formatting for day statistics."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..routing.models import DayStats

RATING_OK = "ok"
RATING_WARN = "warn"
RATING_BAD = "bad"


def format_hm(minutes: Optional[float]) -> str:
    if minutes is None or not math.isfinite(minutes):
        return "—"
    total = int(math.floor(abs(minutes) + 0.5))
    sign = "-" if minutes < 0 and total else ""
    hours, rest = divmod(total, 60)
    return f"{sign}{hours}h {rest}m" if hours else f"{sign}{rest}m"


def rate_whitespace(pct: Optional[float]) -> Optional[str]:
    if pct is None:
        return None
    if pct <= 5:
        return RATING_OK
    if pct <= 15:
        return RATING_WARN
    return RATING_BAD


def rate_hd_ratio(ratio: Optional[float]) -> Optional[str]:
    if ratio is None:
        return None
    if ratio >= 4:
        return RATING_OK
    if ratio >= 3:
        return RATING_WARN
    return RATING_BAD


def rate_drive(minutes: Optional[float]) -> Optional[str]:
    if minutes is None:
        return None
    if minutes <= 90:
        return RATING_OK
    if minutes <= 120:
        return RATING_WARN
    return RATING_BAD


def rate_day(stats: "DayStats") -> dict[str, Optional[str]]:
    return {
        "whitespace": rate_whitespace(stats.whitespace_pct),
        "hd_ratio": rate_hd_ratio(stats.hd_ratio),
        "drive": rate_drive(stats.drive_minutes),
    }
