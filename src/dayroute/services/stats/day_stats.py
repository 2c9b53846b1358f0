"""Day-level drive, service and whitespace statistics."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ...models.domain import AppointmentRecord, Household
from ..routing.models import DayStats, TimelineSlot, TravelLegs, WinnerFields
from ..routing.timeline import TimelineOptions, visit_seconds
from ..timeparse import parse_iso
from .ratings import rate_day

logger = logging.getLogger(__name__)

EUTHANASIA_MARKER = "euthanasia"
TECH_APPOINTMENT_MARKER = "tech appointment"

SOURCE_WINNER = "winner"
SOURCE_LOCAL = "local"


def round_half_away(value: float, digits: int = 0) -> float:
    """Round half away from zero (Python's round() is banker's rounding)."""

    factor = 10 ** digits
    scaled = abs(value) * factor
    rounded = math.floor(scaled + 0.5) / factor
    return math.copysign(rounded, value) if value else 0.0


def _minutes(seconds: Optional[float]) -> Optional[int]:
    if seconds is None:
        return None
    return int(round_half_away(seconds / 60.0))


def appointment_points(appointment_type: Optional[str]) -> float:
    label = (appointment_type or "").lower()
    if EUTHANASIA_MARKER in label:
        return 2.0
    if TECH_APPOINTMENT_MARKER in label:
        return 0.5
    return 1.0


def workload_points(records: Sequence[AppointmentRecord]) -> float:
    return sum(appointment_points(record.appointment_type) for record in records if not record.is_personal_block)


def household_service_seconds(households: Sequence[Household]) -> float:
    total = 0.0
    for household in households:
        if household.is_personal_block or household.is_preview:
            continue
        duration = household.duration_seconds
        if duration is None:
            continue
        total += duration
    return total


def preview_service_seconds(households: Sequence[Household]) -> float:
    return sum(h.duration_seconds or 0.0 for h in households if h.is_preview and not h.is_personal_block)


def _assemble(
    *,
    drive_seconds: float,
    household_seconds: float,
    shift_seconds: Optional[float],
    whitespace_seconds: Optional[float],
    points: float,
    shift_start: Optional[datetime],
    shift_end: Optional[datetime],
    source: str,
) -> DayStats:
    # All rounding happens here, after every figure is final.
    drive_minutes = _minutes(drive_seconds) or 0
    household_minutes = _minutes(household_seconds) or 0
    # ratio of the displayed minutes
    hd_ratio = None
    if drive_minutes > 0:
        hd_ratio = round_half_away(household_minutes / drive_minutes, 2)
    whitespace_pct = None
    if whitespace_seconds is not None and shift_seconds is not None and shift_seconds > 0:
        whitespace_pct = round_half_away(whitespace_seconds / shift_seconds * 100.0, 1)

    stats = DayStats(
        drive_minutes=drive_minutes,
        household_minutes=household_minutes,
        whitespace_minutes=_minutes(whitespace_seconds),
        whitespace_pct=whitespace_pct,
        shift_minutes=_minutes(shift_seconds),
        hd_ratio=hd_ratio,
        points=round_half_away(points, 1),
        shift_start=shift_start,
        shift_end=shift_end,
        source=source,
    )
    stats.ratings = rate_day(stats)
    return stats


def winner_stats(
    winner: WinnerFields,
    households: Sequence[Household],
    records: Sequence[AppointmentRecord],
) -> DayStats:
    """Stats taken verbatim from a complete set of optimizer winner fields."""

    window_seconds = (winner.window_end - winner.window_start).total_seconds()
    preview_seconds = preview_service_seconds(households)
    household_seconds = winner.booked_service_seconds + preview_seconds
    if winner.post_booking_whitespace_seconds is not None:
        whitespace = winner.post_booking_whitespace_seconds
    else:
        whitespace = window_seconds - winner.drive_seconds - winner.booked_service_seconds - preview_seconds
    return _assemble(
        drive_seconds=max(0.0, winner.drive_seconds),
        household_seconds=household_seconds,
        shift_seconds=window_seconds,
        whitespace_seconds=whitespace,
        points=workload_points(records),
        shift_start=winner.window_start,
        shift_end=winner.window_end,
        source=SOURCE_WINNER,
    )


def _derived_shift(
    households: Sequence[Household],
    slots: Sequence[TimelineSlot],
    legs: TravelLegs,
    back_to_depot: Optional[datetime],
    options: TimelineOptions,
) -> tuple[Optional[datetime], Optional[datetime]]:
    first = next((slot for slot in slots if slot.eta is not None), None)
    shift_start = None
    if first is not None and legs.to_first_sec is not None:
        shift_start = first.eta - timedelta(seconds=legs.to_first_sec)

    shift_end = back_to_depot
    if shift_end is None and legs.back_sec is not None:
        for index in range(len(slots) - 1, -1, -1):
            slot = slots[index]
            if slot.etd is not None:
                departure = slot.etd
            elif slot.eta is not None:
                departure = slot.eta + timedelta(seconds=visit_seconds(households[index], options))
            else:
                continue
            shift_end = departure + timedelta(seconds=legs.back_sec)
            break
    return shift_start, shift_end


def compute_day_stats(
    households: Sequence[Household],
    slots: Sequence[TimelineSlot],
    legs: TravelLegs,
    records: Sequence[AppointmentRecord],
    *,
    winner: Optional[WinnerFields] = None,
    schedule_window: tuple[Optional[datetime], Optional[datetime]] = (None, None),
    back_to_depot_iso: Optional[str] = None,
    options: Optional[TimelineOptions] = None,
) -> DayStats:
    """Aggregate the day; complete winner fields bypass local derivation entirely.

    Whitespace is never floored at zero: a negative figure means the day is
    overbooked.
    """

    if winner is not None and winner.is_complete():
        return winner_stats(winner, households, records)

    opts = options or TimelineOptions.from_settings()
    shift_start, shift_end = _derived_shift(households, slots, legs, parse_iso(back_to_depot_iso), opts)

    window_start, window_end = schedule_window
    shift_seconds: Optional[float] = None
    if window_start is not None and window_end is not None:
        shift_seconds = (window_end - window_start).total_seconds()
    elif shift_start is not None and shift_end is not None:
        shift_seconds = (shift_end - shift_start).total_seconds()
    if shift_seconds is not None and shift_seconds < 0:
        logger.warning(f"Shift span is negative ({shift_seconds}s); treating as unknown")
        shift_seconds = None

    drive_seconds = legs.resolved_total()
    household_seconds = household_service_seconds(households)
    whitespace = None
    if shift_seconds is not None:
        whitespace = shift_seconds - drive_seconds - household_seconds

    return _assemble(
        drive_seconds=drive_seconds,
        household_seconds=household_seconds,
        shift_seconds=shift_seconds,
        whitespace_seconds=whitespace,
        points=workload_points(records),
        shift_start=shift_start,
        shift_end=shift_end,
        source=SOURCE_LOCAL,
    )
