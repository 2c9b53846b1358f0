"""ETA/ETD sequencing across a day's households."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import Household
from ..timeparse import at_clock, parse_clock, parse_iso
from .models import (
    ETA_SOURCE_DRIVE,
    ETA_SOURCE_PROVIDER,
    ETA_SOURCE_SCHEDULED,
    ETD_SOURCE_LOCAL,
    ETD_SOURCE_PROVIDER,
    ExternalTravelData,
    TimelineSlot,
    TravelLegs,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TimelineOptions:
    window_minutes: int
    default_visit_minutes: int
    default_day_start: str

    @classmethod
    def from_settings(cls) -> "TimelineOptions":
        return cls(
            window_minutes=settings.arrival_window_minutes,
            default_visit_minutes=settings.default_visit_minutes,
            default_day_start=settings.default_day_start,
        )


def resolve_day_start(
    scheduled_start: datetime,
    day_start: Optional[str | datetime],
    default_day_start: str,
) -> Optional[datetime]:
    """Doctor's day start for the date of ``scheduled_start``.

    ``day_start`` may be a wall-clock "HH:MM" (placed on the appointment's date
    and zone) or a full timestamp; otherwise the configured default clock is used.
    """

    if isinstance(day_start, datetime):
        return day_start
    clock = parse_clock(day_start)
    if clock is None and day_start:
        explicit = parse_iso(day_start, zone=scheduled_start.tzinfo)
        if explicit is not None:
            return explicit
    if clock is None:
        clock = parse_clock(default_day_start)
    if clock is None:
        return None
    return at_clock(scheduled_start.date(), clock, scheduled_start.tzinfo)


def arrival_window(
    scheduled_start: Optional[datetime],
    day_start: Optional[str | datetime],
    options: TimelineOptions,
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Permitted arrival window ``[S - w, S + w]``.

    When the early edge would fall before the day start, the window opens at the
    day start instead and keeps its full width.
    """

    if scheduled_start is None:
        return None, None
    half = timedelta(minutes=options.window_minutes)
    early, late = scheduled_start - half, scheduled_start + half
    opening = resolve_day_start(scheduled_start, day_start, options.default_day_start)
    if opening is not None and early < opening:
        return opening, opening + 2 * half
    return early, late


def _supplied_eta(external: Optional[ExternalTravelData], key: str, index: int) -> Optional[datetime]:
    if external is None:
        return None
    by_key = parse_iso(external.eta_by_key.get(key))
    if by_key is not None:
        return by_key
    if index < len(external.eta_by_index):
        return parse_iso(external.eta_by_index[index])
    return None


def _supplied_etd(external: Optional[ExternalTravelData], key: str) -> Optional[datetime]:
    if external is None:
        return None
    return parse_iso(external.etd_by_key.get(key))


def _clamp(value: datetime, low: Optional[datetime], high: Optional[datetime]) -> datetime:
    if low is not None and value < low:
        return low
    if high is not None and value > high:
        return high
    return value


def visit_seconds(household: Household, options: TimelineOptions) -> float:
    duration = household.duration_seconds
    if duration is None:
        return options.default_visit_minutes * 60.0
    return duration


def sequence_timeline(
    households: Sequence[Household],
    legs: TravelLegs,
    external: Optional[ExternalTravelData] = None,
    *,
    departure: Optional[datetime] = None,
    day_start: Optional[str | datetime] = None,
    options: Optional[TimelineOptions] = None,
) -> list[TimelineSlot]:
    """Produce one clamped, monotonic ETA/ETD slot per household.

    Supplied provider values win over the locally chained candidate and are
    never moved by the monotonicity repair.
    """

    opts = options or TimelineOptions.from_settings()
    slots: list[TimelineSlot] = []
    previous_etd: Optional[datetime] = None

    for index, household in enumerate(households):
        scheduled = household.start
        window_start, window_end = arrival_window(scheduled, day_start, opts)

        if index == 0:
            leg = legs.to_first_sec
            origin = departure
        else:
            leg = legs.between_secs[index - 1] if index - 1 < len(legs.between_secs) else None
            origin = previous_etd

        candidate: Optional[datetime] = None
        eta_source: Optional[str] = None
        if origin is not None and leg is not None:
            candidate = origin + timedelta(seconds=leg)
            eta_source = ETA_SOURCE_DRIVE
        elif scheduled is not None:
            candidate = scheduled
            eta_source = ETA_SOURCE_SCHEDULED

        supplied = _supplied_eta(external, household.key, index)
        if supplied is not None:
            eta: Optional[datetime] = supplied
            eta_source = ETA_SOURCE_PROVIDER
        else:
            eta = candidate

        if eta is not None:
            eta = _clamp(eta, window_start, window_end)

        supplied_etd = _supplied_etd(external, household.key)
        if supplied_etd is not None:
            etd: Optional[datetime] = supplied_etd
            etd_source: Optional[str] = ETD_SOURCE_PROVIDER
        elif eta is not None:
            etd = eta + timedelta(seconds=visit_seconds(household, opts))
            etd_source = ETD_SOURCE_LOCAL
        else:
            etd, etd_source = None, None

        slots.append(
            TimelineSlot(
                key=household.key,
                eta=eta,
                etd=etd,
                eta_source=eta_source if eta is not None else None,
                etd_source=etd_source,
                window_start=window_start,
                window_end=window_end,
                drive_from_prev_sec=leg,
            )
        )
        previous_etd = etd

    _repair_monotonicity(households, slots, opts)
    return slots


def _repair_monotonicity(
    households: Sequence[Household],
    slots: list[TimelineSlot],
    options: TimelineOptions,
) -> None:
    for index in range(1, len(slots)):
        previous, current = slots[index - 1], slots[index]
        if previous.has_supplied_value or current.has_supplied_value:
            continue
        if previous.etd is None or current.eta is None:
            continue
        if current.eta < previous.etd:
            logger.debug(f"Shifting {current.key} from {current.eta.isoformat()} to {previous.etd.isoformat()}")
            current.eta = previous.etd
            current.etd = current.eta + timedelta(seconds=visit_seconds(households[index], options))
            current.shifted = True
