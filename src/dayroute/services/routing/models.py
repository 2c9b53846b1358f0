"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ...models.domain import Depot, Household

LEG_SOURCE_PROVIDER = "provider"
LEG_SOURCE_ESTIMATED = "estimated"
LEG_SOURCE_NO_LOCATION = "no_location"

ETA_SOURCE_PROVIDER = "provider"
ETA_SOURCE_DRIVE = "drive"
ETA_SOURCE_SCHEDULED = "scheduled"

ETD_SOURCE_PROVIDER = "provider"
ETD_SOURCE_LOCAL = "local"

TRAVEL_STATUS_PROVIDER = "provider"
TRAVEL_STATUS_PARTIAL = "partial"
TRAVEL_STATUS_ESTIMATED = "estimated"


@dataclass(slots=True)
class TravelLegs:
    to_first_sec: Optional[float]
    between_secs: List[Optional[float]]
    back_sec: Optional[float]
    to_first_source: Optional[str] = None
    between_sources: List[Optional[str]] = field(default_factory=list)
    back_source: Optional[str] = None

    def resolved_total(self) -> float:
        legs = [self.to_first_sec, *self.between_secs, self.back_sec]
        return sum(leg for leg in legs if leg is not None)

    def sources(self) -> list[Optional[str]]:
        return [self.to_first_source, *self.between_sources, self.back_source]


@dataclass(slots=True)
class ExternalTravelData:
    """Whatever the travel-time provider managed to return; every part is optional."""

    drive_seconds: Optional[list] = None
    eta_by_key: dict[str, str] = field(default_factory=dict)
    eta_by_index: list[Optional[str]] = field(default_factory=list)
    etd_by_key: dict[str, str] = field(default_factory=dict)
    back_to_depot_sec: Optional[float] = None
    back_to_depot_iso: Optional[str] = None
    work_start_iso: Optional[str] = None

    def is_empty(self) -> bool:
        return not (
            self.drive_seconds
            or self.eta_by_key
            or any(self.eta_by_index)
            or self.etd_by_key
            or self.back_to_depot_sec is not None
            or self.back_to_depot_iso
            or self.work_start_iso
        )


@dataclass(slots=True)
class TimelineSlot:
    key: str
    eta: Optional[datetime]
    etd: Optional[datetime]
    eta_source: Optional[str]
    etd_source: Optional[str]
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    drive_from_prev_sec: Optional[float] = None
    shifted: bool = False

    @property
    def has_supplied_value(self) -> bool:
        return self.eta_source == ETA_SOURCE_PROVIDER or self.etd_source == ETD_SOURCE_PROVIDER


@dataclass(slots=True)
class WinnerFields:
    """Authoritative day figures computed by an external optimizer."""

    drive_seconds: Optional[float] = None
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    booked_service_seconds: Optional[float] = None
    post_booking_whitespace_seconds: Optional[float] = None

    def is_complete(self) -> bool:
        return (
            self.drive_seconds is not None
            and self.window_start is not None
            and self.window_end is not None
            and self.booked_service_seconds is not None
        )


@dataclass(slots=True)
class DayStats:
    drive_minutes: int
    household_minutes: int
    whitespace_minutes: Optional[int]
    whitespace_pct: Optional[float]
    shift_minutes: Optional[int]
    hd_ratio: Optional[float]
    points: float
    shift_start: Optional[datetime]
    shift_end: Optional[datetime]
    source: str
    ratings: dict[str, Optional[str]] = field(default_factory=dict)


@dataclass(slots=True)
class DayRouteResult:
    date: Optional[str]
    households: List[Household]
    slots: List[TimelineSlot]
    legs: TravelLegs
    stats: DayStats
    start_depot: Optional[Depot] = None
    end_depot: Optional[Depot] = None
    navigation_links: List[str] = field(default_factory=list)
    travel_status: str = TRAVEL_STATUS_ESTIMATED
    travel_error: Optional[str] = None
