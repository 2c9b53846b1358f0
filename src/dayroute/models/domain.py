"""Domain models for appointment records, households and depots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class AppointmentKind(str, Enum):
    """Single authoritative tag for how a record takes part in the day."""

    REAL = "real"
    PREVIEW = "preview"
    PERSONAL_BLOCK = "personal_block"


@dataclass(slots=True, frozen=True)
class AppointmentRecord:
    """One scheduled visit as received from the schedule provider."""

    record_id: Optional[str]
    client_name: str
    client_id: Optional[str]
    patient_name: str
    patient_id: Optional[str]
    start: Optional[datetime]
    end: Optional[datetime]
    lat: Optional[float]
    lon: Optional[float]
    address1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    free_address: Optional[str] = None
    appointment_type: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    no_location: bool = False
    kind: AppointmentKind = AppointmentKind.REAL
    provider_id: Optional[str] = None

    @property
    def is_preview(self) -> bool:
        return self.kind is AppointmentKind.PREVIEW

    @property
    def is_personal_block(self) -> bool:
        return self.kind is AppointmentKind.PERSONAL_BLOCK


@dataclass(slots=True)
class PatientVisit:
    name: str
    patient_id: Optional[str]
    status: Optional[str]
    appointment_type: Optional[str]
    description: Optional[str]
    start: Optional[datetime]
    end: Optional[datetime]


@dataclass(slots=True)
class Household:
    """One physical stop, possibly covering several appointments."""

    key: str
    lat: float
    lon: float
    client_name: str
    address: str
    start: Optional[datetime]
    end: Optional[datetime]
    patients: list[PatientVisit] = field(default_factory=list)
    record_ids: list[str] = field(default_factory=list)
    is_no_location: bool = False
    is_preview: bool = False
    is_personal_block: bool = False

    @property
    def duration_seconds(self) -> Optional[float]:
        """Scheduled on-site seconds, or None when unknown or inverted."""
        if self.start is None or self.end is None:
            return None
        seconds = (self.end - self.start).total_seconds()
        if seconds < 0:
            return None
        return seconds


@dataclass(slots=True, frozen=True)
class Depot:
    """Represents a base location bounding the start or end of the day."""

    lat: float
    lon: float
    label: Optional[str] = None


@dataclass(slots=True)
class ScheduleDay:
    """A doctor's day as returned by the schedule provider, after normalization."""

    date: Optional[str]
    records: list[AppointmentRecord]
    start_depot: Optional[Depot] = None
    end_depot: Optional[Depot] = None
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    day_start_text: Optional[str] = None
    provider_id: Optional[str] = None
