"""Normalization of schedule-provider payloads into canonical records.

Upstream payloads have carried several historical names for the same field.
Each concept resolves through one alias list below, first non-blank value wins.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..models.domain import AppointmentKind, AppointmentRecord, Depot, ScheduleDay
from ..services.geospatial import is_usable_coordinate
from ..services.timeparse import parse_iso

logger = logging.getLogger(__name__)

ID_ALIASES = ("id", "appointmentId", "appointmentPimsId")
START_ALIASES = ("appointmentStart", "scheduledStartIso", "startIso", "start")
END_ALIASES = ("appointmentEnd", "scheduledEndIso", "endIso", "end")
LAT_ALIASES = ("lat", "latitude")
LON_ALIASES = ("lon", "lng", "longitude")
NO_LOCATION_ALIASES = ("isNoLocation", "noLocation", "unroutable")
PATIENT_NAME_ALIASES = ("patientName", "petName", "animalName", "name")
PATIENT_ID_ALIASES = ("patientPimsId", "patientId")
CLIENT_NAME_ALIASES = ("clientName", "client")
CLIENT_ID_ALIASES = ("clientPimsId", "clientId")
TYPE_ALIASES = ("appointmentType", "appointmentTypeName", "serviceName")
DESCRIPTION_ALIASES = ("description", "visitReason")
STATUS_ALIASES = ("confirmStatusName", "statusName", "status")
FREE_ADDRESS_ALIASES = ("address", "addressStr", "fullAddress")
PROVIDER_ID_ALIASES = ("primaryProviderPimsId", "providerPimsId", "doctorId")
BLOCK_FLAG_ALIASES = ("isPersonalBlock", "isBlock")

SCHEDULE_START_ALIASES = ("startDepotTime", "workdayStartIso", "shiftStartIso")
SCHEDULE_END_ALIASES = ("endDepotTime", "workdayEndIso", "shiftEndIso")
NESTED_SCHEDULE_START_ALIASES = ("startIso", "start")
NESTED_SCHEDULE_END_ALIASES = ("endIso", "end")

_KIND_NAMES = {
    "real": AppointmentKind.REAL,
    "appointment": AppointmentKind.REAL,
    "preview": AppointmentKind.PREVIEW,
    "personalblock": AppointmentKind.PERSONAL_BLOCK,
    "personal_block": AppointmentKind.PERSONAL_BLOCK,
    "block": AppointmentKind.PERSONAL_BLOCK,
}


def first_text(row: Mapping[str, Any], aliases: Sequence[str]) -> Optional[str]:
    for alias in aliases:
        value = row.get(alias)
        if value is None or isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def first_number(row: Mapping[str, Any], aliases: Sequence[str]) -> Optional[float]:
    for alias in aliases:
        value = row.get(alias)
        if value is None or isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str) and value.strip():
            try:
                number = float(value.strip())
            except ValueError:
                continue
        else:
            continue
        if math.isfinite(number):
            return number
    return None


def first_flag(row: Mapping[str, Any], aliases: Sequence[str]) -> bool:
    for alias in aliases:
        value = row.get(alias)
        if value is None:
            continue
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "y"}
        return bool(value)
    return False


def resolve_kind(row: Mapping[str, Any]) -> AppointmentKind:
    raw_kind = row.get("kind")
    if isinstance(raw_kind, str):
        kind = _KIND_NAMES.get(raw_kind.strip().lower())
        if kind is not None:
            return kind
    if row.get("isPreview") is True:
        return AppointmentKind.PREVIEW
    if first_flag(row, BLOCK_FLAG_ALIASES):
        return AppointmentKind.PERSONAL_BLOCK
    return AppointmentKind.REAL


def normalize_record(row: Mapping[str, Any]) -> AppointmentRecord:
    """Build one canonical record from a loosely shaped appointment payload."""

    return AppointmentRecord(
        record_id=first_text(row, ID_ALIASES),
        client_name=first_text(row, CLIENT_NAME_ALIASES) or "Client",
        client_id=first_text(row, CLIENT_ID_ALIASES),
        patient_name=first_text(row, PATIENT_NAME_ALIASES) or "Patient",
        patient_id=first_text(row, PATIENT_ID_ALIASES),
        start=parse_iso(first_text(row, START_ALIASES)),
        end=parse_iso(first_text(row, END_ALIASES)),
        lat=first_number(row, LAT_ALIASES),
        lon=first_number(row, LON_ALIASES),
        address1=first_text(row, ("address1",)),
        city=first_text(row, ("city",)),
        state=first_text(row, ("state",)),
        zip=first_text(row, ("zip",)),
        free_address=first_text(row, FREE_ADDRESS_ALIASES),
        appointment_type=first_text(row, TYPE_ALIASES),
        description=first_text(row, DESCRIPTION_ALIASES),
        status=first_text(row, STATUS_ALIASES),
        no_location=first_flag(row, NO_LOCATION_ALIASES),
        kind=resolve_kind(row),
        provider_id=first_text(row, PROVIDER_ID_ALIASES),
    )


def normalize_records(rows: Iterable[Any]) -> list[AppointmentRecord]:
    records: list[AppointmentRecord] = []
    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            logger.warning(f"Skipping appointment row {index}: expected an object, got {type(row).__name__}")
            continue
        records.append(normalize_record(row))
    return records


def parse_depot(value: Any) -> Optional[Depot]:
    if not isinstance(value, Mapping):
        return None
    lat = first_number(value, LAT_ALIASES)
    lon = first_number(value, LON_ALIASES)
    if not is_usable_coordinate(lat, lon):
        return None
    return Depot(lat=lat, lon=lon, label=first_text(value, ("label", "address")))


def pick_schedule_bounds(payload: Mapping[str, Any]) -> tuple[Optional[str], Optional[str]]:
    """Raw explicit shift bounds; either may be an ISO timestamp or a bare "HH:MM"."""

    start = first_text(payload, SCHEDULE_START_ALIASES)
    end = first_text(payload, SCHEDULE_END_ALIASES)
    nested = payload.get("schedule")
    if isinstance(nested, Mapping):
        start = start or first_text(nested, NESTED_SCHEDULE_START_ALIASES)
        end = end or first_text(nested, NESTED_SCHEDULE_END_ALIASES)
    return start, end


def normalize_schedule_day(payload: Any, date: Optional[str] = None) -> ScheduleDay:
    """Normalize a whole day payload (bare list or object with ``appointments``)."""

    if isinstance(payload, list):
        return ScheduleDay(date=date, records=normalize_records(payload))
    if not isinstance(payload, Mapping):
        raise ValueError("Schedule payload must be a list or an object.")

    body: Mapping[str, Any] = payload
    if isinstance(payload.get("data"), Mapping):
        body = payload["data"]
    rows = body.get("appointments")
    if rows is None and isinstance(payload.get("data"), list):
        rows = payload["data"]
    records = normalize_records(rows if isinstance(rows, list) else [])

    raw_start, raw_end = pick_schedule_bounds(body)
    provider_id = first_text(body, ("doctorId", "providerId"))
    if provider_id is None:
        provider_id = next((record.provider_id for record in records if record.provider_id), None)

    return ScheduleDay(
        date=first_text(body, ("date",)) or date,
        records=records,
        start_depot=parse_depot(body.get("startDepot")),
        end_depot=parse_depot(body.get("endDepot")),
        window_start=parse_iso(raw_start),
        window_end=parse_iso(raw_end),
        day_start_text=raw_start,
        provider_id=provider_id,
    )


def make_preview_record(
    *,
    suggested_start: datetime,
    service_minutes: float,
    existing: Sequence[AppointmentRecord] = (),
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    client_name: Optional[str] = None,
    address1: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    zip: Optional[str] = None,
) -> AppointmentRecord:
    """Synthetic "what-if" record; borrows the middle record's coordinate when none given."""

    if lat is None or lon is None:
        middle = existing[len(existing) // 2] if existing else None
        if middle is not None:
            lat, lon = middle.lat, middle.lon
    end = suggested_start + timedelta(minutes=max(0.0, service_minutes))
    return AppointmentRecord(
        record_id=f"preview-{int(suggested_start.timestamp() * 1000)}",
        client_name=client_name or "New Appointment",
        client_id=None,
        patient_name="Patient",
        patient_id=None,
        start=suggested_start,
        end=end,
        lat=lat,
        lon=lon,
        address1=address1 or None,
        city=city or None,
        state=state or None,
        zip=zip or None,
        kind=AppointmentKind.PREVIEW,
    )
