"""Grouping of appointment records into household stops."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional, Sequence

from ...models.domain import AppointmentRecord, Household, PatientVisit
from ..geospatial import coordinate_key, is_usable_coordinate

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_TRAILING_PUNCTUATION = re.compile(r"[,.;\s]+$")


def _start_order(value: Optional[datetime]) -> tuple[bool, float]:
    # absent starts sort first
    return (value is not None, value.timestamp() if value is not None else 0.0)


def normalize_address_part(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    text = _WHITESPACE.sub(" ", value.lower())
    text = _TRAILING_PUNCTUATION.sub("", text).strip()
    return text or None


def address_key(record: AppointmentRecord) -> Optional[str]:
    """Normalized address key; structured fields win over free-form text."""

    parts = [
        normalize_address_part(record.address1),
        normalize_address_part(record.city),
        normalize_address_part(record.state),
        normalize_address_part(record.zip),
    ]
    structured = "|".join(part for part in parts if part)
    if structured:
        return f"addr:structured:{structured}"
    free = normalize_address_part(record.free_address)
    if free:
        return f"addr:free:{free}"
    return None


def has_geo(record: AppointmentRecord) -> bool:
    return not record.no_location and is_usable_coordinate(record.lat, record.lon)


def household_key(record: AppointmentRecord, ordinal: int) -> str:
    """Grouping key for a record: coordinate, then address, then the record itself.

    Personal blocks and previews never share a key with another record.
    """

    id_part = record.record_id if record.record_id is not None else f"#{ordinal}"
    if record.is_personal_block:
        return f"block:{id_part}"
    # A proposed slot is its own stop even when it shares a booked client's location.
    if record.is_preview:
        return f"preview:{id_part}"
    if has_geo(record):
        return coordinate_key(record.lat, record.lon)
    addr = address_key(record)
    if addr:
        return addr
    return f"noloc:{id_part}"


def format_address(record: AppointmentRecord) -> str:
    city_state = ", ".join(part for part in (record.city, record.state) if part)
    line = ", ".join(part for part in (record.address1, city_state, record.zip) if part)
    line = re.sub(r"\s+,", ",", line)
    if line:
        return line
    if record.free_address:
        return record.free_address
    if has_geo(record):
        return f"{record.lat:.5f}, {record.lon:.5f}"
    return "Address not available"


def _patient_visit(record: AppointmentRecord) -> PatientVisit:
    return PatientVisit(
        name=record.patient_name,
        patient_id=record.patient_id,
        status=record.status,
        appointment_type=record.appointment_type,
        description=record.description,
        start=record.start,
        end=record.end,
    )


def _already_listed(patients: Sequence[PatientVisit], visit: PatientVisit) -> bool:
    for existing in patients:
        if visit.patient_id:
            if existing.patient_id == visit.patient_id:
                return True
        elif existing.name == visit.name and existing.start == visit.start:
            return True
    return False


def _record_order(item: tuple[int, AppointmentRecord]) -> tuple:
    ordinal, record = item
    return (*_start_order(record.start), record.record_id or "", ordinal)


def build_households(records: Sequence[AppointmentRecord]) -> list[Household]:
    """Group one day's records into households ordered by earliest start.

    Records are folded in (start, id) order so the grouping does not depend on
    the order the schedule provider happened to return them in.
    """

    households: dict[str, Household] = {}
    for ordinal, record in sorted(enumerate(records), key=_record_order):
        key = household_key(record, ordinal)
        geo = has_geo(record)
        household = households.get(key)
        if household is None:
            household = Household(
                key=key,
                lat=record.lat if geo else 0.0,
                lon=record.lon if geo else 0.0,
                client_name=record.client_name,
                address=format_address(record),
                start=record.start,
                end=record.end,
                is_no_location=not geo,
                is_preview=record.is_preview,
                is_personal_block=record.is_personal_block,
            )
            households[key] = household
        else:
            if record.start and (household.start is None or record.start < household.start):
                household.start = record.start
            if record.end and (household.end is None or record.end > household.end):
                household.end = record.end
            if record.is_preview:
                household.is_preview = True

        if record.record_id is not None:
            household.record_ids.append(record.record_id)
        if not record.is_personal_block:
            visit = _patient_visit(record)
            if not _already_listed(household.patients, visit):
                household.patients.append(visit)

    ordered = sorted(households.values(), key=lambda h: (*_start_order(h.start), h.key))
    for household in ordered:
        if household.start and household.end and household.end < household.start:
            logger.warning(f"Household {household.key} ends before it starts; duration treated as unknown")
    return ordered
