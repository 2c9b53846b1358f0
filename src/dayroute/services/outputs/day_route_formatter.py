"""Serializers for day route outputs."""

from __future__ import annotations

import csv
import io
from typing import Optional

from ...models.domain import Depot, Household, PatientVisit
from ..routing.models import DayRouteResult, TimelineSlot
from ..stats.day_stats import round_half_away
from ..stats.ratings import format_hm
from ..timeparse import to_iso


def _depot_to_json(depot: Optional[Depot]) -> Optional[dict]:
    if depot is None:
        return None
    return {"lat": depot.lat, "lon": depot.lon, "label": depot.label}


def _patient_to_json(patient: PatientVisit) -> dict:
    return {
        "name": patient.name,
        "patient_id": patient.patient_id,
        "status": patient.status,
        "appointment_type": patient.appointment_type,
        "description": patient.description,
        "start": to_iso(patient.start),
        "end": to_iso(patient.end),
    }


def _stop_to_json(sequence: int, household: Household, slot: TimelineSlot) -> dict:
    return {
        "sequence": sequence,
        "key": household.key,
        "client_name": household.client_name,
        "address": household.address,
        "lat": household.lat,
        "lon": household.lon,
        "is_no_location": household.is_no_location,
        "is_preview": household.is_preview,
        "is_personal_block": household.is_personal_block,
        "scheduled_start": to_iso(household.start),
        "scheduled_end": to_iso(household.end),
        "eta": to_iso(slot.eta),
        "etd": to_iso(slot.etd),
        "eta_source": slot.eta_source,
        "etd_source": slot.etd_source,
        "window_start": to_iso(slot.window_start),
        "window_end": to_iso(slot.window_end),
        "drive_from_prev_sec": slot.drive_from_prev_sec,
        "shifted": slot.shifted,
        "patients": [_patient_to_json(patient) for patient in household.patients],
    }


def day_route_to_json(result: DayRouteResult) -> dict:
    stats = result.stats
    legs = result.legs
    return {
        "date": result.date,
        "travel_status": result.travel_status,
        "travel_error": result.travel_error,
        "start_depot": _depot_to_json(result.start_depot),
        "end_depot": _depot_to_json(result.end_depot),
        "stops": [
            _stop_to_json(index + 1, household, slot)
            for index, (household, slot) in enumerate(zip(result.households, result.slots))
        ],
        "legs": {
            "to_first_sec": legs.to_first_sec,
            "between_secs": list(legs.between_secs),
            "back_sec": legs.back_sec,
            "to_first_source": legs.to_first_source,
            "between_sources": list(legs.between_sources),
            "back_source": legs.back_source,
        },
        "stats": {
            "drive_minutes": stats.drive_minutes,
            "household_minutes": stats.household_minutes,
            "whitespace_minutes": stats.whitespace_minutes,
            "whitespace_pct": stats.whitespace_pct,
            "shift_minutes": stats.shift_minutes,
            "hd_ratio": stats.hd_ratio,
            "points": stats.points,
            "shift_start": to_iso(stats.shift_start),
            "shift_end": to_iso(stats.shift_end),
            "source": stats.source,
            "ratings": dict(stats.ratings),
        },
        "navigation_links": list(result.navigation_links),
    }


def day_route_to_csv(result: DayRouteResult) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "date",
        "sequence",
        "household_key",
        "client_name",
        "address",
        "patients",
        "scheduled_start",
        "eta",
        "etd",
        "eta_source",
        "drive_from_prev_min",
        "no_location",
        "preview",
        "total_drive",
        "whitespace",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for index, (household, slot) in enumerate(zip(result.households, result.slots)):
        drive_min = None
        if slot.drive_from_prev_sec is not None:
            drive_min = round_half_away(slot.drive_from_prev_sec / 60.0, 1)
        writer.writerow(
            {
                "date": result.date,
                "sequence": index + 1,
                "household_key": household.key,
                "client_name": household.client_name,
                "address": household.address,
                "patients": "; ".join(patient.name for patient in household.patients),
                "scheduled_start": to_iso(household.start),
                "eta": to_iso(slot.eta),
                "etd": to_iso(slot.etd),
                "eta_source": slot.eta_source,
                "drive_from_prev_min": drive_min,
                "no_location": household.is_no_location,
                "preview": household.is_preview,
                "total_drive": format_hm(result.stats.drive_minutes),
                "whitespace": format_hm(result.stats.whitespace_minutes),
            }
        )
    return buffer.getvalue()
