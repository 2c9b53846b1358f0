"""Day route orchestration service."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Optional, Sequence

from ...data.schedule_normalizer import make_preview_record, normalize_records
from ...models.domain import AppointmentRecord, Depot, ScheduleDay
from ...schemas.day_route import (
    DayRouteRequest,
    DepotModel,
    PreviewModel,
    TravelDataModel,
    WinnerFieldsModel,
)
from ..households.aggregator import build_households
from ..providers.geocoder import ReverseGeocoder, label_depot
from ..providers.schedule_client import ScheduleClient
from ..providers.travel_client import TravelTimeClient
from ..stats.day_stats import compute_day_stats
from ..timeparse import parse_iso
from .models import (
    LEG_SOURCE_ESTIMATED,
    TRAVEL_STATUS_ESTIMATED,
    TRAVEL_STATUS_PARTIAL,
    TRAVEL_STATUS_PROVIDER,
    DayRouteResult,
    ExternalTravelData,
    WinnerFields,
)
from .navigation import build_navigation_links
from .timeline import TimelineOptions, sequence_timeline
from .travel_legs import resolve_travel_legs

logger = logging.getLogger(__name__)


class SupersededRunError(RuntimeError):
    """A newer request for the same session started while this one was in flight."""


class LatestInputGuard:
    """Last-input-wins bookkeeping per caller session."""

    def __init__(self) -> None:
        self._generations: dict[str, int] = {}
        self._lock = threading.Lock()

    def begin(self, session_id: str) -> int:
        with self._lock:
            token = self._generations.get(session_id, 0) + 1
            self._generations[session_id] = token
            return token

    def is_current(self, session_id: str, token: int) -> bool:
        with self._lock:
            return self._generations.get(session_id) == token

    def ensure_current(self, session_id: str, token: int) -> None:
        if not self.is_current(session_id, token):
            raise SupersededRunError(f"Run {token} for session '{session_id}' was superseded by a newer request.")


run_guard = LatestInputGuard()


def _travel_status(external: Optional[ExternalTravelData], sources: Sequence[Optional[str]]) -> str:
    if external is None or external.is_empty():
        return TRAVEL_STATUS_ESTIMATED
    if any(source == LEG_SOURCE_ESTIMATED for source in sources):
        return TRAVEL_STATUS_PARTIAL
    return TRAVEL_STATUS_PROVIDER


def compute_day_route(
    records: Sequence[AppointmentRecord],
    *,
    date: Optional[str] = None,
    start_depot: Optional[Depot] = None,
    end_depot: Optional[Depot] = None,
    external: Optional[ExternalTravelData] = None,
    winner: Optional[WinnerFields] = None,
    schedule_window: tuple[Optional[datetime], Optional[datetime]] = (None, None),
    day_start: Optional[str] = None,
    travel_error: Optional[str] = None,
    options: Optional[TimelineOptions] = None,
) -> DayRouteResult:
    """Run aggregation, leg resolution, sequencing and statistics over one snapshot.

    Pure: no collaborator is contacted here.
    """

    opts = options or TimelineOptions.from_settings()
    households = build_households(records)

    legs = resolve_travel_legs(
        households,
        external.drive_seconds if external else None,
        start_depot,
        end_depot,
        back_to_depot_sec=external.back_to_depot_sec if external else None,
    )

    departure = parse_iso(external.work_start_iso) if external else None
    if departure is None:
        departure = schedule_window[0]

    slots = sequence_timeline(
        households,
        legs,
        external,
        departure=departure,
        day_start=day_start,
        options=opts,
    )
    stats = compute_day_stats(
        households,
        slots,
        legs,
        records,
        winner=winner,
        schedule_window=schedule_window,
        back_to_depot_iso=external.back_to_depot_iso if external else None,
        options=opts,
    )

    status = TRAVEL_STATUS_ESTIMATED if travel_error else _travel_status(external, legs.sources())
    logger.info(
        f"Computed day route for {date or 'unknown date'}: {len(households)} households, "
        f"drive {stats.drive_minutes} min, travel={status}"
    )
    return DayRouteResult(
        date=date,
        households=households,
        slots=slots,
        legs=legs,
        stats=stats,
        start_depot=start_depot,
        end_depot=end_depot,
        navigation_links=build_navigation_links(households, start_depot, end_depot),
        travel_status=status,
        travel_error=travel_error,
    )


def _fetch_travel(
    client_factory,
    day: ScheduleDay,
    date: str,
    records: Sequence[AppointmentRecord],
) -> tuple[Optional[ExternalTravelData], Optional[str]]:
    households = build_households(records)
    if not any(not household.is_no_location for household in households):
        return None, None
    try:
        client = client_factory()
        external = client.fetch_etas(
            doctor_id=day.provider_id or "",
            date=date,
            households=households,
            start_depot=day.start_depot,
            end_depot=day.end_depot,
        )
        return external, None
    except (ConnectionError, ValueError) as exc:
        logger.warning(f"Travel-time provider unavailable: {exc}. Using straight-line estimates.")
        return None, str(exc)
    except Exception as exc:
        logger.error(f"Unexpected travel-time provider error: {exc}. Using straight-line estimates.")
        return None, str(exc)


def _label_depots(day: ScheduleDay, geocoder_factory) -> tuple[Optional[Depot], Optional[Depot]]:
    geocoder: ReverseGeocoder | None = None
    if day.start_depot is not None or day.end_depot is not None:
        try:
            geocoder = geocoder_factory()
        except ValueError:
            geocoder = None
    return label_depot(day.start_depot, geocoder), label_depot(day.end_depot, geocoder)


def build_day_route(
    date: str,
    doctor_id: Optional[str] = None,
    *,
    session_id: Optional[str] = None,
    preview: Optional[PreviewModel] = None,
    winner: Optional[WinnerFields] = None,
    schedule_client_factory=ScheduleClient,
    travel_client_factory=TravelTimeClient,
    geocoder_factory=ReverseGeocoder,
) -> DayRouteResult:
    """Fetch a doctor's day from the collaborators and compute its route.

    A travel-time failure degrades to local estimation; a schedule failure
    propagates. With ``session_id`` set, a run overtaken by a newer one for the
    same session raises :class:`SupersededRunError` instead of returning.
    """

    token = run_guard.begin(session_id) if session_id else None

    day = schedule_client_factory().fetch_day(date, doctor_id)
    records = list(day.records)
    if preview is not None:
        records.append(preview_record(preview, records))

    external, travel_error = _fetch_travel(travel_client_factory, day, date, records)
    start_depot, end_depot = _label_depots(day, geocoder_factory)

    if token is not None:
        run_guard.ensure_current(session_id, token)

    return compute_day_route(
        records,
        date=day.date or date,
        start_depot=start_depot,
        end_depot=end_depot,
        external=external,
        winner=winner,
        schedule_window=(day.window_start, day.window_end),
        day_start=day.day_start_text,
        travel_error=travel_error,
    )


def _depot(model: Optional[DepotModel]) -> Optional[Depot]:
    if model is None:
        return None
    return Depot(lat=model.lat, lon=model.lon, label=model.label)


def _external(model: Optional[TravelDataModel]) -> Optional[ExternalTravelData]:
    if model is None:
        return None
    return ExternalTravelData(
        drive_seconds=list(model.drive_seconds) if model.drive_seconds is not None else None,
        eta_by_key=dict(model.eta_by_key),
        eta_by_index=list(model.eta_by_index),
        etd_by_key=dict(model.etd_by_key),
        back_to_depot_sec=model.back_to_depot_sec,
        back_to_depot_iso=model.back_to_depot_iso,
        work_start_iso=model.work_start_iso,
    )


def winner_from_model(model: Optional[WinnerFieldsModel]) -> Optional[WinnerFields]:
    if model is None:
        return None
    return WinnerFields(
        drive_seconds=model.drive_seconds,
        window_start=parse_iso(model.window_start_iso),
        window_end=parse_iso(model.window_end_iso),
        booked_service_seconds=model.booked_service_seconds,
        post_booking_whitespace_seconds=model.post_booking_whitespace_seconds,
    )


def preview_record(model: PreviewModel, existing: Sequence[AppointmentRecord]) -> AppointmentRecord:
    suggested_start = parse_iso(model.suggested_start)
    if suggested_start is None:
        raise ValueError(f"Preview suggested_start '{model.suggested_start}' is not a valid timestamp.")
    return make_preview_record(
        suggested_start=suggested_start,
        service_minutes=model.service_minutes,
        existing=sorted((r for r in existing if r.start is not None), key=lambda r: r.start.timestamp()),
        lat=model.lat,
        lon=model.lon,
        client_name=model.client_name,
        address1=model.address1,
        city=model.city,
        state=model.state,
        zip=model.zip,
    )


def compute_from_request(payload: DayRouteRequest, preview: Optional[PreviewModel] = None) -> DayRouteResult:
    """Compute a day route from caller-supplied records and travel figures."""

    token = run_guard.begin(payload.session_id) if payload.session_id else None

    records = normalize_records(payload.appointments)
    if preview is not None:
        records.append(preview_record(preview, records))

    result = compute_day_route(
        records,
        date=payload.date,
        start_depot=_depot(payload.start_depot),
        end_depot=_depot(payload.end_depot),
        external=_external(payload.travel),
        winner=winner_from_model(payload.winner),
        schedule_window=(parse_iso(payload.schedule_start), parse_iso(payload.schedule_end)),
        day_start=payload.schedule_start,
    )
    if token is not None:
        run_guard.ensure_current(payload.session_id, token)
    return result
