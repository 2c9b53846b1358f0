"""Day route request/response schemas."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class DepotModel(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    label: Optional[str] = None


class TravelDataModel(BaseModel):
    """Travel-time figures already obtained by the caller."""

    drive_seconds: Optional[List[Optional[float]]] = None
    eta_by_key: Dict[str, str] = Field(default_factory=dict)
    eta_by_index: List[Optional[str]] = Field(default_factory=list)
    etd_by_key: Dict[str, str] = Field(default_factory=dict)
    back_to_depot_sec: Optional[float] = None
    back_to_depot_iso: Optional[str] = None
    work_start_iso: Optional[str] = None


class WinnerFieldsModel(BaseModel):
    drive_seconds: Optional[float] = Field(None, ge=0)
    window_start_iso: Optional[str] = None
    window_end_iso: Optional[str] = None
    booked_service_seconds: Optional[float] = Field(None, ge=0)
    post_booking_whitespace_seconds: Optional[float] = None


class PreviewModel(BaseModel):
    suggested_start: str = Field(..., description="ISO timestamp of the proposed appointment start")
    service_minutes: float = Field(60, ge=0)
    lat: Optional[float] = None
    lon: Optional[float] = None
    client_name: Optional[str] = None
    address1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


class DayRouteRequest(BaseModel):
    date: Optional[str] = None
    appointments: List[Dict[str, Any]] = Field(default_factory=list, description="Raw schedule records")
    start_depot: Optional[DepotModel] = None
    end_depot: Optional[DepotModel] = None
    schedule_start: Optional[str] = Field(
        default=None, description="Explicit shift start, ISO timestamp or HH:MM"
    )
    schedule_end: Optional[str] = Field(default=None, description="Explicit shift end, ISO timestamp")
    travel: Optional[TravelDataModel] = None
    winner: Optional[WinnerFieldsModel] = None
    session_id: Optional[str] = None


class PreviewRequest(DayRouteRequest):
    preview: PreviewModel


class PatientModel(BaseModel):
    name: str
    patient_id: Optional[str] = None
    status: Optional[str] = None
    appointment_type: Optional[str] = None
    description: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None


class StopModel(BaseModel):
    sequence: int
    key: str
    client_name: str
    address: str
    lat: float
    lon: float
    is_no_location: bool
    is_preview: bool
    is_personal_block: bool
    scheduled_start: Optional[str] = None
    scheduled_end: Optional[str] = None
    eta: Optional[str] = None
    etd: Optional[str] = None
    eta_source: Optional[str] = None
    etd_source: Optional[str] = None
    window_start: Optional[str] = None
    window_end: Optional[str] = None
    drive_from_prev_sec: Optional[float] = None
    shifted: bool = False
    patients: List[PatientModel] = Field(default_factory=list)


class LegsModel(BaseModel):
    to_first_sec: Optional[float] = None
    between_secs: List[Optional[float]] = Field(default_factory=list)
    back_sec: Optional[float] = None
    to_first_source: Optional[str] = None
    between_sources: List[Optional[str]] = Field(default_factory=list)
    back_source: Optional[str] = None


class StatsModel(BaseModel):
    drive_minutes: int
    household_minutes: int
    whitespace_minutes: Optional[int] = None
    whitespace_pct: Optional[float] = None
    shift_minutes: Optional[int] = None
    hd_ratio: Optional[float] = None
    points: float
    shift_start: Optional[str] = None
    shift_end: Optional[str] = None
    source: str
    ratings: Dict[str, Optional[str]] = Field(default_factory=dict)


class DayRouteResponse(BaseModel):
    date: Optional[str] = None
    travel_status: str
    travel_error: Optional[str] = None
    start_depot: Optional[DepotModel] = None
    end_depot: Optional[DepotModel] = None
    stops: List[StopModel]
    legs: LegsModel
    stats: StatsModel
    navigation_links: List[str] = Field(default_factory=list)
