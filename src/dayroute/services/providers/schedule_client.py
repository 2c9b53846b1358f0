"""Client for the practice API that serves a doctor's day."""

from __future__ import annotations

import logging

from ...config import settings
from ...data.schedule_normalizer import normalize_schedule_day
from ...models.domain import ScheduleDay
from .base import ProviderClient

logger = logging.getLogger(__name__)


class ScheduleClient(ProviderClient):
    service_name = "Schedule provider"

    def __init__(self, base_url: str | None = None, **kwargs) -> None:
        super().__init__(base_url or settings.schedule_base_url, **kwargs)

    def fetch_day(self, date: str, doctor_id: str | None = None) -> ScheduleDay:
        params = {"date": date}
        if doctor_id and str(doctor_id).strip():
            params["doctorId"] = str(doctor_id).strip()
        payload = self._request_json("GET", "/appointments/doctor", params=params)
        day = normalize_schedule_day(payload, date=date)
        if doctor_id and not day.provider_id:
            day.provider_id = str(doctor_id)
        logger.info(f"Fetched {len(day.records)} appointments for {date} (doctor={day.provider_id or 'team'})")
        return day
