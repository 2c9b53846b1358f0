"""Client for the routing service's ETA endpoint."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from ...config import settings
from ...models.domain import Depot, Household
from ..routing.models import ExternalTravelData
from ..timeparse import to_iso
from .base import ProviderClient

logger = logging.getLogger(__name__)


def _depot_payload(depot: Optional[Depot]) -> Optional[dict]:
    if depot is None:
        return None
    return {"lat": depot.lat, "lon": depot.lon}


def build_eta_payload(
    *,
    doctor_id: str,
    date: str,
    households: Sequence[Household],
    start_depot: Optional[Depot] = None,
    end_depot: Optional[Depot] = None,
    use_traffic: bool = False,
) -> dict:
    """Request body in visiting order; every household is sent so indices line up."""

    payload: dict[str, Any] = {
        "doctorId": doctor_id,
        "date": date,
        "households": [
            {
                "key": household.key,
                "lat": household.lat,
                "lon": household.lon,
                "startIso": to_iso(household.start),
                "endIso": to_iso(household.end),
                "routable": not household.is_no_location,
            }
            for household in households
        ],
        "useTraffic": use_traffic,
    }
    if start_depot is not None:
        payload["startDepot"] = _depot_payload(start_depot)
    if end_depot is not None:
        payload["endDepot"] = _depot_payload(end_depot)
    return payload


def _str_map(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(key): item for key, item in value.items() if isinstance(item, str) and item}


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def parse_eta_response(data: Any, households: Sequence[Household]) -> ExternalTravelData:
    """Normalize a /routing/eta body; ``etaByKey`` is rebuilt from order when absent."""

    if isinstance(data, Mapping) and isinstance(data.get("data"), Mapping):
        data = data["data"]
    if not isinstance(data, Mapping):
        raise ValueError("Travel-time response must be an object.")

    eta_iso = data.get("etaIso")
    eta_list = [item if isinstance(item, str) and item else None for item in eta_iso] if isinstance(eta_iso, list) else []
    keys = data.get("keys") if isinstance(data.get("keys"), list) else None

    eta_by_key = _str_map(data.get("etaByKey"))
    if not eta_by_key:
        for index, household in enumerate(households):
            iso = eta_list[index] if index < len(eta_list) else None
            key = household.key or (keys[index] if keys and index < len(keys) else None)
            if key and iso:
                eta_by_key[key] = iso

    drive_seconds = data.get("driveSeconds")
    return ExternalTravelData(
        drive_seconds=list(drive_seconds) if isinstance(drive_seconds, list) else None,
        eta_by_key=eta_by_key,
        eta_by_index=eta_list,
        etd_by_key=_str_map(data.get("etdByKey")),
        back_to_depot_sec=_number(data.get("backToDepotSec")),
        back_to_depot_iso=data.get("backToDepotIso") if isinstance(data.get("backToDepotIso"), str) else None,
        work_start_iso=data.get("workStartIso") if isinstance(data.get("workStartIso"), str) else None,
    )


class TravelTimeClient(ProviderClient):
    service_name = "Travel-time provider"

    def __init__(self, base_url: str | None = None, **kwargs) -> None:
        super().__init__(base_url or settings.travel_base_url, **kwargs)

    def fetch_etas(
        self,
        *,
        doctor_id: str,
        date: str,
        households: Sequence[Household],
        start_depot: Optional[Depot] = None,
        end_depot: Optional[Depot] = None,
        use_traffic: bool | None = None,
    ) -> ExternalTravelData:
        payload = build_eta_payload(
            doctor_id=doctor_id,
            date=date,
            households=households,
            start_depot=start_depot,
            end_depot=end_depot,
            use_traffic=settings.use_traffic if use_traffic is None else use_traffic,
        )
        data = self._request_json("POST", "/routing/eta", json=payload)
        result = parse_eta_response(data, households)
        logger.info(
            f"Travel-time provider returned {len(result.eta_by_key)} ETAs and "
            f"{len(result.drive_seconds or [])} drive legs for {len(households)} households"
        )
        return result
