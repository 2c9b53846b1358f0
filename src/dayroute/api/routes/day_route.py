"""Day route endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import Response

from ...schemas.day_route import DayRouteRequest, DayRouteResponse, PreviewRequest
from ...services.outputs.day_route_formatter import day_route_to_csv, day_route_to_json
from ...services.routing.models import DayRouteResult
from ...services.routing.service import SupersededRunError, build_day_route, compute_from_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/day-route", tags=["day-route"])


def _run(action: str, compute) -> DayRouteResult:
    try:
        return compute()
    except SupersededRunError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ConnectionError as exc:
        logger.warning(f"Collaborator unavailable while trying to {action}: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error trying to {action}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}: {str(exc)}",
        ) from exc


@router.post("/compute", response_model=DayRouteResponse, status_code=status.HTTP_200_OK)
def compute(payload: DayRouteRequest) -> DayRouteResponse:
    result = _run("compute day route", lambda: compute_from_request(payload))
    return DayRouteResponse(**day_route_to_json(result))


@router.get("", response_model=DayRouteResponse, status_code=status.HTTP_200_OK)
def fetch_day_route(
    date: str = Query(..., description="Day to route (YYYY-MM-DD)"),
    doctor_id: str | None = Query(default=None, description="Doctor identifier in the practice system"),
    session_id: str | None = Query(default=None, description="Caller session; newer requests supersede older ones"),
) -> DayRouteResponse:
    """Fetch the day from the schedule provider and compute its route."""
    result = _run(
        "build day route",
        lambda: build_day_route(date, doctor_id, session_id=session_id),
    )
    return DayRouteResponse(**day_route_to_json(result))


@router.post("/preview", response_model=DayRouteResponse, status_code=status.HTTP_200_OK)
def preview(payload: PreviewRequest) -> DayRouteResponse:
    """Compute the day as if the proposed appointment were already booked."""
    result = _run("preview appointment", lambda: compute_from_request(payload, preview=payload.preview))
    return DayRouteResponse(**day_route_to_json(result))


@router.post("/export", status_code=status.HTTP_200_OK)
def export_csv(payload: DayRouteRequest) -> Response:
    result = _run("export day route", lambda: compute_from_request(payload))
    filename = f"day-route-{result.date or 'export'}.csv"
    return Response(
        content=day_route_to_csv(result),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
