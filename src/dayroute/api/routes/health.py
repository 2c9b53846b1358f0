"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_provider_clients() -> dict:
    """Lazy import to avoid startup failures."""
    from ...services.providers import ReverseGeocoder, ScheduleClient, TravelTimeClient

    return {
        "schedule": ScheduleClient,
        "travel": TravelTimeClient,
        "geocoder": ReverseGeocoder,
    }


@router.get("/health/providers", status_code=status.HTTP_200_OK)
def health_providers() -> dict:
    """Reachability of each configured collaborator service."""
    report = {}
    for name, client_cls in _get_provider_clients().items():
        try:
            client = client_cls()
        except ValueError as exc:
            report[name] = {"configured": False, "healthy": False, "error": str(exc)}
            continue
        report[name] = {"configured": True, "healthy": client.check_health()}
    return {"providers": report}
