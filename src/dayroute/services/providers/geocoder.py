"""Reverse geocoding of depot coordinates into display labels."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional

from ...config import settings
from ...models.domain import Depot
from .base import ProviderClient

logger = logging.getLogger(__name__)


def coordinate_label(lat: float, lon: float) -> str:
    return f"{lat:.5f}, {lon:.5f}"


class GeocodeCache:
    """Bounded LRU cache with a per-entry time-to-live.

    ``ttl_seconds=0`` keeps entries until they are evicted by size.
    """

    def __init__(
        self,
        max_entries: int = 256,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, str]] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def key_for(lat: float, lon: float) -> str:
        return coordinate_label(lat, lon)

    def get(self, lat: float, lon: float) -> Optional[str]:
        key = self.key_for(lat, lon)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, label = entry
            if self.ttl_seconds and self._clock() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return label

    def put(self, lat: float, lon: float, label: str) -> None:
        key = self.key_for(lat, lon)
        with self._lock:
            self._entries[key] = (self._clock(), label)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class ReverseGeocoder(ProviderClient):
    service_name = "Reverse geocoder"

    def __init__(self, base_url: str | None = None, cache: GeocodeCache | None = None, **kwargs) -> None:
        super().__init__(base_url or settings.geocoder_base_url, **kwargs)
        self.cache = cache if cache is not None else GeocodeCache(
            max_entries=settings.geocode_cache_size,
            ttl_seconds=settings.geocode_cache_ttl_seconds,
        )

    def reverse(self, lat: float, lon: float) -> str:
        """Human-readable address; falls back to the raw coordinate on any failure."""

        cached = self.cache.get(lat, lon)
        if cached is not None:
            return cached
        try:
            data = self._request_json("GET", "/geo/reverse", params={"lat": lat, "lon": lon})
        except (ConnectionError, ValueError) as exc:
            logger.info(f"Reverse geocoding failed for {coordinate_label(lat, lon)}: {exc}")
            return coordinate_label(lat, lon)
        label = None
        if isinstance(data, dict):
            label = data.get("address") or data.get("formattedAddress")
        if not isinstance(label, str) or not label.strip():
            return coordinate_label(lat, lon)
        self.cache.put(lat, lon, label)
        return label


def label_depot(depot: Optional[Depot], geocoder: ReverseGeocoder | None) -> Optional[Depot]:
    """Attach a display label; the coordinate itself is never changed."""

    if depot is None or depot.label:
        return depot
    if geocoder is None:
        label = coordinate_label(depot.lat, depot.lon)
    else:
        label = geocoder.reverse(depot.lat, depot.lon)
    return Depot(lat=depot.lat, lon=depot.lon, label=label)
