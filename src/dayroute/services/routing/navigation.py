"""Google Maps direction links for a day's stops."""

from __future__ import annotations

from typing import Optional, Sequence
from urllib.parse import urlencode

from ...models.domain import Depot, Household

MAPS_DIRECTIONS_URL = "https://www.google.com/maps/dir/"
MAX_POINTS_PER_LINK = 25


def _lat_lon(lat: float, lon: float) -> str:
    return f"{lat},{lon}"


def build_navigation_links(
    households: Sequence[Household],
    start_depot: Optional[Depot] = None,
    end_depot: Optional[Depot] = None,
) -> list[str]:
    """Split the routable stops into links of at most 25 points each.

    The start depot is the origin of the first segment and the end depot the
    destination of the last one.
    """

    stops = [_lat_lon(h.lat, h.lon) for h in households if not h.is_no_location]
    if not stops:
        return []

    depots = int(start_depot is not None) + int(end_depot is not None)
    per_link = MAX_POINTS_PER_LINK - depots

    links: list[str] = []
    for offset in range(0, len(stops), per_link):
        chunk = stops[offset : offset + per_link]
        is_first = offset == 0
        is_last = offset + per_link >= len(stops)

        waypoints = list(chunk)
        if start_depot is not None and is_first:
            origin = _lat_lon(start_depot.lat, start_depot.lon)
        else:
            origin = waypoints.pop(0)
        if end_depot is not None and is_last:
            destination = _lat_lon(end_depot.lat, end_depot.lon)
        elif waypoints:
            destination = waypoints.pop()
        else:
            destination = origin

        params = {"api": "1", "origin": origin, "destination": destination}
        if waypoints:
            params["waypoints"] = "|".join(waypoints)
        params["travelmode"] = "driving"
        links.append(f"{MAPS_DIRECTIONS_URL}?{urlencode(params)}")
    return links
