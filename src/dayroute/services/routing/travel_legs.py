"""Resolution of per-leg travel seconds for a day's ordered households.

The travel-time provider returns a flat seconds array whose shape can only be
inferred from its length relative to the household count N:

* N + 1 -> ``[to_first, between..., back]``
* N     -> ``[to_first, between...]`` when a start depot was supplied,
           ``[between..., back]`` otherwise, with ``back`` dropped when there
           is no end depot
* N - 1 -> ``[between...]``

Any other length is discarded. Legs the array leaves unresolved are estimated
from straight-line distance.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional, Sequence

from ...config import settings
from ...models.domain import Depot, Household
from ..geospatial import straight_line_seconds
from .models import (
    LEG_SOURCE_ESTIMATED,
    LEG_SOURCE_NO_LOCATION,
    LEG_SOURCE_PROVIDER,
    TravelLegs,
)

logger = logging.getLogger(__name__)


def _seconds(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    if number < 0:
        logger.warning(f"Negative travel duration {number} clamped to 0")
        return 0.0
    return number


def split_drive_seconds(
    count: int,
    drive_seconds: Optional[Sequence[Any]],
    *,
    has_start_depot: bool,
    has_end_depot: bool,
) -> tuple[Optional[Any], list[Optional[Any]], Optional[Any]]:
    """Interpret a provider array as (to_first, between, back) raw values.

    Exactly one interpretation is applied; unresolved positions are None.
    """

    between: list[Optional[Any]] = [None] * max(count - 1, 0)
    if count <= 0 or not drive_seconds:
        return None, between, None

    values = list(drive_seconds)
    length = len(values)
    if length == count + 1:
        return values[0], values[1:count], values[count]
    if length == count and has_start_depot:
        return values[0], values[1:], None
    if length == count:
        # The trailing value is a back leg only when there is a depot to return to.
        return None, values[: count - 1], values[count - 1] if has_end_depot else None
    if length == count - 1:
        return None, values, None

    logger.warning(
        f"Discarding travel-time array of length {length} for {count} households; "
        "falling back to straight-line estimates"
    )
    return None, between, None


def _estimate(
    origin: tuple[float, float] | None,
    destination: tuple[float, float] | None,
    speed_mps: float,
) -> Optional[float]:
    if origin is None or destination is None:
        return None
    return straight_line_seconds(origin[0], origin[1], destination[0], destination[1], speed_mps)


def _point(household: Household) -> tuple[float, float] | None:
    if household.is_no_location:
        return None
    return (household.lat, household.lon)


def _depot_point(depot: Optional[Depot]) -> tuple[float, float] | None:
    return (depot.lat, depot.lon) if depot is not None else None


def _depot_leg(
    raw: Any,
    household: Household,
    depot: Optional[Depot],
    speed_mps: float,
    to_depot: bool,
) -> tuple[Optional[float], Optional[str]]:
    supplied = _seconds(raw)
    if supplied is None and depot is None:
        return None, None
    if household.is_no_location:
        return 0.0, LEG_SOURCE_NO_LOCATION
    if supplied is not None:
        return supplied, LEG_SOURCE_PROVIDER
    if to_depot:
        estimate = _estimate(_point(household), _depot_point(depot), speed_mps)
    else:
        estimate = _estimate(_depot_point(depot), _point(household), speed_mps)
    return estimate, LEG_SOURCE_ESTIMATED


def resolve_travel_legs(
    households: Sequence[Household],
    drive_seconds: Optional[Sequence[Any]] = None,
    start_depot: Optional[Depot] = None,
    end_depot: Optional[Depot] = None,
    *,
    back_to_depot_sec: Optional[float] = None,
    speed_mps: float | None = None,
) -> TravelLegs:
    """Resolve depot->first, between-stop and last->depot seconds.

    ``back_to_depot_sec`` is the provider's separate return-leg figure, used
    when the array itself does not carry the return leg.
    """

    speed = speed_mps if speed_mps is not None else settings.fallback_speed_mps
    count = len(households)
    if count == 0:
        return TravelLegs(to_first_sec=None, between_secs=[], back_sec=None)

    raw_first, raw_between, raw_back = split_drive_seconds(
        count,
        drive_seconds,
        has_start_depot=start_depot is not None,
        has_end_depot=end_depot is not None,
    )
    if raw_back is None:
        raw_back = back_to_depot_sec

    # one depot stands in for the other when estimating
    origin_depot = start_depot or end_depot
    return_depot = end_depot or start_depot

    between_secs: list[Optional[float]] = []
    between_sources: list[Optional[str]] = []
    for index in range(count - 1):
        current, following = households[index], households[index + 1]
        supplied = _seconds(raw_between[index])
        if current.is_no_location or following.is_no_location:
            between_secs.append(0.0)
            between_sources.append(LEG_SOURCE_NO_LOCATION)
        elif supplied is not None:
            between_secs.append(supplied)
            between_sources.append(LEG_SOURCE_PROVIDER)
        else:
            between_secs.append(_estimate(_point(current), _point(following), speed))
            between_sources.append(LEG_SOURCE_ESTIMATED)

    to_first, to_first_source = _depot_leg(raw_first, households[0], origin_depot, speed, to_depot=False)
    back, back_source = _depot_leg(raw_back, households[-1], return_depot, speed, to_depot=True)

    return TravelLegs(
        to_first_sec=to_first,
        between_secs=between_secs,
        back_sec=back,
        to_first_source=to_first_source,
        between_sources=between_sources,
        back_source=back_source,
    )
