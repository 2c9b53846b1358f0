import pytest

from src.dayroute.models.domain import Depot, Household
from src.dayroute.services.geospatial import haversine_m
from src.dayroute.services.routing.models import (
    LEG_SOURCE_ESTIMATED,
    LEG_SOURCE_NO_LOCATION,
    LEG_SOURCE_PROVIDER,
)
from src.dayroute.services.routing.travel_legs import resolve_travel_legs, split_drive_seconds

SPEED = 10.0


def _household(key: str, lat: float, lon: float, no_location: bool = False) -> Household:
    return Household(
        key=key,
        lat=lat,
        lon=lon,
        client_name=key,
        address=key,
        start=None,
        end=None,
        is_no_location=no_location,
    )


@pytest.fixture
def three_stops() -> list[Household]:
    return [_household("a", 40.0, -73.0), _household("b", 40.1, -73.0), _household("c", 40.2, -73.0)]


def test_array_of_n_plus_one_is_depot_between_depot(three_stops):
    legs = resolve_travel_legs(three_stops, [100, 200, 300, 400], speed_mps=SPEED)

    assert legs.to_first_sec == 100
    assert legs.between_secs == [200, 300]
    assert legs.back_sec == 400
    assert legs.sources() == [LEG_SOURCE_PROVIDER] * 4


def test_array_of_n_with_start_depot_carries_first_leg(three_stops):
    depot = Depot(lat=39.9, lon=-73.0)

    legs = resolve_travel_legs(three_stops, [100, 200, 300], start_depot=depot, speed_mps=SPEED)

    assert legs.to_first_sec == 100
    assert legs.between_secs == [200, 300]
    # return leg falls back to the start depot
    assert legs.back_source == LEG_SOURCE_ESTIMATED
    assert legs.back_sec == pytest.approx(haversine_m(40.2, -73.0, 39.9, -73.0) / SPEED)


def test_array_of_n_with_only_end_depot_carries_return_leg(three_stops):
    depot = Depot(lat=40.3, lon=-73.0)

    legs = resolve_travel_legs(three_stops, [200, 300, 400], end_depot=depot, speed_mps=SPEED)

    assert legs.between_secs == [200, 300]
    assert legs.back_sec == 400
    assert legs.to_first_source == LEG_SOURCE_ESTIMATED


def test_array_of_n_without_depots_keeps_between_legs(three_stops):
    legs = resolve_travel_legs(three_stops, [600, 700, 800], speed_mps=SPEED)

    assert legs.between_secs == [600, 700]
    assert legs.between_sources == [LEG_SOURCE_PROVIDER, LEG_SOURCE_PROVIDER]
    assert legs.to_first_sec is None
    assert legs.back_sec is None
    assert legs.back_source is None


def test_split_of_n_without_start_depot():
    assert split_drive_seconds(3, [600, 700, 800], has_start_depot=False, has_end_depot=False) == (
        None,
        [600, 700],
        None,
    )
    assert split_drive_seconds(3, [600, 700, 800], has_start_depot=False, has_end_depot=True) == (
        None,
        [600, 700],
        800,
    )


def test_array_of_n_minus_one_is_between_legs_only(three_stops):
    legs = resolve_travel_legs(three_stops, [200, 300], speed_mps=SPEED)

    assert legs.between_secs == [200, 300]
    assert legs.to_first_sec is None
    assert legs.back_sec is None


def test_unexpected_length_falls_back_to_estimates(three_stops):
    raw_first, between, raw_back = split_drive_seconds(3, [1, 2, 3, 4, 5, 6], has_start_depot=True, has_end_depot=True)

    assert raw_first is None and raw_back is None
    assert between == [None, None]


def test_no_location_endpoint_contributes_zero_even_when_supplied():
    households = [_household("a", 40.0, -73.0), _household("noloc:x", 0.0, 0.0, no_location=True), _household("c", 40.2, -73.0)]

    legs = resolve_travel_legs(households, [500, 600], speed_mps=SPEED)

    assert legs.between_secs == [0.0, 0.0]
    assert legs.between_sources == [LEG_SOURCE_NO_LOCATION, LEG_SOURCE_NO_LOCATION]


def test_negative_and_non_numeric_values_are_sanitised():
    households = [_household("a", 40.0, -73.0), _household("b", 40.1, -73.0), _household("c", 40.2, -73.0)]

    legs = resolve_travel_legs(households, [-30, "n/a"], speed_mps=SPEED)

    assert legs.between_secs[0] == 0.0
    assert legs.between_sources[0] == LEG_SOURCE_PROVIDER
    assert legs.between_sources[1] == LEG_SOURCE_ESTIMATED


def test_separate_return_figure_is_used_when_array_lacks_it(three_stops):
    legs = resolve_travel_legs(three_stops, [200, 300], back_to_depot_sec=900, speed_mps=SPEED)

    assert legs.back_sec == 900
    assert legs.back_source == LEG_SOURCE_PROVIDER


def test_single_depot_serves_both_ends(three_stops):
    depot = Depot(lat=40.0, lon=-73.1)

    legs = resolve_travel_legs(three_stops, None, start_depot=depot, speed_mps=SPEED)

    assert legs.to_first_sec == pytest.approx(haversine_m(40.0, -73.1, 40.0, -73.0) / SPEED)
    assert legs.back_sec == pytest.approx(haversine_m(40.2, -73.0, 40.0, -73.1) / SPEED)


def test_empty_day_has_no_legs():
    legs = resolve_travel_legs([], [100])

    assert legs.to_first_sec is None
    assert legs.between_secs == []
    assert legs.resolved_total() == 0
