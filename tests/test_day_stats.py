from datetime import datetime, timezone

import pytest

from src.dayroute.models.domain import AppointmentKind, AppointmentRecord, Household
from src.dayroute.services.routing.models import TravelLegs, WinnerFields
from src.dayroute.services.routing.timeline import TimelineOptions, sequence_timeline
from src.dayroute.services.stats import appointment_points, compute_day_stats, format_hm, round_half_away, workload_points
from src.dayroute.services.stats.ratings import RATING_BAD, RATING_OK, RATING_WARN


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 3, 4, hour, minute, tzinfo=timezone.utc)


def _household(key: str, start, end, **flags) -> Household:
    return Household(key=key, lat=40.0, lon=-73.0, client_name=key, address=key, start=start, end=end, **flags)


def _record(rid: str, appointment_type: str | None = None, kind: AppointmentKind = AppointmentKind.REAL) -> AppointmentRecord:
    return AppointmentRecord(
        record_id=rid,
        client_name="Client",
        client_id=None,
        patient_name="Pet",
        patient_id=None,
        start=None,
        end=None,
        lat=None,
        lon=None,
        appointment_type=appointment_type,
        kind=kind,
    )


@pytest.fixture
def options() -> TimelineOptions:
    return TimelineOptions(window_minutes=60, default_visit_minutes=60, default_day_start="08:30")


def test_complete_winner_fields_bypass_local_derivation(options):
    households = [_household("a", _at(9), _at(15))]
    winner = WinnerFields(
        drive_seconds=3600,
        window_start=_at(8),
        window_end=_at(17),
        booked_service_seconds=6 * 3600,
    )
    legs = TravelLegs(to_first_sec=99999, between_secs=[], back_sec=None)

    stats = compute_day_stats(households, [], legs, [_record("a")], winner=winner, options=options)

    assert stats.source == "winner"
    assert stats.drive_minutes == 60
    assert stats.household_minutes == 360
    assert stats.shift_minutes == 540
    assert stats.whitespace_minutes == 120
    assert stats.whitespace_pct == 22.2
    assert stats.hd_ratio == 6.0
    assert stats.ratings == {"whitespace": RATING_BAD, "hd_ratio": RATING_OK, "drive": RATING_OK}


def test_winner_whitespace_subtracts_preview_time(options):
    households = [_household("p", _at(13), _at(13, 30), is_preview=True)]
    winner = WinnerFields(drive_seconds=1800, window_start=_at(8), window_end=_at(12), booked_service_seconds=3 * 3600)

    stats = compute_day_stats(households, [], TravelLegs(None, [], None), [], winner=winner, options=options)

    assert stats.whitespace_minutes == 240 - 30 - 180 - 30
    assert stats.household_minutes == 210


def test_post_booking_whitespace_is_taken_verbatim(options):
    winner = WinnerFields(
        drive_seconds=1800,
        window_start=_at(8),
        window_end=_at(12),
        booked_service_seconds=3600,
        post_booking_whitespace_seconds=-900,
    )

    stats = compute_day_stats([], [], TravelLegs(None, [], None), [], winner=winner, options=options)

    assert stats.whitespace_minutes == -15


def test_incomplete_winner_fields_fall_back_to_local(options):
    households = [_household("a", _at(10), _at(10, 30))]
    winner = WinnerFields(drive_seconds=3600, window_start=_at(8))
    legs = TravelLegs(to_first_sec=None, between_secs=[], back_sec=None)
    slots = sequence_timeline(households, legs, options=options)

    stats = compute_day_stats(households, slots, legs, [_record("a")], winner=winner, options=options)

    assert stats.source == "local"
    assert stats.whitespace_minutes is None
    assert stats.whitespace_pct is None


def test_local_stats_with_schedule_window(options):
    households = [_household("a", _at(9), _at(9, 30)), _household("b", _at(10), _at(11))]
    legs = TravelLegs(to_first_sec=600, between_secs=[1200], back_sec=600)
    slots = sequence_timeline(households, legs, options=options)

    stats = compute_day_stats(
        households, slots, legs, [_record("a"), _record("b")], schedule_window=(_at(8), _at(12)), options=options
    )

    assert stats.drive_minutes == 40
    assert stats.household_minutes == 90
    assert stats.shift_minutes == 240
    assert stats.whitespace_minutes == 110
    assert stats.whitespace_pct == 45.8
    assert stats.hd_ratio == 2.25


def test_derived_shift_span_from_first_and_last_legs(options):
    households = [_household("a", _at(10), _at(10, 30))]
    legs = TravelLegs(to_first_sec=900, between_secs=[], back_sec=900)
    slots = sequence_timeline(households, legs, options=options)

    stats = compute_day_stats(households, slots, legs, [_record("a")], options=options)

    assert stats.shift_start == _at(9, 45)
    assert stats.shift_end == _at(10, 45)
    assert stats.shift_minutes == 60
    assert stats.whitespace_minutes == 0
    assert stats.whitespace_pct == 0.0


def test_provider_return_time_ends_the_shift(options):
    households = [_household("a", _at(10), _at(10, 30))]
    legs = TravelLegs(to_first_sec=900, between_secs=[], back_sec=None)
    slots = sequence_timeline(households, legs, options=options)

    stats = compute_day_stats(
        households, slots, legs, [], back_to_depot_iso="2025-03-04T11:15:00Z", options=options
    )

    assert stats.shift_end == _at(11, 15)
    assert stats.shift_minutes == 90


def test_overbooked_day_has_negative_whitespace(options):
    households = [_household("a", _at(9), _at(11))]
    legs = TravelLegs(to_first_sec=None, between_secs=[], back_sec=None)
    slots = sequence_timeline(households, legs, options=options)

    stats = compute_day_stats(households, slots, legs, [], schedule_window=(_at(9), _at(10)), options=options)

    assert stats.whitespace_minutes == -60
    assert stats.whitespace_pct == -100.0


def test_ratio_is_undefined_without_driving(options):
    households = [_household("a", _at(9), _at(10))]
    legs = TravelLegs(to_first_sec=None, between_secs=[], back_sec=None)
    slots = sequence_timeline(households, legs, options=options)

    stats = compute_day_stats(households, slots, legs, [], options=options)

    assert stats.drive_minutes == 0
    assert stats.hd_ratio is None
    assert stats.ratings["hd_ratio"] is None


def test_blocks_and_previews_are_not_on_site_time(options):
    households = [
        _household("a", _at(9), _at(10)),
        _household("block:x", _at(12), _at(13), is_personal_block=True),
        _household("p", _at(14), _at(15), is_preview=True),
        _household("inverted", _at(16), _at(15)),
    ]
    legs = TravelLegs(to_first_sec=None, between_secs=[None, None, None], back_sec=None)
    slots = sequence_timeline(households, legs, options=options)

    stats = compute_day_stats(households, slots, legs, [], options=options)

    assert stats.household_minutes == 60


def test_workload_points():
    records = [
        _record("1", "Euthanasia - home"),
        _record("2", "TECH APPOINTMENT"),
        _record("3", "Wellness"),
        _record("4", None),
        _record("5", "Euthanasia", kind=AppointmentKind.PERSONAL_BLOCK),
    ]

    assert appointment_points("euthanasia consult") == 2.0
    assert workload_points(records) == 4.5


def test_round_half_away_from_zero():
    assert round_half_away(2.5) == 3.0
    assert round_half_away(-2.5) == -3.0
    assert round_half_away(1.25, 1) == 1.3
    assert round_half_away(0.0) == 0.0


def test_format_hm_and_rating_bands():
    from src.dayroute.services.stats.ratings import rate_drive, rate_hd_ratio, rate_whitespace

    assert format_hm(65) == "1h 5m"
    assert format_hm(45) == "45m"
    assert format_hm(None) == "—"
    assert format_hm(-30) == "-30m"
    assert format_hm(-90) == "-1h 30m"
    assert format_hm(119.6) == "2h 0m"
    assert rate_whitespace(5) == RATING_OK
    assert rate_whitespace(15) == RATING_WARN
    assert rate_hd_ratio(3.5) == RATING_WARN
    assert rate_drive(121) == RATING_BAD


def test_drive_under_half_a_minute_has_no_ratio(options):
    households = [_household("a", _at(9), _at(10))]
    legs = TravelLegs(to_first_sec=20, between_secs=[], back_sec=None)
    slots = sequence_timeline(households, legs, options=options)

    stats = compute_day_stats(households, slots, legs, [], options=options)

    assert stats.drive_minutes == 0
    assert stats.household_minutes == 60
    assert stats.hd_ratio is None
    assert stats.ratings["hd_ratio"] is None


def test_ratio_uses_displayed_minutes(options):
    households = [_household("a", _at(9), _at(10))]
    legs = TravelLegs(to_first_sec=89, between_secs=[], back_sec=None)
    slots = sequence_timeline(households, legs, options=options)

    stats = compute_day_stats(households, slots, legs, [], options=options)

    assert stats.drive_minutes == 1
    assert stats.hd_ratio == 60.0
