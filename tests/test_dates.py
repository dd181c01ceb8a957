from datetime import date

from gds_trainer.utils.dates import (
    day_of_week_number,
    days_until,
    format_duration_hours,
    format_duration_minutes,
    format_gds_date,
    iso_to_gds,
    resolve_gds_date,
    to_iso_date,
)


TODAY = date(2026, 10, 19)


def test_resolve_gds_date_this_year():
    assert resolve_gds_date("15NOV", TODAY) == date(2026, 11, 15)


def test_resolve_gds_date_rolls_to_next_year_when_passed():
    assert resolve_gds_date("05JAN", TODAY) == date(2027, 1, 5)
    assert resolve_gds_date("19OCT", TODAY) == date(2026, 10, 19)


def test_resolve_gds_date_with_explicit_year():
    assert resolve_gds_date("15NOV27", TODAY) == date(2027, 11, 15)


def test_resolve_gds_date_invalid():
    assert resolve_gds_date("31FEB", TODAY) is None
    assert resolve_gds_date("15XYZ", TODAY) is None
    assert resolve_gds_date(None, TODAY) is None


def test_days_until():
    assert days_until("15NOV", TODAY) == 27
    assert days_until(None, TODAY) == 0


def test_gds_formatting():
    assert format_gds_date(date(2026, 11, 5)) == "05NOV"
    assert format_gds_date(date(2026, 11, 5), with_year=True) == "05NOV26"
    assert iso_to_gds("2026-11-15") == "15NOV"
    assert iso_to_gds("not a date") is None
    # 15 Nov 2026 is a Sunday
    assert day_of_week_number(date(2026, 11, 15)) == "7"


def test_to_iso_date_accepts_seed_formats():
    assert to_iso_date("2026-11-15") == "2026-11-15"
    assert to_iso_date("15/11/2026") == "2026-11-15"
    assert to_iso_date("15NOV26") == "2026-11-15"
    assert to_iso_date("") == ""


def test_durations():
    assert format_duration_minutes(765) == "12:45"
    assert format_duration_minutes(None) == "----"
    assert format_duration_hours(12.25) == "12:15"
    assert format_duration_hours(None) == "----"
