from datetime import date

import pytest

from conftest import utc
from meetwhen.scheduling.clock import (
    at_local,
    date_range,
    day_of_week,
    format_clock,
    get_zone,
    local_date,
    local_day,
    parse_clock,
    validate_window,
)


@pytest.mark.parametrize("value,minutes", [("00:00", 0), ("09:30", 570), ("23:59", 1439), ("24:00", 1440)])
def test_parse_clock(value, minutes):
    assert parse_clock(value) == minutes


@pytest.mark.parametrize("value", ["9:00", "24:01", "12:60", "25:00", "noon", "", None])
def test_parse_clock_rejects(value):
    with pytest.raises(ValueError):
        parse_clock(value)


def test_validate_window_rejects_inverted_and_empty():
    validate_window("09:00", "17:00")
    with pytest.raises(ValueError):
        validate_window("17:00", "09:00")
    with pytest.raises(ValueError):
        validate_window("09:00", "09:00")


def test_day_of_week_counts_from_sunday():
    assert day_of_week(date(2030, 1, 6)) == 0  # Sunday
    assert day_of_week(date(2030, 1, 7)) == 1  # Monday
    assert day_of_week(date(2030, 1, 12)) == 6  # Saturday


def test_at_local_converts_to_utc():
    tz = get_zone("America/New_York")
    assert at_local(date(2030, 1, 7), "09:00", tz) == utc(2030, 1, 7, 14)
    assert at_local(date(2030, 1, 7), "24:00", tz) == utc(2030, 1, 8, 5)


def test_local_day_spans_midnight_to_midnight():
    tz = get_zone("Asia/Tokyo")
    day = local_day(date(2030, 1, 7), tz)
    assert day.start == utc(2030, 1, 6, 15)
    assert day.end == utc(2030, 1, 7, 15)


def test_local_date_and_format():
    tz = get_zone("Australia/Sydney")
    instant = utc(2030, 1, 6, 22, 30)
    assert local_date(instant, tz) == date(2030, 1, 7)
    assert format_clock(instant, tz) == "09:30"


def test_unknown_zone():
    with pytest.raises(ValueError):
        get_zone("Mars/Olympus_Mons")


def test_date_range_inclusive():
    assert list(date_range(date(2030, 1, 30), date(2030, 2, 1))) == [
        date(2030, 1, 30),
        date(2030, 1, 31),
        date(2030, 2, 1),
    ]
    assert list(date_range(date(2030, 2, 1), date(2030, 1, 1))) == []
