"""Calendar-day comparisons, never elapsed hours."""

from datetime import date, datetime, timedelta, timezone

from momentum_backend.features.clock.dates import (
    backfill_moment,
    is_today,
    is_yesterday,
    local_date,
    today_string,
)

EST = timezone(timedelta(hours=-5))


def test_late_night_and_early_morning_are_consecutive_days():
    late = datetime(2024, 3, 3, 23, 59, tzinfo=timezone.utc)
    early = datetime(2024, 3, 4, 0, 1, tzinfo=timezone.utc)
    assert is_yesterday(late, local_date(early))
    assert not is_today(late, local_date(early))


def test_forty_seven_hours_apart_can_still_be_yesterday():
    first = datetime(2024, 3, 3, 0, 30, tzinfo=timezone.utc)
    second = first + timedelta(hours=47)
    assert is_yesterday(first, local_date(second))


def test_naive_datetime_is_read_as_utc():
    naive = datetime(2024, 3, 4, 23, 0)
    assert local_date(naive) == date(2024, 3, 4)


def test_zone_shifts_the_calendar_day():
    moment = datetime(2024, 3, 5, 2, 0, tzinfo=timezone.utc)
    assert local_date(moment) == date(2024, 3, 5)
    assert local_date(moment, EST) == date(2024, 3, 4)
    assert is_today(moment, date(2024, 3, 4), EST)


def test_missing_moment_is_never_today_or_yesterday():
    assert not is_today(None, date(2024, 3, 4))
    assert not is_yesterday(None, date(2024, 3, 4))


def test_today_string_format():
    assert today_string(datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)) == "2024-03-04"


def test_backfill_moment_lands_on_requested_day():
    day = date(2024, 3, 3)
    assert local_date(backfill_moment(day)) == day
    assert local_date(backfill_moment(day, EST), EST) == day
