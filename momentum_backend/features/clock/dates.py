"""
Calendar-day helpers.

Every streak rule compares calendar days in the user's zone (settings.TIMEZONE),
never elapsed hours. Naive datetimes are read as UTC.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from momentum_backend.core.config import settings


@lru_cache(maxsize=16)
def _zone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def user_zone(tz: Optional[tzinfo] = None) -> tzinfo:
    return tz or _zone(settings.TIMEZONE)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_date(moment: datetime, tz: Optional[tzinfo] = None) -> date:
    aware = moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)
    return aware.astimezone(user_zone(tz)).date()


def local_today(tz: Optional[tzinfo] = None, now: Optional[datetime] = None) -> date:
    return local_date(now or utc_now(), tz)


def is_same_day(moment: Optional[datetime], day: date, tz: Optional[tzinfo] = None) -> bool:
    if moment is None:
        return False
    return local_date(moment, tz) == day


def is_today(moment: Optional[datetime], today: date, tz: Optional[tzinfo] = None) -> bool:
    return is_same_day(moment, today, tz)


def is_yesterday(moment: Optional[datetime], today: date, tz: Optional[tzinfo] = None) -> bool:
    return is_same_day(moment, today - timedelta(days=1), tz)


def today_string(now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> str:
    """YYYY-MM-DD of the current local day."""
    return local_today(tz, now).isoformat()


def backfill_moment(day: date, tz: Optional[tzinfo] = None) -> datetime:
    """Noon of `day` in the user's zone; stands in for a shield-covered completion."""
    return datetime.combine(day, time(12, 0), tzinfo=user_zone(tz))
