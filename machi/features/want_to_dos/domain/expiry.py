"""
Expiry boundaries for want-to-dos.

Boundaries are wall-clock ends of day in the application time zone and
are returned in UTC:

    THIS_WEEK   coming Sunday 23:59:59.999 (on a Sunday, the next one)
    NEXT_WEEK   the Sunday after that
    THIS_MONTH  last day of the current month
    ANYTIME     three calendar months from now, day clamped to month end
"""

import calendar
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from machi.features.want_to_dos.domain.models import Timing

_END_OF_DAY = time(23, 59, 59, 999000)


def compute_expires_at(timing: Timing, now: datetime, tz: str | ZoneInfo) -> datetime:
    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    local = now.astimezone(zone)

    if timing in (Timing.THIS_WEEK, Timing.NEXT_WEEK):
        # Sunday = 0 ... Saturday = 6
        day_of_week = (local.weekday() + 1) % 7
        horizon = 7 if timing == Timing.THIS_WEEK else 14
        return _end_of_day(local.date() + timedelta(days=horizon - day_of_week), zone)

    if timing == Timing.THIS_MONTH:
        last_day = calendar.monthrange(local.year, local.month)[1]
        return _end_of_day(date(local.year, local.month, last_day), zone)

    if timing == Timing.ANYTIME:
        return _add_months(local, 3).astimezone(UTC)

    raise ValueError(f"Unknown timing: {timing}")


def _end_of_day(day: date, zone: ZoneInfo) -> datetime:
    return datetime.combine(day, _END_OF_DAY, tzinfo=zone).astimezone(UTC)


def _add_months(moment: datetime, months: int) -> datetime:
    index = moment.month - 1 + months
    year = moment.year + index // 12
    month = index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
