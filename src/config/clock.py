# src/config/clock.py
from __future__ import annotations

import datetime as dt
from zoneinfo import ZoneInfo

from src.config.settings import settings

LOCAL_TZ = ZoneInfo(settings.timezone)


def now_local() -> dt.datetime:
    # DB에는 tz 없는 로컬 시각으로 저장
    return dt.datetime.now(LOCAL_TZ).replace(tzinfo=None, microsecond=0)


def today_local() -> dt.date:
    return now_local().date()


def week_bounds(day: dt.date) -> tuple[dt.date, dt.date]:
    """ISO week (Monday ~ Sunday) containing `day`."""
    start = day - dt.timedelta(days=day.weekday())
    return start, start + dt.timedelta(days=6)
