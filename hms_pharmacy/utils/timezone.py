# FILE: hms_pharmacy/utils/timezone.py
from __future__ import annotations

from datetime import datetime, date
from zoneinfo import ZoneInfo

from hms_pharmacy.core.config import settings


def hospital_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def now_local() -> datetime:
    """
    Returns a *naive* datetime in hospital time.
    DateTime columns are naive, so no tzinfo is carried.
    """
    return datetime.now(hospital_tz()).replace(tzinfo=None)


def today_local() -> date:
    return now_local().date()
