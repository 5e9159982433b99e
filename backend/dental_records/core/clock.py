from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from dental_records.core.settings import settings


def clinic_now(tz_name: str | None = None) -> datetime:
    return datetime.now(ZoneInfo(tz_name or settings.clinic_timezone))


def clinic_today(tz_name: str | None = None) -> date:
    """Calendar date at the clinic, which is what "not in the future" is judged against."""
    return clinic_now(tz_name).date()
