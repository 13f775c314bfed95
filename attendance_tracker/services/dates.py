"""IST calendar days and the academic window.

Stored dates are ``YYYY-MM-DD`` strings; always zero-padded so that
lexicographic order matches chronological order.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from attendance_tracker.config import settings


def local_now(now: datetime | None = None) -> datetime:
    tz = ZoneInfo(settings.timezone)
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        # Naive values are UTC, as produced by datetime.utcnow()
        now = now.replace(tzinfo=ZoneInfo("UTC"))
    return now.astimezone(tz)


def local_date_string(now: datetime | None = None) -> str:
    """Calendar day in the configured timezone (IST by default)."""
    return local_now(now).date().isoformat()


def previous_date_string(day: str) -> str:
    return (date.fromisoformat(day) - timedelta(days=1)).isoformat()


def class_time(now: datetime | None = None) -> str:
    return local_now(now).strftime("%H:%M")


def normalize_date_string(value: str) -> str:
    """Parse and re-emit a date so it is zero-padded; raises ValueError."""
    return date.fromisoformat(value.strip()).isoformat()


@dataclass(frozen=True)
class AcademicWindow:
    start: str
    end: str

    def contains(self, day: str | None) -> bool:
        if not day:
            return False
        return self.start <= day <= self.end


def academic_window(as_of: str | None = None) -> AcademicWindow:
    """``[academic_start_date, as_of]``; ``as_of`` defaults to today (IST)."""
    return AcademicWindow(start=settings.academic_start_date, end=as_of or local_date_string())
