"""Calendar helpers pinned to the school's timezone.

Every "today" comparison in the portal goes through ``today_local`` so that
the daily challenge limit never depends on the server's local clock or UTC.
"""
import os
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

TIMEZONE_NAME = os.getenv("QUIZPORTAL_TIMEZONE", "Asia/Tokyo")
TZ = ZoneInfo(TIMEZONE_NAME)

DATE_FORMAT = "%Y-%m-%d"


def now_local(now: datetime | None = None) -> datetime:
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(TZ)


def today_local(now: datetime | None = None) -> str:
    """Today's date (YYYY-MM-DD) in the school timezone."""
    return now_local(now).strftime(DATE_FORMAT)


def recent_dates(days: int, now: datetime | None = None) -> list[str]:
    """The last ``days`` dates, newest first, today included."""
    today = now_local(now).date()
    return [(today - timedelta(days=i)).strftime(DATE_FORMAT) for i in range(days)]


def to_local_date_string(timestamp) -> str:
    """Local calendar date of a timestamp (datetime or ISO string); naive values are UTC."""
    if isinstance(timestamp, str):
        timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    return now_local(timestamp).strftime(DATE_FORMAT)


def is_taken_today(last_challenge_date: str | None, today: str | None = None) -> bool:
    if not last_challenge_date:
        return False
    return last_challenge_date == (today or today_local())


def format_date_short(date_str: str) -> str:
    """'2024-06-05' -> '6/5'"""
    _, month, day = date_str.split("-")
    return f"{int(month)}/{int(day)}"


def day_start_utc(date_str: str) -> datetime:
    day = date.fromisoformat(date_str)
    return datetime.combine(day, time.min, tzinfo=TZ).astimezone(timezone.utc)


def day_end_utc(date_str: str) -> datetime:
    day = date.fromisoformat(date_str)
    return datetime.combine(day, time(23, 59, 59), tzinfo=TZ).astimezone(timezone.utc)
