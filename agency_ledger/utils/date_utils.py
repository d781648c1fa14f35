"""Date manipulation utilities"""

from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def add_years(moment: datetime, years: int) -> datetime:
    """Shift a timestamp by whole years; 29 Feb lands on 28 Feb in non-leap years"""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, day=28)


def as_date(value: date | datetime) -> date:
    """Calendar date of a date or timestamp"""
    if isinstance(value, datetime):
        return value.date()
    return value


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


def ensure_utc(moment: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps (SQLite hands them back without tzinfo)"""
    if moment is None or moment.tzinfo is not None:
        return moment
    return moment.replace(tzinfo=timezone.utc)
