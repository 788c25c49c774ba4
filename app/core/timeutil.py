from datetime import datetime, timezone

DAY_SECONDS = 86400
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime | None) -> datetime | None:
    """Naive values are UTC (SQLite hands back naive datetimes); aware values are converted."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def day_bounds(dt: datetime) -> tuple[datetime, datetime]:
    start = as_utc(dt).replace(hour=0, minute=0, second=0, microsecond=0)
    end = start.replace(hour=23, minute=59, second=59, microsecond=999999)
    return start, end


def weekday_name(dt: datetime) -> str:
    return WEEKDAYS[as_utc(dt).weekday()]


def isoformat(dt: datetime | None) -> str | None:
    return as_utc(dt).isoformat() if dt else None
