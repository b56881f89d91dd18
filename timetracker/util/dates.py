from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

def as_utc(dt: datetime | None) -> datetime | None:
    """SQLite drops tzinfo on the way back; stored values are always UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def zone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")

def from_millis(millis: int, tz: ZoneInfo) -> datetime:
    return datetime.fromtimestamp(millis / 1000.0, tz=tz)

def to_millis(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)

def minus_months(dt: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day to the target month's length."""
    year = dt.year
    month = dt.month - months
    while month < 1:
        month += 12
        year -= 1
    day = dt.day
    while day > 28:
        try:
            return dt.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1
    return dt.replace(year=year, month=month, day=day)
