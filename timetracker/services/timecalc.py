import math
import re
from datetime import time

# Jira duration notation: "1w 2d 3h 30m", "1.5h", "45m"
_DURATION_PART = re.compile(r"(\d+(?:[.,]\d+)?)\s*([wdhm])", re.IGNORECASE)

def parse_hhmm(s: str) -> time:
    """Parse "HH:MM"; raises ValueError for anything else."""
    s = (s or "").strip()
    hh, mm = s.split(":")
    if not (hh.isdigit() and mm.isdigit()):
        raise ValueError(f"invalid time: {s!r}")
    return time(int(hh), int(mm))

def parse_duration(text: str, hours_per_day: float = 8.0, days_per_week: int = 5) -> int:
    """Convert a Jira style duration into seconds.

    A bare number is read as hours. Raises ValueError when the text holds
    anything besides duration parts.
    """
    s = (text or "").strip()
    if not s:
        raise ValueError("empty duration")
    if re.fullmatch(r"\d+(?:[.,]\d+)?", s):
        return _seconds(float(s.replace(",", ".")) * 3600, text)

    unit_seconds = {
        "m": 60,
        "h": 3600,
        "d": hours_per_day * 3600,
        "w": days_per_week * hours_per_day * 3600,
    }
    total = 0.0
    pos = 0
    for m in _DURATION_PART.finditer(s):
        if s[pos:m.start()].strip():
            raise ValueError(f"invalid duration: {text!r}")
        total += float(m.group(1).replace(",", ".")) * unit_seconds[m.group(2).lower()]
        pos = m.end()
    if pos == 0 or s[pos:].strip():
        raise ValueError(f"invalid duration: {text!r}")
    return _seconds(total, text)

def _seconds(total: float, text: str) -> int:
    # a few hundred digits overflow float to inf
    if not math.isfinite(total):
        raise ValueError(f"duration out of range: {text!r}")
    return int(round(total))

def format_duration(seconds: int | None, hours_per_day: float = 8.0) -> str:
    """Inverse of parse_duration for display; weeks are not used."""
    seconds = int(seconds or 0)
    if seconds <= 0:
        return "0m"
    day = int(hours_per_day * 3600)
    parts = []
    days, rest = divmod(seconds, day)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes or not parts:
        parts.append(f"{minutes}m")
    return " ".join(parts)
