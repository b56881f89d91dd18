from __future__ import annotations
from datetime import date
from typing import Set

WEEKDAY_MAP = {
    'Mon': 0, 'Tue': 1, 'Wed': 2, 'Thu': 3, 'Fri': 4, 'Sat': 5, 'Sun': 6
}

def parse_business_days(csv: str) -> Set[int]:
    days = set()
    for part in (csv or "Mon,Tue,Wed,Thu,Fri").split(","):
        p = part.strip()[:3].title()
        if p in WEEKDAY_MAP:
            days.add(WEEKDAY_MAP[p])
    return days or {0,1,2,3,4}

def is_working_day(day: date, business_days: Set[int], exclude_dates: Set[date], include_dates: Set[date]) -> bool:
    """Included dates win over everything, excluded dates over the weekday rule."""
    if day in include_dates:
        return True
    if day in exclude_dates:
        return False
    return day.weekday() in business_days
