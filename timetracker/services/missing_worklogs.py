from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.jira_models import Issue, Project, Worklog
from ..db.models import User
from ..reporting.queries import issue_key_expr
from ..schemas import MissingsWorklogsDTO, TimeTrackerGlobalSettings
from ..util.dates import as_utc, zone
from .business_time import is_working_day, parse_business_days

logger = logging.getLogger(__name__)

def user_timezone(user: Optional[User], settings: TimeTrackerGlobalSettings):
    return zone((user.timezone if user else None) or settings.timezone)

async def logged_seconds_by_day(
    session: AsyncSession,
    user_key: str,
    first_day: date,
    last_day: date,
    tz,
    excluded_issue_keys: Optional[set[str]] = None,
) -> Dict[date, int]:
    """Sum of the user's worklogs per local calendar day in [first_day, last_day]."""
    start = datetime.combine(first_day, time.min, tzinfo=tz)
    end = datetime.combine(last_day + timedelta(days=1), time.min, tzinfo=tz)
    stmt = (
        select(Worklog.startdate, Worklog.timeworked, issue_key_expr().label("issue_key"))
        .select_from(Worklog)
        .join(Issue, Issue.id == Worklog.issueid)
        .join(Project, Project.id == Issue.project)
        .where(
            Worklog.author == user_key,
            Worklog.startdate >= as_utc(start),
            Worklog.startdate < as_utc(end),
        )
    )
    per_day: Dict[date, int] = defaultdict(int)
    for started, worked, issue_key in (await session.execute(stmt)).all():
        if excluded_issue_keys and issue_key.upper() in excluded_issue_keys:
            continue
        per_day[as_utc(started).astimezone(tz).date()] += int(worked or 0)
    return per_day

async def get_dates(
    session: AsyncSession,
    user: User,
    date_from: datetime,
    date_to: datetime,
    check_hours: bool,
    check_non_working_issues: bool,
    settings: TimeTrackerGlobalSettings,
) -> List[MissingsWorklogsDTO]:
    """Working days between the two dates (inclusive) where work is missing.

    Without ``check_hours`` a day counts as missing when nothing is logged on
    it; with it, when less than the daily working hours are logged. The hour
    field carries the missing amount. Newest day first.
    """
    tz = user_timezone(user, settings)
    first_day = date_from.astimezone(tz).date() if date_from.tzinfo else date_from.date()
    last_day = date_to.astimezone(tz).date() if date_to.tzinfo else date_to.date()
    if last_day < first_day:
        return []

    business_days = parse_business_days(settings.business_days)
    exclude_dates = set(settings.exclude_dates)
    include_dates = set(settings.include_dates)
    excluded_issues = {k.upper() for k in settings.non_working_issues} if check_non_working_issues else None

    logged = await logged_seconds_by_day(session, user.user_key, first_day, last_day, tz, excluded_issues)
    expected = int(round(settings.working_hours_per_day * 3600))

    missing: List[MissingsWorklogsDTO] = []
    day = last_day
    while day >= first_day:
        if is_working_day(day, business_days, exclude_dates, include_dates):
            seconds = logged.get(day, 0)
            if check_hours:
                if seconds < expected:
                    missing.append(MissingsWorklogsDTO(date=day, hour=round((expected - seconds) / 3600.0, 2)))
            elif seconds == 0:
                missing.append(MissingsWorklogsDTO(date=day, hour=settings.working_hours_per_day))
        day -= timedelta(days=1)
    logger.debug("Missing worklog days for %s between %s and %s: %d", user.user_key, first_day, last_day, len(missing))
    return missing
