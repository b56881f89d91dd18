"""Worklog persistence over the jiraissue/worklog tables.

Mirrors the contract of Jira's worklog service: validation returns ``None``
on failure, creation returns ``None`` when nothing could be stored, and the
remaining estimate of the issue is adjusted automatically.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.jira_models import Issue, Project, Worklog
from ..db.models import ProjectMember, User
from ..schemas import TimeTrackerGlobalSettings
from ..util.dates import as_utc
from .timecalc import parse_duration

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 32767
# worklog.timeworked and the issue time columns are 64 bit; one worklog stays far below that
MAX_TIME_SPENT = 2**31 - 1

@dataclass
class WorklogInputParameters:
    issue: Issue
    author: str
    start_date: datetime
    comment: str
    time_spent: int  # seconds
    worklog: Optional[Worklog] = None  # set when updating

class WorklogService:
    def __init__(self, session: AsyncSession, settings: TimeTrackerGlobalSettings, days_per_week: int = 5):
        self.session = session
        self.settings = settings
        self.days_per_week = days_per_week

    async def get_issue(self, id_or_key: str) -> Optional[Issue]:
        """Look up an issue by ``KEY-12`` or by its numeric id."""
        value = (id_or_key or "").strip()
        if not value:
            return None
        if value.isdigit():
            return await self.session.get(Issue, int(value))
        pkey, sep, num = value.upper().rpartition("-")
        if not sep or not pkey or not num.isdigit():
            return None
        stmt = (
            select(Issue)
            .join(Project, Project.id == Issue.project)
            .where(Project.pkey == pkey, Issue.issuenum == int(num))
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def issue_key(self, issue: Issue) -> str:
        project = await self.session.get(Project, issue.project)
        return f"{project.pkey}-{issue.issuenum}" if project else str(issue.id)

    async def get_worklog(self, worklog_id: int) -> Optional[Worklog]:
        return await self.session.get(Worklog, worklog_id)

    async def has_permission_to_work(self, user: User, issue: Issue) -> bool:
        if user.role == "admin":
            return True
        stmt = select(ProjectMember.id).where(
            ProjectMember.project_id == issue.project,
            ProjectMember.user_id == user.id,
        )
        return (await self.session.execute(stmt)).first() is not None

    def can_edit(self, user: User, worklog: Worklog) -> bool:
        return user.role == "admin" or worklog.author == user.user_key

    def _validate(self, user: User, issue: Issue, start_date: datetime, comment: str,
                  time_spent: str, worklog: Optional[Worklog] = None) -> Optional[WorklogInputParameters]:
        try:
            seconds = parse_duration(time_spent, self.settings.working_hours_per_day, self.days_per_week)
        except ValueError:
            logger.info("Rejected worklog on issue %s: bad time spent %r", issue.id, time_spent)
            return None
        if seconds <= 0 or seconds > MAX_TIME_SPENT:
            return None
        if len(comment or "") > MAX_COMMENT_LENGTH:
            return None
        return WorklogInputParameters(
            issue=issue,
            author=worklog.author if worklog else user.user_key,
            start_date=start_date,
            comment=comment or "",
            time_spent=seconds,
            worklog=worklog,
        )

    def validate_create(self, user: User, issue: Issue, start_date: datetime, comment: str,
                        time_spent: str) -> Optional[WorklogInputParameters]:
        return self._validate(user, issue, start_date, comment, time_spent)

    def validate_update(self, user: User, worklog: Worklog, issue: Issue, start_date: datetime,
                        comment: str, time_spent: str) -> Optional[WorklogInputParameters]:
        return self._validate(user, issue, start_date, comment, time_spent, worklog=worklog)

    @staticmethod
    def _log_work(issue: Issue, seconds: int) -> None:
        issue.timespent = (issue.timespent or 0) + seconds
        if issue.timeestimate is not None:
            issue.timeestimate = max(0, issue.timeestimate - seconds)

    @staticmethod
    def _unlog_work(issue: Issue, seconds: int) -> None:
        issue.timespent = max(0, (issue.timespent or 0) - seconds)
        if issue.timeestimate is not None:
            issue.timeestimate = issue.timeestimate + seconds

    async def create_and_auto_adjust_remaining_estimate(self, params: WorklogInputParameters) -> Optional[Worklog]:
        now = datetime.now(timezone.utc)
        worklog = Worklog(
            issueid=params.issue.id,
            author=params.author,
            worklogbody=params.comment,
            created=now,
            updated=now,
            startdate=as_utc(params.start_date),
            timeworked=params.time_spent,
        )
        try:
            self.session.add(worklog)
            self._log_work(params.issue, params.time_spent)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.error("Failed to create worklog on issue %s", params.issue.id, exc_info=True)
            return None
        return worklog

    async def update_and_auto_adjust_remaining_estimate(self, params: WorklogInputParameters) -> Optional[Worklog]:
        worklog = params.worklog
        try:
            old_issue = await self.session.get(Issue, worklog.issueid)
            if old_issue is not None:
                self._unlog_work(old_issue, worklog.timeworked or 0)
            worklog.issueid = params.issue.id
            worklog.worklogbody = params.comment
            worklog.startdate = as_utc(params.start_date)
            worklog.timeworked = params.time_spent
            worklog.updated = datetime.now(timezone.utc)
            self._log_work(params.issue, params.time_spent)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.error("Failed to update worklog %s", worklog.id, exc_info=True)
            return None
        return worklog

    async def delete_and_auto_adjust_remaining_estimate(self, worklog: Worklog) -> bool:
        try:
            issue = await self.session.get(Issue, worklog.issueid)
            if issue is not None:
                self._unlog_work(issue, worklog.timeworked or 0)
            await self.session.delete(worklog)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.error("Failed to delete worklog %s", worklog.id, exc_info=True)
            return False
        return True
