"""Report queries over the Jira shaped tables.

Every query shares the same base: issues joined to their project, plus a
per-issue worklog aggregate restricted by the worklog filters of the search
param. Estimates are summed per issue row, logged time per worklog row, so the
two never multiply each other.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Generic, List, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import Select, String, and_, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ..db.jira_models import Issue, Project, Worklog
from ..schemas import (
    IssueSummaryDTO,
    ProjectSummaryDTO,
    ReportSearchParam,
    UserSummaryDTO,
    WorklogDetailsDTO,
)

T = TypeVar("T", bound=BaseModel)

class AliasNames:
    PROJECT_KEY = "project_key"
    PROJECT_NAME = "project_name"
    PROJECT_DESCRIPTION = "project_description"
    ISSUE_KEY = "issue_key"
    ISSUE_SUMMARY = "issue_summary"
    ISSUE_TYPE = "issue_type"
    ISSUE_STATUS = "issue_status"
    ISSUE_ASSIGNEE = "issue_assignee"
    ISSUE_TIME_ORIGINAL_ESTIMATE = "issue_time_original_estimate"
    ISSUE_TIME_ESTIMATE = "issue_time_estimate"
    ISSUE_TIME_ORIGINAL_ESTIMATE_SUM = "issue_time_original_estimate_sum"
    ISSUE_TIME_ESTIMATE_SUM = "issue_time_estimate_sum"
    WORKLOGGED_TIME_SUM = "worklogged_time_sum"
    USER = "user"
    WORKLOG_ID = "worklog_id"
    WORKLOG_AUTHOR = "worklog_author"
    WORKLOG_BODY = "worklog_body"
    WORKLOG_START_DATE = "worklog_start_date"
    WORKLOG_TIME_WORKED = "worklog_time_worked"

def issue_key_expr(project=Project, issue=Issue):
    return project.pkey + "-" + cast(issue.issuenum, String)

def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)

def _norm(values: List[str]) -> List[str]:
    return [v.strip() for v in values if v and v.strip()]

class AbstractReportQuery:
    def __init__(self, param: ReportSearchParam):
        self.param = param

    # -- worklog side -------------------------------------------------------
    def has_worklog_filter(self) -> bool:
        p = self.param
        return bool(_norm(p.users) or p.worklog_start_date or p.worklog_end_date)

    def worklog_conditions(self) -> list:
        p = self.param
        conds = []
        users = _norm(p.users)
        if users:
            conds.append(Worklog.author.in_(users))
        if p.worklog_start_date:
            conds.append(Worklog.startdate >= _day_start(p.worklog_start_date))
        if p.worklog_end_date:
            # end date is inclusive
            conds.append(Worklog.startdate < _day_start(p.worklog_end_date + timedelta(days=1)))
        return conds

    def worklog_sums(self):
        stmt = select(
            Worklog.issueid.label("issueid"),
            func.sum(Worklog.timeworked).label("timeworked_sum"),
        )
        conds = self.worklog_conditions()
        if conds:
            stmt = stmt.where(and_(*conds))
        return stmt.group_by(Worklog.issueid).subquery("worklog_sums")

    # -- issue side ---------------------------------------------------------
    def issue_conditions(self) -> list:
        p = self.param
        conds = []
        projects = [k.upper() for k in _norm(p.project_keys)]
        if projects:
            conds.append(Project.pkey.in_(projects))
        keys = [k.upper() for k in _norm(p.issue_keys)]
        if keys:
            conds.append(issue_key_expr().in_(keys))
        if _norm(p.issue_types):
            conds.append(Issue.issuetype.in_(_norm(p.issue_types)))
        if _norm(p.issue_statuses):
            conds.append(Issue.issuestatus.in_(_norm(p.issue_statuses)))
        if _norm(p.issue_assignees):
            conds.append(Issue.assignee.in_(_norm(p.issue_assignees)))
        return conds

    def append_base_from_and_join(self, stmt: Select, sums) -> Select:
        stmt = stmt.select_from(Issue).join(Project, Project.id == Issue.project)
        if self.has_worklog_filter():
            return stmt.join(sums, sums.c.issueid == Issue.id)
        return stmt.outerjoin(sums, sums.c.issueid == Issue.id)

    def append_base_where(self, stmt: Select) -> Select:
        conds = self.issue_conditions()
        if conds:
            stmt = stmt.where(and_(*conds))
        return stmt

    def build(self) -> Select:
        raise NotImplementedError

class AbstractListReportQuery(AbstractReportQuery, Generic[T]):
    dto: Type[T]

    def build_list(self) -> Select:
        raise NotImplementedError

    def build(self) -> Select:
        stmt = self.build_list()
        if self.param.offset:
            stmt = stmt.offset(self.param.offset)
        if self.param.limit:
            stmt = stmt.limit(self.param.limit)
        return stmt

    def build_count(self) -> Select:
        inner = self.build_list().order_by(None).subquery("counted")
        return select(func.count()).select_from(inner)

    async def call(self, session: AsyncSession) -> List[T]:
        rows = (await session.execute(self.build())).mappings().all()
        return [self.dto.model_validate(dict(r)) for r in rows]

    async def count(self, session: AsyncSession) -> int:
        return int((await session.execute(self.build_count())).scalar_one())

class ProjectSummaryReportQuery(AbstractListReportQuery[ProjectSummaryDTO]):
    """Per project sums of original estimate, remaining estimate and logged time."""
    dto = ProjectSummaryDTO

    def build_list(self) -> Select:
        sums = self.worklog_sums()
        from_query = select(
            Project.id.label("from_project_id"),
            func.sum(Issue.timeoriginalestimate).label(AliasNames.ISSUE_TIME_ORIGINAL_ESTIMATE_SUM),
            func.sum(Issue.timeestimate).label(AliasNames.ISSUE_TIME_ESTIMATE_SUM),
            func.sum(sums.c.timeworked_sum).label(AliasNames.WORKLOGGED_TIME_SUM),
        )
        from_query = self.append_base_from_and_join(from_query, sums)
        from_query = self.append_base_where(from_query)
        from_query = from_query.group_by(Project.id).subquery("sums")

        m_project = aliased(Project, name="m_project")
        return (
            select(
                m_project.pkey.label(AliasNames.PROJECT_KEY),
                m_project.pname.label(AliasNames.PROJECT_NAME),
                m_project.description.label(AliasNames.PROJECT_DESCRIPTION),
                func.coalesce(from_query.c[AliasNames.ISSUE_TIME_ORIGINAL_ESTIMATE_SUM], 0)
                    .label(AliasNames.ISSUE_TIME_ORIGINAL_ESTIMATE_SUM),
                func.coalesce(from_query.c[AliasNames.ISSUE_TIME_ESTIMATE_SUM], 0)
                    .label(AliasNames.ISSUE_TIME_ESTIMATE_SUM),
                func.coalesce(from_query.c[AliasNames.WORKLOGGED_TIME_SUM], 0)
                    .label(AliasNames.WORKLOGGED_TIME_SUM),
            )
            .select_from(from_query)
            .join(m_project, m_project.id == from_query.c.from_project_id)
            .order_by(m_project.pkey)
        )

class IssueSummaryReportQuery(AbstractListReportQuery[IssueSummaryDTO]):
    dto = IssueSummaryDTO

    def build_list(self) -> Select:
        sums = self.worklog_sums()
        stmt = select(
            issue_key_expr().label(AliasNames.ISSUE_KEY),
            Issue.summary.label(AliasNames.ISSUE_SUMMARY),
            Issue.issuetype.label(AliasNames.ISSUE_TYPE),
            Issue.issuestatus.label(AliasNames.ISSUE_STATUS),
            Issue.assignee.label(AliasNames.ISSUE_ASSIGNEE),
            Project.pkey.label(AliasNames.PROJECT_KEY),
            func.coalesce(Issue.timeoriginalestimate, 0).label(AliasNames.ISSUE_TIME_ORIGINAL_ESTIMATE),
            func.coalesce(Issue.timeestimate, 0).label(AliasNames.ISSUE_TIME_ESTIMATE),
            func.coalesce(sums.c.timeworked_sum, 0).label(AliasNames.WORKLOGGED_TIME_SUM),
        )
        stmt = self.append_base_from_and_join(stmt, sums)
        stmt = self.append_base_where(stmt)
        return stmt.order_by(Project.pkey, Issue.issuenum)

class UserSummaryReportQuery(AbstractListReportQuery[UserSummaryDTO]):
    dto = UserSummaryDTO

    def build_list(self) -> Select:
        stmt = (
            select(
                Worklog.author.label(AliasNames.USER),
                func.sum(Worklog.timeworked).label(AliasNames.WORKLOGGED_TIME_SUM),
            )
            .select_from(Worklog)
            .join(Issue, Issue.id == Worklog.issueid)
            .join(Project, Project.id == Issue.project)
        )
        conds = self.worklog_conditions() + self.issue_conditions()
        if conds:
            stmt = stmt.where(and_(*conds))
        return stmt.group_by(Worklog.author).order_by(Worklog.author)

class WorklogDetailsReportQuery(AbstractListReportQuery[WorklogDetailsDTO]):
    dto = WorklogDetailsDTO

    def build_list(self) -> Select:
        stmt = (
            select(
                Worklog.id.label(AliasNames.WORKLOG_ID),
                Worklog.author.label(AliasNames.WORKLOG_AUTHOR),
                Worklog.worklogbody.label(AliasNames.WORKLOG_BODY),
                Worklog.startdate.label(AliasNames.WORKLOG_START_DATE),
                Worklog.timeworked.label(AliasNames.WORKLOG_TIME_WORKED),
                issue_key_expr().label(AliasNames.ISSUE_KEY),
                Issue.summary.label(AliasNames.ISSUE_SUMMARY),
                Project.pkey.label(AliasNames.PROJECT_KEY),
                Project.pname.label(AliasNames.PROJECT_NAME),
            )
            .select_from(Worklog)
            .join(Issue, Issue.id == Worklog.issueid)
            .join(Project, Project.id == Issue.project)
        )
        conds = self.worklog_conditions() + self.issue_conditions()
        if conds:
            stmt = stmt.where(and_(*conds))
        return stmt.order_by(Worklog.startdate.desc(), Worklog.id.desc())

REPORT_QUERIES: dict[str, Type[AbstractListReportQuery[Any]]] = {
    "project-summary": ProjectSummaryReportQuery,
    "issue-summary": IssueSummaryReportQuery,
    "user-summary": UserSummaryReportQuery,
    "worklog-details": WorklogDetailsReportQuery,
}
