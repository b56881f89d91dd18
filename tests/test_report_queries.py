"""Report queries run against a small seeded mirror."""
from datetime import date, datetime, timezone

from timetracker.db.jira_models import Issue, Project, Worklog
from timetracker.reporting.queries import (
    REPORT_QUERIES,
    IssueSummaryReportQuery,
    ProjectSummaryReportQuery,
    UserSummaryReportQuery,
    WorklogDetailsReportQuery,
)
from timetracker.schemas import ReportSearchParam

UTC = timezone.utc


def _world():
    return [
        Project(id=1, pkey="ALPHA", pname="Alpha", description="First"),
        Project(id=2, pkey="BETA", pname="Beta"),
        Issue(id=11, issuenum=1, project=1, summary="Alpha one", issuetype="Task",
              issuestatus="Open", assignee="alice", timeoriginalestimate=36000, timeestimate=18000),
        Issue(id=12, issuenum=2, project=1, summary="Alpha two", issuetype="Bug",
              issuestatus="Done", timeoriginalestimate=7200, timeestimate=None),
        Issue(id=21, issuenum=1, project=2, summary="Beta one", issuetype="Task",
              issuestatus="Open", timeestimate=3600),
        Worklog(id=1, issueid=11, author="alice", worklogbody="a",
                created=datetime(2024, 3, 4, 9, tzinfo=UTC), startdate=datetime(2024, 3, 4, 9, tzinfo=UTC),
                timeworked=3600),
        Worklog(id=2, issueid=11, author="bob", worklogbody="b",
                created=datetime(2024, 3, 5, 9, tzinfo=UTC), startdate=datetime(2024, 3, 5, 9, tzinfo=UTC),
                timeworked=7200),
        Worklog(id=3, issueid=12, author="alice", worklogbody="c",
                created=datetime(2024, 3, 6, 9, tzinfo=UTC), startdate=datetime(2024, 3, 6, 9, tzinfo=UTC),
                timeworked=1800),
    ]


def _run(run_db, query, with_count=False):
    async def scenario(session):
        session.add_all(_world())
        await session.commit()
        rows = await query.call(session)
        if with_count:
            return rows, await query.count(session)
        return rows

    return run_db(scenario)


def _sums(rows):
    return [(r.project_key, r.issue_time_original_estimate_sum, r.issue_time_estimate_sum, r.worklogged_time_sum)
            for r in rows]


def test_project_summary(run_db):
    rows, total = _run(run_db, ProjectSummaryReportQuery(ReportSearchParam()), with_count=True)
    assert _sums(rows) == [
        ("ALPHA", 43200, 18000, 12600),
        ("BETA", 0, 3600, 0),
    ]
    assert rows[0].project_name == "Alpha"
    assert rows[0].project_description == "First"
    assert rows[1].project_description is None
    assert total == 2


def test_project_summary_filtered_by_author(run_db):
    rows = _run(run_db, ProjectSummaryReportQuery(ReportSearchParam(users=["alice"])))
    # projects without a matching worklog drop out
    assert _sums(rows) == [("ALPHA", 43200, 18000, 5400)]


def test_project_summary_end_date_is_inclusive(run_db):
    rows = _run(run_db, ProjectSummaryReportQuery(ReportSearchParam(worklog_end_date=date(2024, 3, 4))))
    assert _sums(rows) == [("ALPHA", 36000, 18000, 3600)]


def test_project_summary_project_filter(run_db):
    rows = _run(run_db, ProjectSummaryReportQuery(ReportSearchParam(project_keys=["beta"])))
    assert _sums(rows) == [("BETA", 0, 3600, 0)]


def test_issue_summary(run_db):
    rows = _run(run_db, IssueSummaryReportQuery(ReportSearchParam()))
    assert [(r.issue_key, r.issue_time_original_estimate, r.issue_time_estimate, r.worklogged_time_sum)
            for r in rows] == [
        ("ALPHA-1", 36000, 18000, 10800),
        ("ALPHA-2", 7200, 0, 1800),
        ("BETA-1", 0, 3600, 0),
    ]

    rows = _run(run_db, IssueSummaryReportQuery(ReportSearchParam(issue_keys=["alpha-2"])))
    assert [(r.issue_key, r.issue_type, r.issue_status, r.project_key) for r in rows] == [
        ("ALPHA-2", "Bug", "Done", "ALPHA"),
    ]

    rows = _run(run_db, IssueSummaryReportQuery(ReportSearchParam(issue_assignees=["alice"])))
    assert [r.issue_key for r in rows] == ["ALPHA-1"]


def test_user_summary(run_db):
    rows = _run(run_db, UserSummaryReportQuery(ReportSearchParam()))
    assert [(r.user, r.worklogged_time_sum) for r in rows] == [("alice", 5400), ("bob", 7200)]

    rows = _run(run_db, UserSummaryReportQuery(ReportSearchParam(worklog_start_date=date(2024, 3, 5))))
    assert [(r.user, r.worklogged_time_sum) for r in rows] == [("alice", 1800), ("bob", 7200)]


def test_worklog_details_newest_first_with_paging(run_db):
    rows, total = _run(run_db, WorklogDetailsReportQuery(ReportSearchParam()), with_count=True)
    assert [r.worklog_id for r in rows] == [3, 2, 1]
    assert rows[0].issue_key == "ALPHA-2"
    assert rows[0].project_name == "Alpha"
    assert total == 3

    rows, total = _run(run_db, WorklogDetailsReportQuery(ReportSearchParam(limit=1, offset=1)), with_count=True)
    assert [(r.worklog_id, r.worklog_author, r.worklog_time_worked) for r in rows] == [(2, "bob", 7200)]
    assert total == 3


def test_report_registry():
    assert set(REPORT_QUERIES) == {"project-summary", "issue-summary", "user-summary", "worklog-details"}
    assert REPORT_QUERIES["project-summary"] is ProjectSummaryReportQuery
