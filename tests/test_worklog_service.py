"""WorklogService against SQLite: validation limits and issue time bookkeeping."""
from datetime import datetime, timezone

from timetracker.db.jira_models import Issue, Project, Worklog
from timetracker.db.models import User
from timetracker.schemas import TimeTrackerGlobalSettings
from timetracker.services.worklog_service import MAX_COMMENT_LENGTH, MAX_TIME_SPENT, WorklogService

START = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)
HOUR = 3600


def _alice():
    return User(id=1, email="alice@acme.io", user_key="alice", role="user", groups=[], password_hash="x")


def _issue(**kw):
    return Issue(id=10, issuenum=1, project=1, summary="Build", **kw)


def _with_issue(run_db, scenario, **issue_kw):
    async def _main(session):
        session.add_all([Project(id=1, pkey="DEV", pname="Development"), _issue(**issue_kw)])
        await session.commit()
        service = WorklogService(session, TimeTrackerGlobalSettings())
        issue = await service.get_issue("DEV-1")
        return await scenario(session, service, issue)

    return run_db(_main)


def test_validate_create_limits(run_db):
    async def scenario(session, service, issue):
        user = _alice()
        ok = service.validate_create(user, issue, START, "x" * MAX_COMMENT_LENGTH, "1h 30m")
        too_long = service.validate_create(user, issue, START, "x" * (MAX_COMMENT_LENGTH + 1), "1h")
        zero = service.validate_create(user, issue, START, "", "0m")
        huge = service.validate_create(user, issue, START, "", f"{MAX_TIME_SPENT + 1}m")
        return ok, too_long, zero, huge

    ok, too_long, zero, huge = _with_issue(run_db, scenario)
    assert ok is not None
    assert (ok.author, ok.time_spent, ok.start_date) == ("alice", 5400, START)
    assert too_long is None
    assert zero is None
    assert huge is None


def test_create_update_delete_track_issue_time(run_db):
    async def scenario(session, service, issue):
        user = _alice()
        seen = []

        params = service.validate_create(user, issue, START, "first", "1h")
        worklog = await service.create_and_auto_adjust_remaining_estimate(params)
        await session.refresh(issue)
        seen.append((issue.timespent, issue.timeestimate))

        params = service.validate_update(user, worklog, issue, START, "longer", "3h")
        await service.update_and_auto_adjust_remaining_estimate(params)
        await session.refresh(issue)
        seen.append((issue.timespent, issue.timeestimate))

        assert await service.delete_and_auto_adjust_remaining_estimate(worklog)
        await session.refresh(issue)
        seen.append((issue.timespent, issue.timeestimate))
        seen.append(await session.get(Worklog, worklog.id))
        return seen

    created, updated, deleted, gone = _with_issue(run_db, scenario, timespent=HOUR, timeestimate=5 * HOUR)
    assert created == (2 * HOUR, 4 * HOUR)
    assert updated == (4 * HOUR, 2 * HOUR)
    assert deleted == (HOUR, 5 * HOUR)
    assert gone is None


def test_remaining_estimate_never_goes_negative(run_db):
    async def scenario(session, service, issue):
        params = service.validate_create(_alice(), issue, START, "", "3h")
        await service.create_and_auto_adjust_remaining_estimate(params)
        await session.refresh(issue)
        return issue.timespent, issue.timeestimate

    assert _with_issue(run_db, scenario, timeestimate=HOUR) == (3 * HOUR, 0)


def test_unestimated_issue_stays_unestimated(run_db):
    async def scenario(session, service, issue):
        params = service.validate_create(_alice(), issue, START, "", "2h")
        await service.create_and_auto_adjust_remaining_estimate(params)
        await session.refresh(issue)
        return issue.timespent, issue.timeestimate

    assert _with_issue(run_db, scenario) == (2 * HOUR, None)
