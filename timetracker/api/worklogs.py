from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..db.database import get_session
from ..db.jira_models import Issue, Project, Worklog
from ..db.models import User
from ..reporting.queries import issue_key_expr
from ..schemas import ActionResult, ActionResultStatus, TimeTrackerGlobalSettings, WorklogIn, WorklogOut
from ..services.missing_worklogs import user_timezone
from ..services.timecalc import format_duration
from ..services.worklog_manager import WorklogManager
from ..services.worklog_service import WorklogService
from ..util.dates import as_utc
from ..web.worklogs_action import ERROR, NONE, WorklogsAction
from .deps import global_settings, optional_user, plugin_user

router = APIRouter(prefix="/worklogs", tags=["worklogs"])

def _render(action: WorklogsAction, result: str):
    if result == NONE:
        return RedirectResponse(action.return_url or "/", status_code=303)
    view = action.view(result).model_dump(mode="json")
    if result == ERROR:
        return JSONResponse(status_code=500, content=view)
    return view

@router.get("/missing")
async def missing_worklogs_default(
    user: Optional[User] = Depends(optional_user),
    settings: TimeTrackerGlobalSettings = Depends(global_settings),
    session: AsyncSession = Depends(get_session),
):
    action = WorklogsAction(session, user, settings, {})
    return _render(action, await action.do_default())

@router.post("/missing")
async def missing_worklogs_execute(
    params: Optional[Dict[str, Any]] = Body(default=None),
    user: Optional[User] = Depends(optional_user),
    settings: TimeTrackerGlobalSettings = Depends(global_settings),
    session: AsyncSession = Depends(get_session),
):
    # form semantics: a present key is a set field or a checked box
    form = {k: ("" if v is True else str(v)) for k, v in (params or {}).items() if v is not None and v is not False}
    action = WorklogsAction(session, user, settings, form)
    return _render(action, await action.do_execute())

def _manager(session: AsyncSession, user: User, settings: TimeTrackerGlobalSettings) -> WorklogManager:
    service = WorklogService(session, settings, days_per_week=get_settings().days_per_week)
    return WorklogManager(service, user_timezone(user, settings))

def _result_response(result: ActionResult, success_status: int = 200):
    code = success_status if result.status == ActionResultStatus.SUCCESS else 400
    return JSONResponse(status_code=code, content=result.model_dump(mode="json"))

@router.post("", response_model=ActionResult, status_code=201)
async def create_worklog(
    payload: WorklogIn,
    user: User = Depends(plugin_user),
    settings: TimeTrackerGlobalSettings = Depends(global_settings),
    session: AsyncSession = Depends(get_session),
):
    result = await _manager(session, user, settings).create_worklog(
        user, payload.issue_id, payload.comment, payload.date, payload.start_time, payload.time_spent,
    )
    return _result_response(result, success_status=201)

@router.put("/{worklog_id}", response_model=ActionResult)
async def edit_worklog(
    worklog_id: int,
    payload: WorklogIn,
    user: User = Depends(plugin_user),
    settings: TimeTrackerGlobalSettings = Depends(global_settings),
    session: AsyncSession = Depends(get_session),
):
    result = await _manager(session, user, settings).edit_worklog(
        user, worklog_id, payload.issue_id, payload.comment, payload.date, payload.start_time, payload.time_spent,
    )
    return _result_response(result)

@router.delete("/{worklog_id}", response_model=ActionResult)
async def delete_worklog(
    worklog_id: int,
    user: User = Depends(plugin_user),
    settings: TimeTrackerGlobalSettings = Depends(global_settings),
    session: AsyncSession = Depends(get_session),
):
    result = await _manager(session, user, settings).delete_worklog(user, worklog_id)
    return _result_response(result)

@router.get("", response_model=List[WorklogOut])
async def list_my_worklogs(
    day: date = Query(alias="date"),
    user: User = Depends(plugin_user),
    settings: TimeTrackerGlobalSettings = Depends(global_settings),
    session: AsyncSession = Depends(get_session),
):
    """The logged in user's worklogs starting on the given day, in their timezone."""
    tz = user_timezone(user, settings)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    stmt = (
        select(Worklog, issue_key_expr().label("issue_key"))
        .join(Issue, Issue.id == Worklog.issueid)
        .join(Project, Project.id == Issue.project)
        .where(
            Worklog.author == user.user_key,
            Worklog.startdate >= as_utc(start),
            Worklog.startdate < as_utc(end),
        )
        .order_by(Worklog.startdate)
    )
    rows = (await session.execute(stmt)).all()
    return [
        WorklogOut(
            id=w.id,
            issue_key=issue_key,
            comment=w.worklogbody,
            start_date=as_utc(w.startdate).astimezone(tz),
            time_worked=w.timeworked,
            time_spent=format_duration(w.timeworked, settings.working_hours_per_day),
        )
        for w, issue_key in rows
    ]
