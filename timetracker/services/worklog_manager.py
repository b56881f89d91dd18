from __future__ import annotations

import logging
from datetime import date, datetime, tzinfo
from typing import Union

from ..db.models import User
from ..schemas import ActionResult, ActionResultStatus
from .timecalc import parse_hhmm
from .worklog_service import WorklogService

logger = logging.getLogger(__name__)

class PropertiesKey:
    INVALID_ISSUE = "plugin.invalid_issue"
    INVALID_WORKLOG = "plugin.invalid_worklog"
    NOPERMISSION_ISSUE = "plugin.nopermission_issue"
    NOPERMISSION_WORKLOG = "plugin.nopermission_worklog"
    DATE_PARSE = "plugin.date_parse"
    WORKLOG_CREATE_FAIL = "plugin.worklog.create.fail"
    WORKLOG_CREATE_SUCCESS = "plugin.worklog.create.success"
    WORKLOG_EDIT_FAIL = "plugin.worklog.edit.fail"
    WORKLOG_EDIT_SUCCESS = "plugin.worklog.edit.success"
    WORKLOG_DELETE_FAIL = "plugin.worklog.delete.fail"
    WORKLOG_DELETE_SUCCESS = "plugin.worklog.delete.success"

def _fail(message: str, parameter: str = "") -> ActionResult:
    return ActionResult(status=ActionResultStatus.FAIL, message=message, message_parameter=parameter)

def _success(message: str) -> ActionResult:
    return ActionResult(status=ActionResultStatus.SUCCESS, message=message)

class WorklogManager:
    """Classifies worklog requests into ActionResults and delegates to the worklog service."""

    def __init__(self, service: WorklogService, tz: tzinfo):
        self.service = service
        self.tz = tz

    def _start_date(self, day: Union[date, str], start_time: str) -> datetime:
        if isinstance(day, str):
            day = date.fromisoformat(day.strip())
        return datetime.combine(day, parse_hhmm(start_time), tzinfo=self.tz)

    async def create_worklog(self, user: User, issue_id: str, comment: str,
                             day: Union[date, str], start_time: str, time_spent: str) -> ActionResult:
        issue = await self.service.get_issue(issue_id)
        if issue is None:
            return _fail(PropertiesKey.INVALID_ISSUE, issue_id)
        issue_key = await self.service.issue_key(issue)
        if not await self.service.has_permission_to_work(user, issue):
            return _fail(PropertiesKey.NOPERMISSION_ISSUE, issue_key)
        try:
            start_date = self._start_date(day, start_time)
        except ValueError:
            return _fail(PropertiesKey.DATE_PARSE, f"{day} {start_time}")

        params = self.service.validate_create(user, issue, start_date, comment, time_spent)
        if params is None:
            return _fail(PropertiesKey.WORKLOG_CREATE_FAIL)
        worklog = await self.service.create_and_auto_adjust_remaining_estimate(params)
        if worklog is None:
            return _fail(PropertiesKey.WORKLOG_CREATE_FAIL)
        logger.info("Worklog created on %s by %s", issue_key, user.user_key)
        return _success(PropertiesKey.WORKLOG_CREATE_SUCCESS)

    async def edit_worklog(self, user: User, worklog_id: int, issue_id: str, comment: str,
                           day: Union[date, str], start_time: str, time_spent: str) -> ActionResult:
        worklog = await self.service.get_worklog(worklog_id)
        if worklog is None:
            return _fail(PropertiesKey.INVALID_WORKLOG, str(worklog_id))
        if not self.service.can_edit(user, worklog):
            return _fail(PropertiesKey.NOPERMISSION_WORKLOG, str(worklog_id))
        issue = await self.service.get_issue(issue_id)
        if issue is None:
            return _fail(PropertiesKey.INVALID_ISSUE, issue_id)
        issue_key = await self.service.issue_key(issue)
        if not await self.service.has_permission_to_work(user, issue):
            return _fail(PropertiesKey.NOPERMISSION_ISSUE, issue_key)
        try:
            start_date = self._start_date(day, start_time)
        except ValueError:
            return _fail(PropertiesKey.DATE_PARSE, f"{day} {start_time}")

        params = self.service.validate_update(user, worklog, issue, start_date, comment, time_spent)
        if params is None:
            return _fail(PropertiesKey.WORKLOG_EDIT_FAIL)
        if await self.service.update_and_auto_adjust_remaining_estimate(params) is None:
            return _fail(PropertiesKey.WORKLOG_EDIT_FAIL)
        return _success(PropertiesKey.WORKLOG_EDIT_SUCCESS)

    async def delete_worklog(self, user: User, worklog_id: int) -> ActionResult:
        worklog = await self.service.get_worklog(worklog_id)
        if worklog is None:
            return _fail(PropertiesKey.INVALID_WORKLOG, str(worklog_id))
        if not self.service.can_edit(user, worklog):
            return _fail(PropertiesKey.NOPERMISSION_WORKLOG, str(worklog_id))
        if not await self.service.delete_and_auto_adjust_remaining_estimate(worklog):
            return _fail(PropertiesKey.WORKLOG_DELETE_FAIL)
        return _success(PropertiesKey.WORKLOG_DELETE_SUCCESS)
