"""Missing worklogs page.

A form backed controller: every request builds a fresh action, feeds it the
request parameters and renders whatever state the action ends up in.
"""
from __future__ import annotations

import logging
import traceback
from datetime import datetime
from typing import Awaitable, Callable, List, Mapping, Optional

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models import User
from ..schemas import MissingsPageingDTO, MissingsWorklogsDTO, TimeTrackerGlobalSettings
from ..services import missing_worklogs
from ..settings_helper import plugin_condition, reporting_condition
from ..util.dates import from_millis, minus_months, to_millis

logger = logging.getLogger(__name__)

INPUT = "input"
SUCCESS = "success"
ERROR = "error"
NONE = "none"

HOME_URL = "/"

PARAM_ACTUAL_PAGE = "actualPage"
PARAM_DATE_FROM_FORMATED = "dateFromFormated"
PARAM_DATE_TO_FORMATED = "dateToFormated"
PARAM_DATEFROM = "dateFromMil"
PARAM_DATETO = "dateToMil"

MESSAGE_WRONG_DATES = "plugin.wrong.dates"
MESSAGE_INVALID_PAGE = "plugin.invalid.page"

# The number of rows in the dates table.
ROW_COUNT = 20

GetDates = Callable[..., Awaitable[List[MissingsWorklogsDTO]]]

class WorklogsView(BaseModel):
    result: str
    return_url: Optional[str] = None
    actual_page: int = 0
    number_of_pages: int = 0
    check_hours: bool = False
    check_non_working_issues: bool = False
    date_from_formated: Optional[int] = None
    date_to_formated: Optional[int] = None
    message: str = ""
    message_parameter: str = ""
    paging: MissingsPageingDTO = MissingsPageingDTO()
    dates_where_no_worklog: List[MissingsWorklogsDTO] = []
    show_dates_where_no_worklog: List[MissingsWorklogsDTO] = []
    stacktrace: str = ""

class _BadParam(ValueError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class WorklogsAction:
    def __init__(
        self,
        session: AsyncSession,
        user: Optional[User],
        settings: TimeTrackerGlobalSettings,
        params: Mapping[str, str],
        get_dates: GetDates = missing_worklogs.get_dates,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.session = session
        self.user = user
        self.settings = settings
        self.params = params
        self.get_dates = get_dates
        self._now = now or (lambda: datetime.now(self.tz))
        self.tz = missing_worklogs.user_timezone(user, settings)

        self.actual_page = 0
        self.number_of_pages = 0
        self.check_hours = False
        self.check_non_working_issues = False
        self.date_from: Optional[datetime] = None
        self.date_to: Optional[datetime] = None
        self.date_from_formated: Optional[int] = None
        self.date_to_formated: Optional[int] = None
        self.message = ""
        self.message_parameter = ""
        self.paging = MissingsPageingDTO()
        self.all_dates_where_no_worklog: List[MissingsWorklogsDTO] = []
        self.show_dates_where_no_worklog: List[MissingsWorklogsDTO] = []
        self.stacktrace = ""
        self.return_url: Optional[str] = None

    # -- entry points ---------------------------------------------------------
    async def do_default(self) -> str:
        result = self.check_conditions()
        if result is not None:
            return result

        if self.date_to_formated is None:
            self._date_to_default_init()
        self.date_to = from_millis(self.date_to_formated, self.tz)
        if self.date_from_formated is None:
            self._date_from_default_init()
        self.date_from = from_millis(self.date_from_formated, self.tz)

        result = await self._run_query()
        if result is not None:
            return result
        self.number_of_pages = self.count_number_of_pages()
        self.actual_page = 1
        self.set_show_dates_list_by_actual_page(self.actual_page)
        return INPUT

    async def do_execute(self) -> str:
        result = self.check_conditions()
        if result is not None:
            return result

        self._init_variables()
        result = self.parse_params()
        if result is not None:
            return result
        result = await self._run_query()
        if result is not None:
            return result
        # check the page changer buttons
        self.number_of_pages = self.count_number_of_pages()
        result = self.page_change_action()
        if result is not None:
            return result
        self.set_show_dates_list_by_actual_page(self.actual_page)
        return SUCCESS

    def view(self, result: str) -> WorklogsView:
        return WorklogsView(
            result=result,
            return_url=self.return_url,
            actual_page=self.actual_page,
            number_of_pages=self.number_of_pages,
            check_hours=self.check_hours,
            check_non_working_issues=self.check_non_working_issues,
            date_from_formated=self.date_from_formated,
            date_to_formated=self.date_to_formated,
            message=self.message,
            message_parameter=self.message_parameter,
            paging=self.paging,
            dates_where_no_worklog=self.all_dates_where_no_worklog,
            show_dates_where_no_worklog=self.show_dates_where_no_worklog,
            stacktrace=self.stacktrace,
        )

    # -- steps ----------------------------------------------------------------
    def check_conditions(self) -> Optional[str]:
        if (self.user is None
                or not reporting_condition(self.user, self.settings)
                or not plugin_condition(self.user, self.settings)):
            self.return_url = HOME_URL
            return NONE
        return None

    async def _run_query(self) -> Optional[str]:
        try:
            self.all_dates_where_no_worklog = await self.get_dates(
                self.session, self.user, self.date_from, self.date_to,
                self.check_hours, self.check_non_working_issues, self.settings,
            )
        except SQLAlchemyError:
            logger.error("Error when try to run the query.", exc_info=True)
            self.stacktrace = traceback.format_exc()
            return ERROR
        return None

    def count_number_of_pages(self) -> int:
        """Count how many pages are needed to show the dates."""
        size = len(self.all_dates_where_no_worklog)
        pages = size // ROW_COUNT
        if size % ROW_COUNT != 0:
            pages += 1
        return pages

    def _date_from_default_init(self) -> None:
        self.date_from_formated = to_millis(minus_months(self._now(), 1))

    def _date_to_default_init(self) -> None:
        self.date_to_formated = to_millis(self._now())

    def _init_variables(self) -> None:
        self.message = ""
        self.message_parameter = ""
        self.all_dates_where_no_worklog = []
        self.show_dates_where_no_worklog = []

    @staticmethod
    def _as_int(value: str, message: str) -> int:
        try:
            return int(str(value).strip())
        except ValueError:
            raise _BadParam(message) from None

    def _as_datetime(self, millis: int) -> datetime:
        # fromtimestamp reports a timestamp the platform cannot represent as
        # OverflowError or OSError, and a year outside 1..9999 as ValueError
        try:
            return from_millis(millis, self.tz)
        except (OverflowError, OSError, ValueError):
            raise _BadParam(MESSAGE_WRONG_DATES) from None

    def page_change_action(self) -> Optional[str]:
        """Handle the page changer buttons."""
        if self.params.get("pageBack") is not None and self.actual_page > 1:
            self.actual_page -= 1
        if self.params.get("pageNext") is not None and self.actual_page < self.number_of_pages:
            self.actual_page += 1
        paging = self.params.get("paging")
        if paging is not None:
            try:
                self.actual_page = self._as_int(paging, MESSAGE_INVALID_PAGE)
            except _BadParam as e:
                self.message = e.message
                self.message_parameter = str(paging)
                return INPUT
        self.actual_page = max(1, min(self.actual_page, self.number_of_pages or 1))
        return None

    def _parse_checkbox_param(self) -> None:
        if self.params.get("hour") is not None:
            self.check_hours = True
        if self.params.get("nonworking") is not None:
            self.check_non_working_issues = True

    def _parse_date_params(self) -> None:
        request_date_from = self.params.get(PARAM_DATEFROM)
        if request_date_from is not None:
            self.date_from_formated = self._as_int(request_date_from, MESSAGE_WRONG_DATES)
        elif self.date_from_formated is None:
            self._date_from_default_init()
        self.date_from = self._as_datetime(self.date_from_formated)

        request_date_to = self.params.get(PARAM_DATETO)
        if request_date_to is not None:
            self.date_to_formated = self._as_int(request_date_to, MESSAGE_WRONG_DATES)
        elif self.date_to_formated is None:
            self._date_to_default_init()
        self.date_to = self._as_datetime(self.date_to_formated)

    def _parse_paging_params(self) -> None:
        request_date_from = self.params.get(PARAM_DATE_FROM_FORMATED)
        if request_date_from is not None:
            self.date_from_formated = self._as_int(request_date_from, MESSAGE_WRONG_DATES)
        elif self.date_from_formated is None:
            self._date_from_default_init()
        request_date_to = self.params.get(PARAM_DATE_TO_FORMATED)
        if request_date_to is not None:
            self.date_to_formated = self._as_int(request_date_to, MESSAGE_WRONG_DATES)
        elif self.date_to_formated is None:
            self._date_to_default_init()
        actual_page = self.params.get(PARAM_ACTUAL_PAGE)
        if actual_page is not None:
            self.actual_page = self._as_int(actual_page, MESSAGE_INVALID_PAGE)
        self.date_from = self._as_datetime(self.date_from_formated)
        self.date_to = self._as_datetime(self.date_to_formated)

    def parse_params(self) -> Optional[str]:
        # a new search always starts on the first page
        self.actual_page = 1
        try:
            if self.params.get("search") is not None:
                self._parse_date_params()
                if self.date_from >= self.date_to:
                    self.message = MESSAGE_WRONG_DATES
                    return INPUT
            else:
                self._parse_paging_params()
        except _BadParam as e:
            self.message = e.message
            return INPUT
        self._parse_checkbox_param()
        return None

    def set_show_dates_list_by_actual_page(self, actual_page: int) -> None:
        """Slice the page of dates to show; an empty result keeps the default paging."""
        size = len(self.all_dates_where_no_worklog)
        if size == 0:
            return
        start = (actual_page - 1) * ROW_COUNT
        end = min(actual_page * ROW_COUNT, size)
        self.paging = MissingsPageingDTO(
            start=start + 1,
            end=end,
            result_size=size,
            act_page_number=actual_page,
            max_page_number=self.number_of_pages,
        )
        self.show_dates_where_no_worklog = self.all_dates_where_no_worklog[start:end]
