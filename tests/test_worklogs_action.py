"""Form flow of the missing worklogs page: parsing, paging and result tokens."""
import asyncio
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

from timetracker.db.models import User
from timetracker.schemas import MissingsPageingDTO, MissingsWorklogsDTO, TimeTrackerGlobalSettings
from timetracker.util.dates import to_millis
from timetracker.web.worklogs_action import (
    ERROR, INPUT, MESSAGE_INVALID_PAGE, MESSAGE_WRONG_DATES, NONE, ROW_COUNT, SUCCESS, WorklogsAction,
)

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
FROM_MIL = to_millis(datetime(2024, 1, 1, tzinfo=timezone.utc))
TO_MIL = to_millis(datetime(2024, 3, 1, tzinfo=timezone.utc))


def _user(**kw):
    defaults = dict(id=1, email="u@acme.io", user_key="u", role="user", groups=[], timezone=None)
    defaults.update(kw)
    return User(**defaults)


class FakeDates:
    def __init__(self, count=45, error=None):
        self.rows = [MissingsWorklogsDTO(date=date(2024, 3, 1) - timedelta(days=i), hour=8.0) for i in range(count)]
        self.error = error
        self.calls = []

    async def __call__(self, session, user, date_from, date_to, check_hours, check_non_working, settings):
        self.calls.append((date_from, date_to, check_hours, check_non_working))
        if self.error is not None:
            raise self.error
        return list(self.rows)


def _action(params=None, user=None, settings=None, dates=None):
    return WorklogsAction(
        None,
        user if user is not None else _user(),
        settings or TimeTrackerGlobalSettings(),
        params or {},
        get_dates=dates or FakeDates(),
        now=lambda: NOW,
    )


def test_do_default_shows_first_page_of_last_month():
    dates = FakeDates(45)
    action = _action(dates=dates)
    assert asyncio.run(action.do_default()) == INPUT

    date_from, date_to, check_hours, check_non_working = dates.calls[0]
    assert date_to == NOW
    assert date_from == datetime(2024, 2, 15, 12, 0, tzinfo=timezone.utc)
    assert (check_hours, check_non_working) == (False, False)

    assert action.number_of_pages == 3
    assert action.actual_page == 1
    assert len(action.show_dates_where_no_worklog) == ROW_COUNT
    assert action.paging == MissingsPageingDTO(start=1, end=20, result_size=45, act_page_number=1, max_page_number=3)


def test_do_default_default_from_clamps_month_end():
    dates = FakeDates(1)
    action = WorklogsAction(None, _user(), TimeTrackerGlobalSettings(), {}, get_dates=dates,
                            now=lambda: datetime(2024, 3, 31, 8, 0, tzinfo=timezone.utc))
    asyncio.run(action.do_default())
    assert dates.calls[0][0] == datetime(2024, 2, 29, 8, 0, tzinfo=timezone.utc)


def test_search_with_reversed_dates_is_rejected():
    dates = FakeDates()
    action = _action({"search": "", "dateFromMil": str(TO_MIL), "dateToMil": str(FROM_MIL)}, dates=dates)
    assert asyncio.run(action.do_execute()) == INPUT
    assert action.message == MESSAGE_WRONG_DATES
    assert dates.calls == []


def test_search_with_equal_dates_is_rejected():
    action = _action({"search": "", "dateFromMil": str(TO_MIL), "dateToMil": str(TO_MIL)})
    assert asyncio.run(action.do_execute()) == INPUT
    assert action.message == MESSAGE_WRONG_DATES


def test_search_with_garbage_date_is_rejected():
    action = _action({"search": "", "dateFromMil": "yesterday", "dateToMil": str(TO_MIL)})
    assert asyncio.run(action.do_execute()) == INPUT
    assert action.message == MESSAGE_WRONG_DATES


def test_search_runs_query_with_checkboxes_and_resets_to_first_page():
    dates = FakeDates(45)
    params = {"search": "", "dateFromMil": str(FROM_MIL), "dateToMil": str(TO_MIL),
              "hour": "on", "nonworking": "on", "actualPage": "3"}
    action = _action(params, dates=dates)
    assert asyncio.run(action.do_execute()) == SUCCESS

    date_from, date_to, check_hours, check_non_working = dates.calls[0]
    assert date_from == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert date_to == datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert check_hours and check_non_working
    assert action.actual_page == 1
    assert action.date_from_formated == FROM_MIL
    assert action.date_to_formated == TO_MIL


def test_page_next_moves_to_last_page_remainder():
    params = {"dateFromFormated": str(FROM_MIL), "dateToFormated": str(TO_MIL),
              "actualPage": "2", "pageNext": ""}
    action = _action(params)
    assert asyncio.run(action.do_execute()) == SUCCESS
    assert action.actual_page == 3
    assert len(action.show_dates_where_no_worklog) == 5
    assert action.paging == MissingsPageingDTO(start=41, end=45, result_size=45, act_page_number=3, max_page_number=3)


def test_page_next_stops_at_last_page_and_back_stops_at_first():
    action = _action({"dateFromFormated": str(FROM_MIL), "dateToFormated": str(TO_MIL),
                      "actualPage": "3", "pageNext": ""})
    asyncio.run(action.do_execute())
    assert action.actual_page == 3

    action = _action({"dateFromFormated": str(FROM_MIL), "dateToFormated": str(TO_MIL),
                      "actualPage": "1", "pageBack": ""})
    asyncio.run(action.do_execute())
    assert action.actual_page == 1


def test_page_back_and_explicit_paging():
    action = _action({"dateFromFormated": str(FROM_MIL), "dateToFormated": str(TO_MIL),
                      "actualPage": "3", "pageBack": ""})
    asyncio.run(action.do_execute())
    assert action.actual_page == 2
    assert action.paging.start == 21 and action.paging.end == 40

    action = _action({"dateFromFormated": str(FROM_MIL), "dateToFormated": str(TO_MIL),
                      "actualPage": "1", "paging": "3"})
    asyncio.run(action.do_execute())
    assert action.actual_page == 3


def test_out_of_range_page_is_clamped():
    action = _action({"dateFromFormated": str(FROM_MIL), "dateToFormated": str(TO_MIL),
                      "actualPage": "1", "paging": "7"})
    assert asyncio.run(action.do_execute()) == SUCCESS
    assert action.actual_page == 3


def test_garbage_page_number_is_reported():
    action = _action({"dateFromFormated": str(FROM_MIL), "dateToFormated": str(TO_MIL), "paging": "two"})
    assert asyncio.run(action.do_execute()) == INPUT
    assert action.message == MESSAGE_INVALID_PAGE
    assert action.message_parameter == "two"


def test_exact_multiple_of_row_count():
    action = _action({"dateFromFormated": str(FROM_MIL), "dateToFormated": str(TO_MIL),
                      "actualPage": "2"}, dates=FakeDates(40))
    asyncio.run(action.do_execute())
    assert action.number_of_pages == 2
    assert action.paging == MissingsPageingDTO(start=21, end=40, result_size=40, act_page_number=2, max_page_number=2)


def test_empty_result_keeps_default_paging():
    action = _action({"dateFromFormated": str(FROM_MIL), "dateToFormated": str(TO_MIL)}, dates=FakeDates(0))
    assert asyncio.run(action.do_execute()) == SUCCESS
    assert action.number_of_pages == 0
    assert action.show_dates_where_no_worklog == []
    assert action.paging == MissingsPageingDTO()


def test_persistence_error_renders_error_view():
    dates = FakeDates(error=OperationalError("SELECT 1", {}, Exception("disk I/O error")))
    action = _action(dates=dates)
    assert asyncio.run(action.do_default()) == ERROR
    assert "OperationalError" in action.stacktrace
    assert action.view(ERROR).stacktrace == action.stacktrace


def test_conditions_redirect_home():
    action = WorklogsAction(None, None, TimeTrackerGlobalSettings(), {}, get_dates=FakeDates())
    assert asyncio.run(action.do_default()) == NONE
    assert action.return_url == "/"

    settings = TimeTrackerGlobalSettings(reporting_groups=["managers"])
    action = _action(user=_user(groups=["developers"]), settings=settings)
    assert asyncio.run(action.do_execute()) == NONE

    settings = TimeTrackerGlobalSettings(plugin_groups=["timetracker-users"])
    action = _action(user=_user(groups=["developers"]), settings=settings)
    assert asyncio.run(action.do_default()) == NONE

    action = _action(user=_user(groups=["timetracker-users"]), settings=settings)
    assert asyncio.run(action.do_default()) == INPUT

    action = _action(user=_user(role="admin"), settings=settings)
    assert asyncio.run(action.do_default()) == INPUT


def test_out_of_range_timestamps_are_wrong_dates():
    dates = FakeDates()
    action = _action({"search": "", "dateFromMil": str(FROM_MIL), "dateToMil": str(10 ** 20)}, dates=dates)
    assert asyncio.run(action.do_execute()) == INPUT
    assert action.message == MESSAGE_WRONG_DATES
    assert dates.calls == []

    action = _action({"dateFromFormated": str(-10 ** 20), "dateToFormated": str(TO_MIL)})
    assert asyncio.run(action.do_execute()) == INPUT
    assert action.message == MESSAGE_WRONG_DATES
