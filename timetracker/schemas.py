from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import date, datetime
from enum import Enum

class UserOut(BaseModel):
    id: int
    email: str
    user_key: str
    name: Optional[str] = None
    role: str
    groups: List[str] = []
    timezone: Optional[str] = None

class LoginIn(BaseModel):
    email: str
    password: str

# ------------------- Global settings -----------------------------------------

class TimeTrackerGlobalSettings(BaseModel):
    timezone: str = "UTC"
    business_days: str = "Mon,Tue,Wed,Thu,Fri"
    working_hours_per_day: float = 8.0
    exclude_dates: List[date] = []
    include_dates: List[date] = []
    non_working_issues: List[str] = []
    plugin_groups: List[str] = []
    reporting_groups: List[str] = []
    jira_base_url: Optional[str] = None
    jira_email: Optional[str] = None
    has_token: bool = False

class SettingsIn(BaseModel):
    jira_base_url: Optional[str] = None
    jira_email: Optional[str] = None
    jira_api_token: Optional[str] = None
    timezone: Optional[str] = None
    business_days: Optional[str] = None
    working_hours_per_day: Optional[float] = Field(default=None, gt=0, le=24)
    exclude_dates: Optional[List[date]] = None
    include_dates: Optional[List[date]] = None
    non_working_issues: Optional[List[str]] = None
    plugin_groups: Optional[List[str]] = None
    reporting_groups: Optional[List[str]] = None

# ------------------- Report DTOs ---------------------------------------------

class ReportSearchParam(BaseModel):
    project_keys: List[str] = []
    issue_keys: List[str] = []
    issue_types: List[str] = []
    issue_statuses: List[str] = []
    issue_assignees: List[str] = []
    users: List[str] = []  # worklog authors
    worklog_start_date: Optional[date] = None
    worklog_end_date: Optional[date] = None
    limit: Optional[int] = Field(default=None, ge=1, le=10000)
    offset: int = Field(default=0, ge=0)

class ProjectSummaryDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project_key: str
    project_name: str
    project_description: Optional[str] = None
    issue_time_original_estimate_sum: int = 0
    issue_time_estimate_sum: int = 0
    worklogged_time_sum: int = 0

class IssueSummaryDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    issue_key: str
    issue_summary: str
    issue_type: str
    issue_status: str
    issue_assignee: Optional[str] = None
    project_key: str
    issue_time_original_estimate: int = 0
    issue_time_estimate: int = 0
    worklogged_time_sum: int = 0

class UserSummaryDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user: str
    worklogged_time_sum: int = 0

class WorklogDetailsDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    worklog_id: int
    worklog_author: str
    worklog_body: str
    worklog_start_date: datetime
    worklog_time_worked: int
    issue_key: str
    issue_summary: str
    project_key: str
    project_name: str

# ------------------- Missing worklogs ----------------------------------------

class MissingsWorklogsDTO(BaseModel):
    date: date
    hour: float  # missing hours on that day

class MissingsPageingDTO(BaseModel):
    start: int = 0
    end: int = 0
    result_size: int = 0
    act_page_number: int = 0
    max_page_number: int = 0

# ------------------- Worklogs ------------------------------------------------

class ActionResultStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAIL = "FAIL"

class ActionResult(BaseModel):
    status: ActionResultStatus
    message: str
    message_parameter: str = ""

class WorklogIn(BaseModel):
    issue_id: str
    comment: str = ""
    date: date
    start_time: str
    time_spent: str

class WorklogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    issue_key: str
    comment: str
    start_date: datetime
    time_worked: int
    time_spent: str
