from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import Any

class Settings(BaseSettings):
    app_secret: str = Field(alias="APP_SECRET", default="change-me-please-32bytes")
    sqlite_path: str = Field(default="timetracker.db", alias="SQLITE_PATH")

    bootstrap_admin_email: str = Field(default="admin@example.com", alias="BOOTSTRAP_ADMIN_EMAIL")
    bootstrap_admin_password: str = Field(default="admin123", alias="BOOTSTRAP_ADMIN_PASSWORD")

    jira_base_url: str | None = Field(default=None, alias="JIRA_BASE_URL")
    jira_email: str | None = Field(default=None, alias="JIRA_EMAIL")
    jira_api_token: str | None = Field(default=None, alias="JIRA_API_TOKEN")

    # Defaults for the global settings row; admins can override them at runtime
    timezone: str = Field(default="UTC", alias="TIMEZONE")
    business_days: str = Field(default="Mon,Tue,Wed,Thu,Fri", alias="BUSINESS_DAYS")
    working_hours_per_day: float = Field(default=8.0, alias="WORKING_HOURS_PER_DAY")
    days_per_week: int = Field(default=5, alias="DAYS_PER_WEEK")

    # seconds a login stays valid
    session_max_age: int = Field(default=14 * 24 * 3600, alias="SESSION_MAX_AGE")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v: Any):
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v

    @field_validator("working_hours_per_day")
    @classmethod
    def _positive_hours(cls, v: float):
        if v <= 0 or v > 24:
            raise ValueError("WORKING_HOURS_PER_DAY must be in (0, 24]")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

@lru_cache
def get_settings() -> Settings:
    return Settings()
