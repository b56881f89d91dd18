from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Float, DateTime, ForeignKey, Text, JSON, UniqueConstraint
from datetime import datetime, timezone
from .database import Base

def now_utc():
    return datetime.now(timezone.utc)

class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    # Worklog author key; worklogs synced from Jira carry the account id here
    user_key: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default="user")  # 'admin' or 'user'
    groups: Mapped[list] = mapped_column(JSON, default=list)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc)

class SettingsRow(Base):
    __tablename__ = "settings"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)  # always 1
    jira_base_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    jira_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    jira_token_encrypted: Mapped[str | None] = mapped_column(Text, nullable=True)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    business_days: Mapped[str | None] = mapped_column(String(50), nullable=True)
    working_hours_per_day: Mapped[float | None] = mapped_column(Float, nullable=True)
    exclude_dates: Mapped[list] = mapped_column(JSON, default=list)   # ISO dates
    include_dates: Mapped[list] = mapped_column(JSON, default=list)   # ISO dates
    non_working_issues: Mapped[list] = mapped_column(JSON, default=list)  # issue keys
    plugin_groups: Mapped[list] = mapped_column(JSON, default=list)
    reporting_groups: Mapped[list] = mapped_column(JSON, default=list)

class ProjectMember(Base):
    __tablename__ = "project_member"
    __table_args__ = (UniqueConstraint("project_id", "user_id", name="uq_project_member"),)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("project.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)
