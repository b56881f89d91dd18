from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import BigInteger, Integer, String, Text, DateTime, ForeignKey, Index
from datetime import datetime
from .database import Base

# Table and column names follow Jira's own schema so report queries read like
# the SQL the plugin ran inside Jira.

class Project(Base):
    __tablename__ = "project"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    pkey: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    pname: Mapped[str] = mapped_column(String(255), default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    lead: Mapped[str | None] = mapped_column(String(255), nullable=True)

class Issue(Base):
    __tablename__ = "jiraissue"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    issuenum: Mapped[int] = mapped_column(Integer)
    project: Mapped[int] = mapped_column(ForeignKey("project.id", ondelete="CASCADE"), index=True)
    summary: Mapped[str] = mapped_column(Text, default="")
    issuetype: Mapped[str] = mapped_column(String(64), default="")
    issuestatus: Mapped[str] = mapped_column(String(64), default="")
    assignee: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # seconds, None when the issue has no estimate
    timeoriginalestimate: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    timeestimate: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    timespent: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

Index("idx_jiraissue_project_num", Issue.project, Issue.issuenum, unique=True)

class Worklog(Base):
    __tablename__ = "worklog"
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    issueid: Mapped[int] = mapped_column(ForeignKey("jiraissue.id", ondelete="CASCADE"), index=True)
    author: Mapped[str] = mapped_column(String(255), index=True)
    worklogbody: Mapped[str] = mapped_column(Text, default="")
    created: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    startdate: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    timeworked: Mapped[int] = mapped_column(BigInteger, default=0)

Index("idx_worklog_author_start", Worklog.author, Worklog.startdate)
