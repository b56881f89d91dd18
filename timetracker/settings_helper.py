"""Global plugin settings: the single ``settings`` row layered over the env defaults."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .core.config import get_settings
from .db.models import SettingsRow, User
from .schemas import SettingsIn, TimeTrackerGlobalSettings
from .util.crypto import decrypt, encrypt

logger = logging.getLogger(__name__)

async def ensure_settings_row(session: AsyncSession) -> SettingsRow:
    row = (await session.execute(select(SettingsRow).where(SettingsRow.id == 1))).scalar_one_or_none()
    if row is None:
        s = get_settings()
        row = SettingsRow(
            id=1,
            jira_base_url=s.jira_base_url,
            jira_email=s.jira_email,
            jira_token_encrypted=encrypt(s.jira_api_token) if s.jira_api_token else None,
            exclude_dates=[],
            include_dates=[],
            non_working_issues=[],
            plugin_groups=[],
            reporting_groups=[],
        )
        session.add(row)
        await session.commit()
        logger.info("Created default settings row")
    return row

async def load_global_settings(session: AsyncSession) -> TimeTrackerGlobalSettings:
    # DB overrides .env; if DB empty, fall back to .env
    s = get_settings()
    row = (await session.execute(select(SettingsRow).where(SettingsRow.id == 1))).scalar_one_or_none()
    if row is None:
        return TimeTrackerGlobalSettings(
            timezone=s.timezone,
            business_days=s.business_days,
            working_hours_per_day=s.working_hours_per_day,
            jira_base_url=s.jira_base_url,
            jira_email=s.jira_email,
            has_token=bool(s.jira_api_token),
        )
    return TimeTrackerGlobalSettings(
        timezone=row.timezone or s.timezone,
        business_days=row.business_days or s.business_days,
        working_hours_per_day=row.working_hours_per_day or s.working_hours_per_day,
        exclude_dates=row.exclude_dates or [],
        include_dates=row.include_dates or [],
        non_working_issues=row.non_working_issues or [],
        plugin_groups=row.plugin_groups or [],
        reporting_groups=row.reporting_groups or [],
        jira_base_url=row.jira_base_url or s.jira_base_url,
        jira_email=row.jira_email or s.jira_email,
        has_token=bool(row.jira_token_encrypted or s.jira_api_token),
    )

async def save_global_settings(session: AsyncSession, payload: SettingsIn) -> TimeTrackerGlobalSettings:
    row = await ensure_settings_row(session)
    if payload.jira_base_url is not None:
        row.jira_base_url = payload.jira_base_url.strip().rstrip("/")
    if payload.jira_email is not None:
        row.jira_email = payload.jira_email.strip()
    if payload.jira_api_token:
        row.jira_token_encrypted = encrypt(payload.jira_api_token.strip())
    if payload.timezone is not None:
        row.timezone = payload.timezone
    if payload.business_days is not None:
        row.business_days = payload.business_days
    if payload.working_hours_per_day is not None:
        row.working_hours_per_day = payload.working_hours_per_day
    if payload.exclude_dates is not None:
        row.exclude_dates = sorted({d.isoformat() for d in payload.exclude_dates})
    if payload.include_dates is not None:
        row.include_dates = sorted({d.isoformat() for d in payload.include_dates})
    if payload.non_working_issues is not None:
        row.non_working_issues = sorted({k.strip().upper() for k in payload.non_working_issues if k.strip()})
    if payload.plugin_groups is not None:
        row.plugin_groups = [g.strip() for g in payload.plugin_groups if g.strip()]
    if payload.reporting_groups is not None:
        row.reporting_groups = [g.strip() for g in payload.reporting_groups if g.strip()]
    await session.commit()
    return await load_global_settings(session)

async def load_jira_credentials(session: AsyncSession) -> tuple[Optional[str], Optional[str], Optional[str]]:
    s = get_settings()
    row = (await session.execute(select(SettingsRow).where(SettingsRow.id == 1))).scalar_one_or_none()
    base = (row.jira_base_url if row else None) or s.jira_base_url
    email = (row.jira_email if row else None) or s.jira_email
    token = (decrypt(row.jira_token_encrypted) if row and row.jira_token_encrypted else None) or s.jira_api_token
    return (base.rstrip("/") if base else None), email, token

def _group_condition(user: Optional[User], groups: list[str]) -> bool:
    if user is None:
        return False
    if not groups or user.role == "admin":
        return True
    return bool(set(user.groups or []) & set(groups))

def plugin_condition(user: Optional[User], settings: TimeTrackerGlobalSettings) -> bool:
    """May the user use the timetracker (worklog pages) at all."""
    return _group_condition(user, settings.plugin_groups)

def reporting_condition(user: Optional[User], settings: TimeTrackerGlobalSettings) -> bool:
    """May the user open the reporting pages."""
    return _group_condition(user, settings.reporting_groups)
