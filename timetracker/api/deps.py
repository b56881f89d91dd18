from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette import status

from ..core.exceptions import PermissionDeniedError
from ..core.security import verify_session
from ..db.database import get_session
from ..db.models import User
from ..schemas import TimeTrackerGlobalSettings
from ..settings_helper import load_global_settings, plugin_condition, reporting_condition

def _extract_token(request: Request) -> str | None:
    # 1) Cookie
    token = request.cookies.get("session")
    if token:
        return token
    # 2) Authorization: Bearer <token>
    auth = request.headers.get("Authorization")
    if auth and auth.lower().startswith("bearer "):
        return auth.split(None, 1)[1].strip()
    # 3) X-Session header
    hdr = request.headers.get("X-Session")
    if hdr:
        return hdr.strip()
    return None

async def optional_user(request: Request, session: AsyncSession = Depends(get_session)) -> User | None:
    token = _extract_token(request)
    if not token:
        return None
    data = verify_session(token)
    if not data or 'uid' not in data:
        return None
    res = await session.execute(select(User).where(User.id == data['uid']))
    return res.scalar_one_or_none()

async def current_user(user: User | None = Depends(optional_user)) -> User:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user

async def current_admin(user: User = Depends(current_user)) -> User:
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Admin only")
    return user

async def global_settings(session: AsyncSession = Depends(get_session)) -> TimeTrackerGlobalSettings:
    return await load_global_settings(session)

async def plugin_user(
    user: User = Depends(current_user),
    settings: TimeTrackerGlobalSettings = Depends(global_settings),
) -> User:
    if not plugin_condition(user, settings):
        raise PermissionDeniedError("Timetracker is not enabled for this user")
    return user

async def reporting_user(
    user: User = Depends(current_user),
    settings: TimeTrackerGlobalSettings = Depends(global_settings),
) -> User:
    if not reporting_condition(user, settings):
        raise PermissionDeniedError("Reporting is not enabled for this user")
    return user
