from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.database import get_session
from ..schemas import SettingsIn, TimeTrackerGlobalSettings
from ..settings_helper import load_global_settings, save_global_settings
from .deps import current_admin

router = APIRouter(prefix="/admin", tags=["admin"])

@router.get("/settings", response_model=TimeTrackerGlobalSettings)
async def get_settings_route(_=Depends(current_admin), session: AsyncSession = Depends(get_session)):
    return await load_global_settings(session)

@router.put("/settings", response_model=TimeTrackerGlobalSettings)
async def put_settings_route(payload: SettingsIn, _=Depends(current_admin),
                             session: AsyncSession = Depends(get_session)):
    return await save_global_settings(session, payload)
