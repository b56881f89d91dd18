from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
import httpx

from ..db.database import get_session
from ..services.jira import JiraClient, sync_projects
from ..settings_helper import load_jira_credentials
from .deps import current_admin

router = APIRouter(prefix="/jira", tags=["jira"])

class SyncRequest(BaseModel):
    projects: List[str] = Field(min_length=1)
    updated_window_days: int = Field(default=180, ge=0)
    max_issues: int = Field(default=25000, ge=1)

async def get_jira_client(session: AsyncSession = Depends(get_session)) -> JiraClient:
    base, email, token = await load_jira_credentials(session)
    if not (base and email and token):
        raise HTTPException(status_code=400, detail="Missing Jira credentials. Save them in Admin → Settings.")
    return JiraClient(base, email, token)

@router.get("/whoami")
async def whoami(_=Depends(current_admin), client: JiraClient = Depends(get_jira_client)):
    try:
        ok = await client.test_connection()
    except httpx.HTTPError as e:
        raise HTTPException(status_code=502, detail=f"Jira unreachable: {e}")
    return {"ok": ok}

@router.post("/sync")
async def sync(req: SyncRequest, _=Depends(current_admin), client: JiraClient = Depends(get_jira_client),
               session: AsyncSession = Depends(get_session)):
    try:
        counts = await sync_projects(session, client, req.projects, req.updated_window_days, req.max_issues)
    except httpx.HTTPStatusError as e:
        await session.rollback()
        raise HTTPException(status_code=e.response.status_code, detail=f"Jira error: {e.response.text[:500]}")
    except httpx.HTTPError as e:
        await session.rollback()
        raise HTTPException(status_code=502, detail=f"Jira unreachable: {e}")
    return {"ok": True, **counts}
