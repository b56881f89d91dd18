from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List

from ..core.security import verify_password, hash_password
from ..db.database import get_session
from ..db.jira_models import Project
from ..db.models import ProjectMember, User
from ..schemas import UserOut
from .auth import user_out
from .deps import current_user, current_admin

router = APIRouter(prefix="/users", tags=["users"])

class ChangePasswordIn(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8)

class AdminCreateUserIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    user_key: Optional[str] = None  # defaults to the email
    name: Optional[str] = None
    role: str = Field(default="user", pattern="^(admin|user)$")
    groups: List[str] = []
    timezone: Optional[str] = None

class AdminUpdateUserIn(BaseModel):
    email: Optional[EmailStr] = None
    user_key: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = Field(default=None, pattern="^(admin|user)$")
    groups: Optional[List[str]] = None
    timezone: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=8)

class MembershipIn(BaseModel):
    project_keys: List[str]

async def _admin_count(session: AsyncSession) -> int:
    res = await session.execute(select(func.count()).select_from(User).where(User.role == "admin"))
    return res.scalar_one() or 0

@router.post("/me/password")
async def change_my_password(payload: ChangePasswordIn, me: User = Depends(current_user),
                             session: AsyncSession = Depends(get_session)):
    if not verify_password(payload.current_password, me.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    me.password_hash = hash_password(payload.new_password)
    await session.commit()
    return {"ok": True}

@router.get("/admin", response_model=List[UserOut])
async def list_users(_: User = Depends(current_admin), session: AsyncSession = Depends(get_session)):
    res = await session.execute(select(User).order_by(User.id.asc()))
    return [user_out(u) for u in res.scalars().all()]

@router.post("/admin", response_model=UserOut, status_code=201)
async def create_user(payload: AdminCreateUserIn, _: User = Depends(current_admin),
                      session: AsyncSession = Depends(get_session)):
    email = str(payload.email).lower()
    u = User(
        email=email,
        user_key=(payload.user_key or email).strip(),
        name=payload.name or "",
        role=payload.role,
        groups=[g.strip() for g in payload.groups if g.strip()],
        timezone=payload.timezone,
        password_hash=hash_password(payload.password),
    )
    session.add(u)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=400, detail="Email or user key already exists")
    await session.refresh(u)
    return user_out(u)

@router.patch("/admin/{user_id}", response_model=UserOut)
async def update_user(user_id: int, payload: AdminUpdateUserIn, _: User = Depends(current_admin),
                      session: AsyncSession = Depends(get_session)):
    u = await session.get(User, user_id)
    if not u:
        raise HTTPException(status_code=404, detail="User not found")

    if payload.role and u.role == "admin" and payload.role != "admin":
        if await _admin_count(session) <= 1:
            raise HTTPException(status_code=400, detail="Cannot demote the last admin")

    if payload.email is not None:
        u.email = str(payload.email).lower()
    if payload.user_key is not None:
        u.user_key = payload.user_key.strip()
    if payload.name is not None:
        u.name = payload.name
    if payload.role is not None:
        u.role = payload.role
    if payload.groups is not None:
        u.groups = [g.strip() for g in payload.groups if g.strip()]
    if payload.timezone is not None:
        u.timezone = payload.timezone or None
    if payload.password:
        u.password_hash = hash_password(payload.password)

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=400, detail="Email or user key already exists")

    await session.refresh(u)
    return user_out(u)

@router.delete("/admin/{user_id}")
async def delete_user(user_id: int, admin: User = Depends(current_admin),
                      session: AsyncSession = Depends(get_session)):
    if admin.id == user_id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself")
    u = await session.get(User, user_id)
    if not u:
        return {"ok": True}
    if u.role == "admin" and await _admin_count(session) <= 1:
        raise HTTPException(status_code=400, detail="Cannot delete the last admin")
    await session.execute(delete(ProjectMember).where(ProjectMember.user_id == user_id))
    await session.delete(u)
    await session.commit()
    return {"ok": True}

@router.put("/admin/{user_id}/projects")
async def set_user_projects(user_id: int, payload: MembershipIn, _: User = Depends(current_admin),
                            session: AsyncSession = Depends(get_session)):
    """Replace the set of projects the user may log work on."""
    u = await session.get(User, user_id)
    if not u:
        raise HTTPException(status_code=404, detail="User not found")
    keys = sorted({k.strip().upper() for k in payload.project_keys if k.strip()})
    projects = (await session.execute(select(Project).where(Project.pkey.in_(keys)))).scalars().all() if keys else []
    unknown = set(keys) - {p.pkey for p in projects}
    if unknown:
        raise HTTPException(status_code=404, detail=f"Unknown projects: {', '.join(sorted(unknown))}")
    await session.execute(delete(ProjectMember).where(ProjectMember.user_id == user_id))
    for p in projects:
        session.add(ProjectMember(project_id=p.id, user_id=user_id))
    await session.commit()
    return {"ok": True, "project_keys": [p.pkey for p in projects]}
