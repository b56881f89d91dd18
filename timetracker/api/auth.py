from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.security import verify_password, sign_session
from ..db.database import get_session
from ..db.models import User
from ..schemas import LoginIn, UserOut
from .deps import current_user

router = APIRouter(tags=["auth"])

def user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        user_key=user.user_key,
        name=user.name,
        role=user.role,
        groups=user.groups or [],
        timezone=user.timezone,
    )

@router.post("/auth/login", response_model=UserOut)
async def login(payload: LoginIn, response: Response, session: AsyncSession = Depends(get_session)):
    res = await session.execute(select(User).where(User.email == payload.email))
    user = res.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = sign_session({"uid": user.id})
    response.set_cookie("session", token, httponly=True, samesite="lax", max_age=get_settings().session_max_age)
    return user_out(user)

@router.post("/auth/logout")
async def logout(response: Response):
    response.delete_cookie("session")
    return {"ok": True}

@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(current_user)):
    return user_out(user)
