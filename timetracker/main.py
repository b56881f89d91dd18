import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import func, select

from .api import admin, auth, jira, reports, users, worklogs
from .core.config import get_settings
from .core.exceptions import NotFoundError, PermissionDeniedError
from .core.security import hash_password
from .db.database import dispose_engine, get_sessionmaker, init_db
from .db.models import User
from .settings_helper import ensure_settings_row

logger = logging.getLogger(__name__)

async def bootstrap_admin() -> None:
    settings = get_settings()
    Session = get_sessionmaker()
    async with Session() as session:
        await ensure_settings_row(session)
        count = (await session.execute(select(func.count()).select_from(User))).scalar_one()
        if count == 0:
            email = settings.bootstrap_admin_email.lower()
            session.add(User(
                email=email,
                user_key=email,
                name="Administrator",
                role="admin",
                groups=[],
                password_hash=hash_password(settings.bootstrap_admin_password),
            ))
            await session.commit()
            logger.info("Bootstrapped admin user %s", email)

def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_db()
        await bootstrap_admin()
        yield
        await dispose_engine()

    app = FastAPI(title="Jira Timetracker", lifespan=lifespan)

    @app.exception_handler(NotFoundError)
    def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.message})

    @app.exception_handler(PermissionDeniedError)
    def _forbidden(request: Request, exc: PermissionDeniedError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.message})

    @app.get("/api/health", tags=["ops"])
    async def health():
        return {"ok": True}

    # API routers
    app.include_router(auth.router, prefix="/api")
    app.include_router(users.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")
    app.include_router(worklogs.router, prefix="/api")
    app.include_router(reports.router, prefix="/api")
    app.include_router(jira.router, prefix="/api")
    return app

app = create_app()
