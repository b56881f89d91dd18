"""Shared test fixtures.

  test_env   -- points settings and the lazily created engine at a temp-file SQLite DB.
  run_db     -- runs an async scenario against a fresh session inside one event loop.
  client     -- FastAPI TestClient; startup creates tables and the bootstrap admin.
  seed       -- inserts ORM rows through a plain sync engine on the same DB file.
"""
import asyncio

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

ADMIN_EMAIL = "admin@acme.io"
ADMIN_PASSWORD = "admin-pass-123"


@pytest.fixture
def test_env(tmp_path, monkeypatch):
    db_path = tmp_path / "timetracker_test.db"
    monkeypatch.setenv("SQLITE_PATH", str(db_path))
    monkeypatch.setenv("APP_SECRET", "test-secret-for-sessions")
    monkeypatch.setenv("BOOTSTRAP_ADMIN_EMAIL", ADMIN_EMAIL)
    monkeypatch.setenv("BOOTSTRAP_ADMIN_PASSWORD", ADMIN_PASSWORD)
    monkeypatch.setenv("TIMEZONE", "UTC")
    monkeypatch.setenv("BUSINESS_DAYS", "Mon,Tue,Wed,Thu,Fri")
    monkeypatch.setenv("WORKING_HOURS_PER_DAY", "8")
    monkeypatch.delenv("JIRA_BASE_URL", raising=False)
    monkeypatch.delenv("JIRA_EMAIL", raising=False)
    monkeypatch.delenv("JIRA_API_TOKEN", raising=False)

    from timetracker.core.config import get_settings
    import timetracker.db.database as database

    get_settings.cache_clear()
    monkeypatch.setattr(database, "_engine", None)
    monkeypatch.setattr(database, "_sessionmaker", None)
    yield db_path
    get_settings.cache_clear()


@pytest.fixture
def run_db(test_env):
    from timetracker.db.database import dispose_engine, get_sessionmaker, init_db

    def _run(scenario):
        # each scenario seeds its own rows, so start from an empty DB file
        test_env.unlink(missing_ok=True)

        async def _main():
            await init_db()
            try:
                async with get_sessionmaker()() as session:
                    return await scenario(session)
            finally:
                await dispose_engine()
        return asyncio.run(_main())

    return _run


@pytest.fixture
def client(test_env):
    from fastapi.testclient import TestClient
    from timetracker.main import create_app

    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def seed(client, test_env):
    engine = create_engine(f"sqlite:///{test_env}")

    def _seed(*objs):
        with Session(engine) as s:
            s.add_all(objs)
            s.commit()

    yield _seed
    engine.dispose()


def login(client, email=ADMIN_EMAIL, password=ADMIN_PASSWORD):
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()
