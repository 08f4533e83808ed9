# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from taskboard.client.http import TaskboardClient
from taskboard.core.config import Settings
from taskboard.core.database import Database
from taskboard.main import create_app

from .fakes import RecordingSleep

BASE_URL = "http://testserver"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite file; .env is ignored."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'tasks.sqlite3'}",
        api_url=BASE_URL,
    )


@pytest.fixture()
async def database(settings: Settings):
    db = Database(settings.database_url)
    await db.connect()
    yield db
    await db.dispose()


@pytest.fixture()
def app(settings: Settings, database: Database):
    return create_app(settings=settings, database=database)


@pytest.fixture()
async def http(app):
    """Raw httpx client talking to the in-process app (no lifespan)."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:
        yield client


@pytest.fixture()
async def session(database: Database):
    async with database.session_factory() as s:
        yield s


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
async def api(app, settings: Settings, sleep: RecordingSleep):
    """TaskboardClient bound to the in-process app, with instant retries."""
    client = TaskboardClient.from_settings(
        settings, transport=httpx.ASGITransport(app=app), sleep=sleep
    )
    yield client
    await client.aclose()
