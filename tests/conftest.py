"""
Shared fixtures: every test gets its own SQLite file.
"""

from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.lib import database


ADMIN_ID = "user_admin"
SUPER_ID = "user_super"
MEMBER_ID = "user_member"


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "portal.db")
    monkeypatch.setattr(database, "DB_PATH", path)
    return path


@pytest_asyncio.fixture
async def db(db_path):
    await database.init_db()
    return db_path


@pytest.fixture
def client(db_path):
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(client):
    # lifespan has created the schema by now
    asyncio.run(database.grant_role(ADMIN_ID, "admin"))
    return {"X-User-Id": ADMIN_ID}
