"""Pytest configuration and fixtures."""
import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from composition_catalog_api.app.core.config import settings
from composition_catalog_api.app.core.db import get_connection, init_db
from composition_catalog_api.app.core.security import create_access_token
from composition_catalog_api.app.main import app
from composition_catalog_api.app.schemas.composition import CompositionCreate
from composition_catalog_api.app.services.composition_service import CompositionService


def composition_payload(**overrides) -> dict:
    payload = {
        "title": "Moonlight Sonata",
        "author": "Ludwig van Beethoven",
        "length_seconds": 900,
        "year": 1801,
        "difficulty": 2,
        "page_count": 14,
        "video_url": "https://www.youtube.com/watch?v=4Tr0otuiQuU",
        "sheet_url": "https://imslp.org/wiki/Piano_Sonata_No.14",
    }
    payload.update(overrides)
    return payload


def run_in_thread(coro_factory, *args):
    """Run ``coro_factory(*args)`` to completion on a fresh loop in a worker thread."""
    with ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(lambda: asyncio.run(coro_factory(*args))).result()


def stored_comment_count(composition_id: int) -> int:
    conn = get_connection()
    try:
        return conn.execute(
            "SELECT comment_count FROM compositions WHERE id = ?", (composition_id,)
        ).fetchone()["comment_count"]
    finally:
        conn.close()


def live_comment_rows(composition_id: int) -> int:
    conn = get_connection()
    try:
        return conn.execute(
            "SELECT COUNT(*) AS count FROM comments WHERE composition_id = ?", (composition_id,)
        ).fetchone()["count"]
    finally:
        conn.close()


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    """Point the app at a fresh SQLite file for every test."""
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "catalog.db"))
    monkeypatch.setattr(settings, "composition_delete_policy", "reject")
    monkeypatch.setattr(settings, "super_admin_static_token", "")
    init_db()
    yield


@pytest_asyncio.fixture
async def composition():
    return await CompositionService.add_composition(CompositionCreate(**composition_payload()), adder_id=7)


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def accounts(client):
    """Register a super admin (first user) and two regular users; return their headers and ids."""
    result = {}
    for name in ("admin", "alice", "bob"):
        email = f"{name}@example.com"
        response = client.post("/api/v1/users/", json={"email": email, "password": "secret"})
        assert response.status_code == 201, response.text
        token = create_access_token({"sub": email})
        result[name] = {
            "id": response.json()["id"],
            "headers": {"Authorization": f"Bearer {token}"},
        }
    return result
