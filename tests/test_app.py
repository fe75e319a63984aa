"""Application lifecycle, health and entrypoint tests."""

import asyncio
import importlib
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from burnnote import main
from burnnote.config import settings
from burnnote.services import secret_service
from burnnote.services.sweeper import SecretSweeper


@pytest.fixture
def app_lifecycle(engine, session_factory, monkeypatch):
    """Point the lifespan at the test database and a fresh sweeper."""
    init_db = AsyncMock()
    sweeper = SecretSweeper(session_factory, interval=60)
    monkeypatch.setattr(main, "init_db", init_db)
    monkeypatch.setattr(main, "engine", engine)
    monkeypatch.setattr(main, "sweeper", sweeper)
    return init_db, sweeper


# ── Lifespan ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_lifespan_sweeps_and_runs_sweeper(app_lifecycle, db, monkeypatch):
    init_db, sweeper = app_lifecycle
    monkeypatch.setattr(settings, "sweep_on_startup", True)
    monkeypatch.setattr(settings, "sweep_enabled", True)
    await secret_service.put_secret(db, "stale", b"x", timedelta(milliseconds=1))
    await secret_service.put_secret(db, "fresh", b"y", timedelta(hours=1))
    await asyncio.sleep(0.005)

    async with main.lifespan(main.app):
        init_db.assert_awaited_once()
        assert sweeper.running
        assert not await secret_service.secret_exists(db, "stale")
        assert await secret_service.secret_exists(db, "fresh")

    assert not sweeper.running


@pytest.mark.asyncio
async def test_lifespan_with_sweeping_disabled(app_lifecycle, monkeypatch):
    init_db, sweeper = app_lifecycle
    monkeypatch.setattr(settings, "sweep_on_startup", False)
    monkeypatch.setattr(settings, "sweep_enabled", False)

    with patch.object(sweeper, "run_once", AsyncMock()) as run_once:
        async with main.lifespan(main.app):
            assert not sweeper.running
    run_once.assert_not_awaited()
    init_db.assert_awaited_once()


@pytest.mark.asyncio
async def test_lifespan_survives_failed_startup_sweep(app_lifecycle, monkeypatch):
    _, sweeper = app_lifecycle
    monkeypatch.setattr(settings, "sweep_on_startup", True)
    monkeypatch.setattr(settings, "sweep_enabled", True)

    failing = AsyncMock(side_effect=secret_service.StoreUnavailable("database down"))
    with patch.object(sweeper, "run_once", failing):
        async with main.lifespan(main.app):
            assert sweeper.running
    assert not sweeper.running


# ── /health ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health_reports_unreachable_database(client: AsyncClient):
    refused = OperationalError("SELECT 1", {}, Exception("connection refused"))
    with patch.object(AsyncSession, "execute", AsyncMock(side_effect=refused)):
        resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["database"] == "unavailable"


# ── python -m burnnote ───────────────────────────────────────────────


def test_entrypoint_runs_uvicorn(monkeypatch):
    monkeypatch.setattr(settings, "host", "0.0.0.0")
    monkeypatch.setattr(settings, "port", 9123)
    entrypoint = importlib.import_module("burnnote.__main__")
    with patch.object(entrypoint.uvicorn, "run") as run:
        entrypoint.main()
    run.assert_called_once()
    args, kwargs = run.call_args
    assert args == ("burnnote.main:app",)
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["port"] == 9123
