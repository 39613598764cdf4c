"""
Shared pytest fixtures available to every test file automatically.
No imports needed in test files — pytest discovers this by convention.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from tortoise import Tortoise, connections

from workshop.crud import BookingStore
from workshop.ledger import ProcessLedger
from workshop.lifecycle import BookingLifecycleService
from workshop.main import register_error_handlers
from workshop.routers.booking import get_lifecycle_service, router

from .factories import FakeAdvisorDirectory, FakeBayDirectory

# ---------------------------------------------------------------------------
# Database: a fresh in-memory SQLite schema per test
# ---------------------------------------------------------------------------


@pytest.fixture()
async def db():
    await Tortoise.init(
        db_url="sqlite://:memory:", modules={"models": ["workshop.models"]}
    )
    await Tortoise.generate_schemas()
    yield
    await connections.close_all()


@pytest.fixture()
def bays() -> FakeBayDirectory:
    return FakeBayDirectory()


@pytest.fixture()
def advisors() -> FakeAdvisorDirectory:
    return FakeAdvisorDirectory()


@pytest.fixture()
def service(db, bays, advisors) -> BookingLifecycleService:
    return BookingLifecycleService(
        bays=bays, advisors=advisors, store=BookingStore(), ledger=ProcessLedger()
    )


# ---------------------------------------------------------------------------
# HTTP layer: lifecycle service replaced by a mock, Redis never touched
# ---------------------------------------------------------------------------


def _mock_service() -> MagicMock:
    mock = MagicMock(spec=BookingLifecycleService)
    for name in ("get", "list", "history", "create", "update", "delete"):
        setattr(mock, name, AsyncMock())
    return mock


def build_app(service=None) -> FastAPI:
    """
    Fresh FastAPI app with the lifecycle service dependency overridden.
    Defaults to a MagicMock whose operations are AsyncMocks.
    """
    app = FastAPI()
    app.include_router(router)
    register_error_handlers(app)

    svc = service if service is not None else _mock_service()
    app.dependency_overrides[get_lifecycle_service] = lambda: svc
    app.state.service = svc
    return app


@pytest.fixture()
def history_cache():
    """Patches the Redis-backed history cache used by the router."""
    with (
        patch(
            "workshop.routers.booking.get_history_cache",
            AsyncMock(return_value=None),
        ) as get_cache,
        patch(
            "workshop.routers.booking.set_history_cache", AsyncMock()
        ) as set_cache,
        patch(
            "workshop.routers.booking.invalidate_history_cache", AsyncMock()
        ) as invalidate,
        patch(
            "workshop.routers.booking.mark_history_deleted", AsyncMock()
        ) as mark_deleted,
    ):
        yield MagicMock(
            get=get_cache,
            set=set_cache,
            invalidate=invalidate,
            mark_deleted=mark_deleted,
        )


@pytest.fixture()
def mock_service() -> MagicMock:
    return _mock_service()


@pytest.fixture()
def client(mock_service, history_cache) -> TestClient:
    return TestClient(build_app(mock_service), raise_server_exceptions=True)
