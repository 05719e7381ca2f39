# momentum_backend/conftest.py
from datetime import datetime, timedelta, timezone

import pytest

from momentum_backend.core.config import settings


class FakeClock:
    """Mutable 'now' handed to the store so tests can cross day boundaries."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def engine_settings(monkeypatch):
    """
    Deterministic engine settings for every test.

    UTC day boundaries, no Groq key (all AI calls use local fallbacks),
    and no database unless a test opts in.
    """
    monkeypatch.setattr(settings, "TIMEZONE", "UTC")
    monkeypatch.setattr(settings, "GROQ_API_KEY", None)
    monkeypatch.setattr(settings, "AI_DAILY_QUOTA", 50)
    monkeypatch.setattr(settings, "DATABASE_URL", None)
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
    yield


@pytest.fixture(autouse=True)
def reset_ai_state():
    from momentum_backend.features.ai import service as ai_service

    ai_service.reset_state()
    yield
    ai_service.reset_state()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc))  # a Monday


@pytest.fixture(autouse=True)
def store(request):
    """Fresh in-memory store per test, installed as the process-wide store."""
    from momentum_backend.features.store.repository import StateRepository
    from momentum_backend.features.store.service import AppStore, set_store

    fake_clock = request.getfixturevalue("clock")
    app_store = AppStore(repository=StateRepository(enabled=False), now_fn=fake_clock)
    set_store(app_store)
    yield app_store
    set_store(None)


@pytest.fixture
def sqlite_url(tmp_path):
    """File-backed sqlite database; the engine is disposed after the test."""
    from momentum_backend.core.database import init_engine, reset_engine

    url = f"sqlite:///{tmp_path / 'momentum.db'}"
    init_engine(url)
    yield url
    reset_engine()
