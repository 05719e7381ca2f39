"""
AI collaborator behaviour without a live model.

A fake Groq client stands in for the API so quota, dedupe, and fallback paths
are exercised deterministically.
"""

import json
from datetime import date, datetime, timezone
from types import SimpleNamespace

import groq
import pytest

from momentum_backend.core.config import settings
from momentum_backend.features.ai import service as ai_service
from momentum_backend.models.habit import Habit

TODAY = date(2024, 3, 4)


class FakeGroq:
    def __init__(self, payload=None, error=None):
        self.payload = payload
        self.error = error
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        content = self.payload if isinstance(self.payload, str) else json.dumps(self.payload)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def fake_client(monkeypatch):
    def install(**kwargs):
        client = FakeGroq(**kwargs)
        monkeypatch.setattr(ai_service, "_get_client", lambda: client)
        return client

    return install


def test_no_api_key_uses_template_mission():
    least = Habit(id="a", title="Stretch")
    most = Habit(id="b", title="Walk", streak=8, longest_streak=8)
    content = ai_service.generate_mission(least, most)
    assert content["title"] == "Momentum Boost: Stretch"
    assert content["targetCompletions"] == 3


def test_model_mission_is_clamped(fake_client):
    client = fake_client(payload={"title": "Stretch week", "description": "d", "targetCompletions": 9})
    content = ai_service.generate_mission(Habit(id="a", title="Stretch"), Habit(id="b", title="Walk"))
    assert content == {"title": "Stretch week", "description": "d", "targetCompletions": 5}
    assert client.calls[0]["model"] == settings.AI_MODEL
    assert client.calls[0]["response_format"] == {"type": "json_object"}


def test_api_error_falls_back(fake_client):
    fake_client(error=groq.GroqError("boom"))
    assert ai_service.generate_micro_version("Run 5k") == {"title": "2-minute version: Run 5k"}


def test_invalid_json_falls_back(fake_client):
    fake_client(payload="not json")
    assert ai_service.generate_micro_version("Run 5k") == {"title": "2-minute version: Run 5k"}


def test_quota_exhaustion_falls_back(fake_client, monkeypatch):
    monkeypatch.setattr(settings, "AI_DAILY_QUOTA", 1)
    client = fake_client(payload={"title": "Put on shoes"})

    assert ai_service.generate_micro_version("Run 5k") == {"title": "Put on shoes"}
    assert ai_service.generate_micro_version("Run 5k") == {"title": "2-minute version: Run 5k"}
    assert len(client.calls) == 1
    assert ai_service.quota_remaining() == 0


def test_quota_resets_on_new_calendar_day(monkeypatch):
    monkeypatch.setattr(settings, "AI_DAILY_QUOTA", 1)
    ai_service._consume_quota(TODAY)
    assert ai_service.quota_remaining(TODAY) == 0
    assert ai_service.quota_remaining(date(2024, 3, 5)) == 1
    ai_service._consume_quota(date(2024, 3, 5))
    assert ai_service.quota_remaining(date(2024, 3, 5)) == 0


def test_translation_cached_per_message_and_locale(fake_client):
    client = fake_client(payload={"text": "Hola"})
    assert ai_service.translate("Hello", "es") == "Hola"
    assert ai_service.translate("Hello", "es") == "Hola"
    assert len(client.calls) == 1


def test_translation_in_flight_duplicate_returns_source(fake_client):
    client = fake_client(payload={"text": "Hola"})
    ai_service._in_flight.add(("Hello", "es"))
    assert ai_service.translate("Hello", "es") == "Hello"
    assert client.calls == []


def test_same_locale_translation_skips_call(fake_client):
    client = fake_client(payload={"text": "x"})
    assert ai_service.translate("Hello", "en", "en") == "Hello"
    assert client.calls == []


def test_briefing_fallback_prefers_longest_pending_streak():
    done_today = datetime(2024, 3, 4, 7, 0, tzinfo=timezone.utc)
    yesterday = datetime(2024, 3, 3, 7, 0, tzinfo=timezone.utc)
    habits = [
        Habit(id="done", title="Journal", streak=20, longest_streak=20, last_completed=done_today),
        Habit(id="short", title="Stretch", streak=2, longest_streak=2, last_completed=yesterday),
        Habit(id="long", title="Read", streak=9, longest_streak=9, last_completed=yesterday),
    ]
    briefing = ai_service.generate_daily_briefing("Ana", habits, today=TODAY)
    assert briefing["mostImportantHabitId"] == "long"
    assert "Ana" in briefing["greeting"]


def test_briefing_rejects_unknown_habit_id(fake_client):
    fake_client(payload={"greeting": "Morning!", "mostImportantHabitId": "nope"})
    habits = [Habit(id="h1", title="Read")]
    briefing = ai_service.generate_daily_briefing("Ana", habits, today=TODAY)
    assert briefing == {"greeting": "Morning!", "mostImportantHabitId": "h1"}


def test_weekly_insight_fallback_names_best_day():
    insight = ai_service.generate_weekly_insight({"bestDay": "Tuesday"})
    assert "Tuesday" in insight
