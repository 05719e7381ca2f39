"""StateRepository against a real (sqlite) database."""

from datetime import timedelta

from sqlalchemy import select

from momentum_backend.core.database import app_state, get_db_session
from momentum_backend.features.store.repository import StateRepository
from momentum_backend.features.store.service import AppStore


def test_save_then_load_round_trip(sqlite_url):
    repo = StateRepository(enabled=True)
    assert repo.save("priority_habit_id", "h1")
    assert repo.save("habits", [{"id": "h1", "title": "Run", "streak": 2}])

    loaded = StateRepository(enabled=True).load()
    assert loaded["priority_habit_id"] == "h1"
    assert loaded["habits"][0]["streak"] == 2


def test_save_overwrites_existing_key(sqlite_url):
    repo = StateRepository(enabled=True)
    repo.save("priority_habit_id", "h1")
    repo.save("priority_habit_id", "h2")

    with get_db_session() as session:
        rows = session.execute(select(app_state.c.value).where(app_state.c.key == "priority_habit_id")).all()
    assert [row.value for row in rows] == ["h2"]


def test_disabled_repository_is_inert():
    repo = StateRepository(enabled=False)
    assert repo.load() == {}
    assert repo.save("habits", []) is False


def test_store_survives_restart(sqlite_url, clock):
    first = AppStore(repository=StateRepository(enabled=True), now_fn=clock)
    first.save_profile("Ana", ["The Learner"])
    habit = first.add_habit("Read", identity_tag="The Learner")
    first.complete_habit(habit.id)

    clock.advance(days=1)
    second = AppStore(repository=StateRepository(enabled=True), now_fn=clock)
    second.load()

    restored = second.habit(habit.id)
    assert restored.streak == 1
    assert restored.completions == (clock.now - timedelta(days=1),)
    assert second.profile().identity("The Learner").xp == 11


def test_broken_database_falls_back_to_memory(clock):
    from momentum_backend.core import database

    database.init_engine("sqlite:////nonexistent-dir/momentum.db")
    try:
        store = AppStore(repository=StateRepository(enabled=True), now_fn=clock)
        habit = store.add_habit("Run")
        store.complete_habit(habit.id)
        assert store.habit(habit.id).streak == 1
    finally:
        database.reset_engine()
