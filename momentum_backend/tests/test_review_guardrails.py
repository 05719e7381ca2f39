from datetime import date, datetime, timedelta, timezone

import pytest

from momentum_backend.core.errors import ValidationError
from momentum_backend.features.habits.builder import build_habit, remove_habit
from momentum_backend.features.review.service import weekly_stats
from momentum_backend.models.habit import Habit

TODAY = date(2024, 3, 4)  # Monday


def on(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, 12, 0, tzinfo=timezone.utc)


def test_weekly_stats_window_and_rate():
    habits = [
        Habit(id="a", title="Run", streak=3, longest_streak=3, completions=(on(TODAY), on(TODAY - timedelta(days=1)), on(TODAY - timedelta(days=10)))),
        Habit(id="b", title="Read", streak=1, longest_streak=1, completions=(on(TODAY),)),
    ]
    stats = weekly_stats(habits, TODAY)

    assert stats["totalCompletions"] == 3
    assert stats["completionRate"] == round(3 / 14 * 100, 1)
    assert stats["bestDay"] == "Monday"
    assert stats["worstDay"] == "Tuesday"
    assert stats["mostConsistentHabit"] == "Run"
    assert stats["windowStart"] == "2024-02-27"


def test_weekly_stats_without_habits():
    stats = weekly_stats([], TODAY)
    assert stats["totalCompletions"] == 0
    assert stats["completionRate"] == 0.0
    assert stats["mostConsistentHabit"] == "None"


def test_build_habit_defaults():
    habit = build_habit("  Stretch  ", identity_tag="The Athlete")
    assert habit.title == "Stretch"
    assert habit.momentum_shields == 1
    assert habit.streak == 0
    assert habit.completions == ()
    habit.validate()


def test_build_habit_requires_title():
    with pytest.raises(ValidationError):
        build_habit("   ")


def test_remove_habit_clears_matching_pointer_only():
    habits = [Habit(id="a", title="A"), Habit(id="b", title="B")]
    remaining, pointer, removed = remove_habit(habits, "a", "a")
    assert [h.id for h in remaining] == ["b"]
    assert pointer is None
    assert removed

    _, pointer, _ = remove_habit(habits, "a", "b")
    assert pointer == "b"
