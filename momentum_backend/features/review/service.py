"""
Weekly review statistics.

The review window is the last 7 calendar days in the user's zone, today
included. Weekday ties resolve in Sunday..Saturday order.
"""

from __future__ import annotations

from datetime import date, timedelta, tzinfo
from typing import List, Optional, Sequence

from momentum_backend.features.clock.dates import local_date
from momentum_backend.models.habit import Habit

REVIEW_WINDOW_DAYS = 7
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def _sunday_index(day: date) -> int:
    return (day.weekday() + 1) % 7


def weekly_stats(habits: Sequence[Habit], today: date, tz: Optional[tzinfo] = None) -> dict:
    window_start = today - timedelta(days=REVIEW_WINDOW_DAYS - 1)
    days: List[date] = [
        local_date(moment, tz)
        for habit in habits
        for moment in habit.completions
    ]
    recent = [d for d in days if window_start <= d <= today]

    total_possible = len(habits) * REVIEW_WINDOW_DAYS
    rate = round(len(recent) / total_possible * 100, 1) if total_possible else 0.0

    day_counts = [0] * 7
    for day in recent:
        day_counts[_sunday_index(day)] += 1

    most_consistent = max(habits, key=lambda h: h.streak) if habits else None

    return {
        "windowStart": window_start.isoformat(),
        "windowEnd": today.isoformat(),
        "totalCompletions": len(recent),
        "completionRate": rate,
        "dayCounts": dict(zip(DAY_NAMES, day_counts)),
        "bestDay": DAY_NAMES[day_counts.index(max(day_counts))],
        "worstDay": DAY_NAMES[day_counts.index(min(day_counts))],
        "mostConsistentHabit": most_consistent.title if most_consistent else "None",
    }
