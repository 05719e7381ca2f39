from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta, tzinfo
from typing import Iterable, List, Optional, Tuple

from momentum_backend.features.clock.dates import backfill_moment, is_same_day, is_today, is_yesterday
from momentum_backend.features.streaks.guards import clamp_shields, clamp_streak
from momentum_backend.models import events as ev
from momentum_backend.models.habit import COMEBACK_DAYS, COMEBACK_MIN_STREAK, ComebackChallenge, Habit, HabitState

logger = logging.getLogger("momentum")


def evaluate_rollover(habit: Habit, today: date, tz: Optional[tzinfo] = None) -> Tuple[Habit, List[dict]]:
    """
    Apply the day-boundary rules to one habit.

    Runs once per habit per detected calendar-day change, before any completion
    for that day. Returns the updated habit and the emitted events.
    """
    shields = clamp_shields(habit.momentum_shields, habit_id=habit.id)
    streak = clamp_streak(habit.streak, habit_id=habit.id)
    updated = replace(habit, micro_version=None, momentum_shields=shields, streak=streak)

    covered = is_today(habit.last_completed, today, tz) or is_yesterday(habit.last_completed, today, tz)
    emitted: List[dict] = []

    if updated.comeback_active and not covered:
        original = updated.comeback_challenge.original_streak
        updated = replace(updated, comeback_challenge=None, streak=0)
        emitted.append(ev.event(ev.COMEBACK_FAILED, habitId=habit.id, originalStreak=original, day=today.isoformat()))

    elif updated.streak > 0 and not covered:
        if updated.momentum_shields > 0:
            yesterday = today - timedelta(days=1)
            updated = replace(
                updated,
                momentum_shields=updated.momentum_shields - 1,
                last_completed=backfill_moment(yesterday, tz),
            )
            emitted.append(
                ev.event(
                    ev.SHIELD_CONSUMED,
                    habitId=habit.id,
                    coveredDay=yesterday.isoformat(),
                    shieldsLeft=updated.momentum_shields,
                    streak=updated.streak,
                )
            )
        elif updated.streak >= COMEBACK_MIN_STREAK:
            challenge = ComebackChallenge(is_active=True, days_remaining=COMEBACK_DAYS, original_streak=updated.streak)
            updated = replace(updated, streak=0, comeback_challenge=challenge)
            emitted.append(
                ev.event(
                    ev.COMEBACK_STARTED,
                    habitId=habit.id,
                    originalStreak=challenge.original_streak,
                    daysRemaining=challenge.days_remaining,
                )
            )
        else:
            lost = updated.streak
            updated = replace(updated, streak=0)
            emitted.append(ev.event(ev.STREAK_BROKEN, habitId=habit.id, lostStreak=lost, day=today.isoformat()))

    for item in emitted:
        logger.info(item["type"], extra={"habit_id": habit.id, "event_type": item["type"]})

    return updated, emitted


def rollover_all(
    habits: Iterable[Habit], today: date, tz: Optional[tzinfo] = None
) -> Tuple[List[Habit], List[dict]]:
    """Run the rollover over every habit, preserving order."""
    updated: List[Habit] = []
    emitted: List[dict] = []
    for habit in habits:
        next_habit, habit_events = evaluate_rollover(habit, today, tz)
        updated.append(next_habit)
        emitted.extend(habit_events)
    return updated, emitted


def classify_state(habit: Habit, today: date, tz: Optional[tzinfo] = None) -> HabitState:
    """Name the streak state a habit is in after today's rollover."""
    if habit.comeback_active:
        return "comeback_active"
    if habit.last_completed is None and not habit.completions:
        return "fresh"
    if habit.streak == 0:
        return "broken"
    yesterday = today - timedelta(days=1)
    backfilled = is_yesterday(habit.last_completed, today, tz) and not any(
        is_same_day(moment, yesterday, tz) for moment in habit.completions
    )
    if backfilled:
        return "shield_grace"
    return "live"


def next_action_hint(habit: Habit, today: date, tz: Optional[tzinfo] = None) -> str:
    state = classify_state(habit, today, tz)
    if state == "fresh":
        return "Complete it once today to start your streak."
    if state == "comeback_active":
        days = habit.comeback_challenge.days_remaining
        return f"Comeback in progress: {days} more day(s) to restore your {habit.comeback_challenge.original_streak}-day streak."
    if state == "shield_grace":
        return "A shield covered yesterday. Complete today to keep the streak alive."
    if state == "broken":
        return "Fresh start: one completion today begins a new streak."
    if is_today(habit.last_completed, today, tz):
        return "Done for today. See you tomorrow."
    return f"Complete today to reach a {habit.streak + 1}-day streak."
