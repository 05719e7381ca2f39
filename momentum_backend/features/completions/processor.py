"""
Completion Processor - applies one "I did it today" to a habit and fans the
result out to the tagged identity, the active mission, and the user's squad.

Idempotent per calendar day: a second completion on the same local day returns
everything unchanged with no events. Missing collaborators (no identity for the
tag, no mission, no squad) skip only their own step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
from typing import Dict, List, Optional

from momentum_backend.features.clock.dates import is_today, is_yesterday, local_date
from momentum_backend.features.identity.progression import award_completion, xp_for_completion
from momentum_backend.features.missions import tracker
from momentum_backend.features.squads.service import add_momentum, record_ripple
from momentum_backend.features.streaks.guards import clamp_shields, clamp_streak
from momentum_backend.models import events as ev
from momentum_backend.models.habit import MAX_SHIELDS, MILESTONE_STRIDE, Habit
from momentum_backend.models.identity import UserIdentity
from momentum_backend.models.mission import Mission
from momentum_backend.models.squad import Ripple, Squad

logger = logging.getLogger("momentum")


@dataclass(frozen=True)
class CompletionOutcome:
    habit: Habit
    identity: Optional[UserIdentity] = None
    mission: Optional[Mission] = None
    squad: Optional[Squad] = None
    ripple: Optional[Ripple] = None
    events: List[dict] = field(default_factory=list)

    @property
    def applied(self) -> bool:
        return bool(self.events)


def _apply_streak(habit: Habit, now: datetime, tz: Optional[tzinfo]) -> tuple[Habit, List[dict]]:
    today = local_date(now, tz)
    completions = habit.completions + (now,)
    emitted: List[dict] = []

    if habit.comeback_active:
        challenge = habit.comeback_challenge
        remaining = challenge.days_remaining - 1
        if remaining <= 0:
            streak = challenge.original_streak + 1
            updated = replace(
                habit,
                comeback_challenge=None,
                streak=streak,
                longest_streak=max(habit.longest_streak, streak),
            )
            emitted.append(
                ev.event(ev.COMEBACK_RESOLVED, habitId=habit.id, originalStreak=challenge.original_streak, streak=streak)
            )
        else:
            updated = replace(habit, comeback_challenge=replace(challenge, days_remaining=remaining))
            emitted.append(ev.event(ev.COMEBACK_PROGRESSED, habitId=habit.id, daysRemaining=remaining))
    else:
        prior = clamp_streak(habit.streak, habit_id=habit.id)
        streak = prior + 1 if is_yesterday(habit.last_completed, today, tz) else 1
        shields = clamp_shields(habit.momentum_shields, habit_id=habit.id)
        if streak % MILESTONE_STRIDE == 0 and shields < MAX_SHIELDS:
            shields += 1
            emitted.append(ev.event(ev.SHIELD_EARNED, habitId=habit.id, streak=streak, shields=shields))
        updated = replace(
            habit,
            streak=streak,
            longest_streak=max(habit.longest_streak, streak),
            momentum_shields=shields,
        )
        emitted.insert(0, ev.event(ev.STREAK_INCREMENTED, habitId=habit.id, streak=streak, previous=prior))

    updated = replace(updated, last_completed=now, completions=completions, micro_version=None)
    return updated, emitted


def complete(
    habit: Habit,
    *,
    now: datetime,
    identities: Optional[Dict[str, UserIdentity]] = None,
    mission: Optional[Mission] = None,
    squad: Optional[Squad] = None,
    member_name: Optional[str] = None,
    tz: Optional[tzinfo] = None,
) -> CompletionOutcome:
    """
    Record a completion at `now` (the user's local calendar day is derived from it).

    Returns the updated habit plus whichever of identity / mission / squad /
    ripple changed; unchanged collaborators come back as passed in.
    """
    today = local_date(now, tz)
    identity = (identities or {}).get(habit.identity_tag) if habit.identity_tag else None

    if is_today(habit.last_completed, today, tz):
        logger.info("completion.duplicate_ignored", extra={"habit_id": habit.id, "event_type": "completion.duplicate"})
        return CompletionOutcome(habit=habit, identity=identity, mission=mission, squad=squad)

    updated, emitted = _apply_streak(habit, now, tz)
    new_streak = updated.streak

    # Mission progress and reward
    next_mission = mission
    if mission is not None and not mission.is_completed and mission.habit_id == habit.id:
        next_mission = tracker.progress(mission, habit.id)
        if next_mission.is_completed:
            shields = min(MAX_SHIELDS, updated.momentum_shields + next_mission.reward.amount)
            updated = replace(updated, momentum_shields=shields)
            emitted.append(
                ev.event(
                    ev.MISSION_COMPLETED,
                    missionId=next_mission.id,
                    habitId=habit.id,
                    rewardType=next_mission.reward.type,
                    rewardAmount=next_mission.reward.amount,
                    shields=shields,
                )
            )

    # Identity XP
    next_identity = identity
    if identity is not None:
        next_identity, levels = award_completion(identity, new_streak)
        if levels > 0:
            emitted.append(
                ev.event(
                    ev.IDENTITY_LEVELED_UP,
                    identity=identity.name,
                    level=next_identity.level,
                    levelsGained=levels,
                    xpAwarded=xp_for_completion(new_streak),
                )
            )
    elif habit.identity_tag:
        logger.info("completion.identity_missing", extra={"habit_id": habit.id, "event_type": "completion.identity_missing"})

    # Squad momentum and ripple
    next_squad = squad
    ripple = None
    if squad is not None and member_name:
        amount = 1 + new_streak
        next_squad = add_momentum(squad, amount)
        ripple = record_ripple(next_squad, member_name, updated, now)
        emitted.append(
            ev.event(ev.SQUAD_MOMENTUM_ADDED, squadId=squad.id, amount=amount, sharedMomentum=next_squad.shared_momentum)
        )

    for item in emitted:
        logger.info(item["type"], extra={"habit_id": habit.id, "event_type": item["type"]})

    return CompletionOutcome(
        habit=updated,
        identity=next_identity,
        mission=next_mission,
        squad=next_squad,
        ripple=ripple,
        events=emitted,
    )
