from __future__ import annotations

import hashlib
import logging
from dataclasses import replace
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from momentum_backend.models.habit import Habit
from momentum_backend.models.mission import (
    MAX_TARGET_COMPLETIONS,
    MIN_TARGET_COMPLETIONS,
    Mission,
    MissionReward,
)

logger = logging.getLogger("momentum")

MISSION_TTL_DAYS = 7
MIN_HABITS_FOR_MISSION = 2

MissionContentGenerator = Callable[[Habit, Habit], Dict[str, object]]


def template_mission_content(least: Habit, most: Habit) -> Dict[str, object]:
    """Local mission text used when no generator is available."""
    return {
        "title": f"Momentum Boost: {least.title}",
        "description": (
            f"You're crushing '{most.title}'. Carry that energy over and complete "
            f"'{least.title}' 3 times this week."
        ),
        "targetCompletions": MIN_TARGET_COMPLETIONS,
    }


def should_generate(active: Optional[Mission], habits: Sequence[Habit]) -> bool:
    return active is None and len(habits) >= MIN_HABITS_FOR_MISSION


def pick_focus_habits(habits: Sequence[Habit]) -> Optional[Tuple[Habit, Habit]]:
    """(least consistent, most consistent) by streak, then completion count; list order breaks ties."""
    if len(habits) < MIN_HABITS_FOR_MISSION:
        return None
    ranked: List[Habit] = sorted(habits, key=lambda h: (h.streak, len(h.completions)))
    return ranked[0], ranked[-1]


def clamp_target(value: object) -> int:
    try:
        target = int(value)
    except (TypeError, ValueError):
        return MIN_TARGET_COMPLETIONS
    return min(MAX_TARGET_COMPLETIONS, max(MIN_TARGET_COMPLETIONS, target))


def mission_id_for(habit_id: str, created_on: date) -> str:
    composite = f"mission:{habit_id}:{created_on.isoformat()}"
    return hashlib.sha256(composite.encode()).hexdigest()[:16]


def generate(
    least: Habit,
    most: Habit,
    *,
    created_on: date,
    generator: Optional[MissionContentGenerator] = None,
) -> Mission:
    """Build a mission targeting the least consistent habit."""
    content = (generator or template_mission_content)(least, most)
    fallback = template_mission_content(least, most)
    mission = Mission(
        id=mission_id_for(least.id, created_on),
        habit_id=least.id,
        title=str(content.get("title") or fallback["title"]),
        description=str(content.get("description") or fallback["description"]),
        target_completions=clamp_target(content.get("targetCompletions")),
        created_on=created_on,
        reward=MissionReward(type="shield", amount=1),
    )
    logger.info("mission.generated", extra={"habit_id": least.id, "event_type": "mission.generated"})
    return mission


def progress(mission: Mission, habit_id: str) -> Mission:
    """Count one completion toward the mission if it targets `habit_id`."""
    if mission.is_completed or mission.habit_id != habit_id:
        return mission
    current = min(mission.target_completions, mission.current_completions + 1)
    return replace(mission, current_completions=current, is_completed=current >= mission.target_completions)


def is_stale(mission: Mission, today: date, ttl_days: int = MISSION_TTL_DAYS) -> bool:
    return not mission.is_completed and (today - mission.created_on).days > ttl_days


def expire(mission: Optional[Mission], today: date, ttl_days: int = MISSION_TTL_DAYS) -> Optional[Mission]:
    """None once an incomplete mission is more than `ttl_days` old."""
    if mission is None:
        return None
    if is_stale(mission, today, ttl_days):
        logger.info("mission.expired", extra={"habit_id": mission.habit_id, "event_type": "mission.expired"})
        return None
    return mission


def claim(mission: Optional[Mission]) -> Optional[Mission]:
    """A completed mission is cleared once its reward has been granted."""
    if mission is None or mission.is_completed:
        return None
    return mission
