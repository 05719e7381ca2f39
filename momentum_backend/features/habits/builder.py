from __future__ import annotations

from typing import List, Optional, Sequence, Tuple
from uuid import uuid4

from momentum_backend.core.errors import ValidationError
from momentum_backend.models.habit import Habit

STARTING_SHIELDS = 1
MAX_TITLE_LENGTH = 120


def build_habit(
    title: str,
    *,
    description: str = "",
    identity_tag: str = "",
    cue: str = "",
    habit_id: Optional[str] = None,
) -> Habit:
    """Fresh habit: no history, one starting shield."""
    clean_title = (title or "").strip()
    if not clean_title:
        raise ValidationError("Habit title is required")
    if len(clean_title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Habit title exceeds {MAX_TITLE_LENGTH} characters")
    return Habit(
        id=habit_id or uuid4().hex[:12],
        title=clean_title,
        description=description.strip(),
        identity_tag=identity_tag.strip(),
        cue=cue.strip(),
        momentum_shields=STARTING_SHIELDS,
    )


def remove_habit(
    habits: Sequence[Habit], habit_id: str, priority_habit_id: Optional[str]
) -> Tuple[List[Habit], Optional[str], bool]:
    """Returns (remaining habits, priority pointer, removed?)."""
    remaining = [h for h in habits if h.id != habit_id]
    removed = len(remaining) != len(habits)
    pointer = None if priority_habit_id == habit_id else priority_habit_id
    return remaining, pointer, removed
