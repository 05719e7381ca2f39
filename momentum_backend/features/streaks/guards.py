"""Clamps applied wherever streak fields are written."""

import logging

from momentum_backend.models.habit import MAX_SHIELDS

logger = logging.getLogger("momentum")


def clamp_shields(count: int, *, habit_id: str) -> int:
    if 0 <= count <= MAX_SHIELDS:
        return count
    clamped = min(MAX_SHIELDS, max(0, count))
    logger.warning(
        "invariant.shields_clamped",
        extra={"habit_id": habit_id, "event_type": "invariant", "requested": count, "clamped": clamped},
    )
    return clamped


def clamp_streak(count: int, *, habit_id: str) -> int:
    if count >= 0:
        return count
    logger.warning(
        "invariant.streak_clamped",
        extra={"habit_id": habit_id, "event_type": "invariant", "requested": count},
    )
    return 0
