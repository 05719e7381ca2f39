"""
Identity Progression: XP accumulation and leveling.

Pure functions: same inputs => same outputs.

Leveling consumes XP: while xp >= level * 100, subtract that threshold
(computed with the pre-increment level) and increment the level.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Tuple

from momentum_backend.models.identity import UserIdentity

BASE_COMPLETION_XP = 10


def new_identity(name: str) -> UserIdentity:
    return UserIdentity(name=name, level=1, xp=0)


def xp_for_completion(new_streak: int) -> int:
    """XP awarded for one completion, using the post-update streak value."""
    return BASE_COMPLETION_XP + max(0, new_streak)


def add_xp(identity: UserIdentity, amount: int) -> UserIdentity:
    """Award XP and carry any overflow through as many level boundaries as needed."""
    level = max(1, identity.level)
    xp = max(0, identity.xp) + max(0, amount)
    while xp >= level * 100:
        xp -= level * 100
        level += 1
    return replace(identity, level=level, xp=xp)


def award_completion(identity: UserIdentity, new_streak: int) -> Tuple[UserIdentity, int]:
    """Returns (updated identity, levels gained)."""
    updated = add_xp(identity, xp_for_completion(new_streak))
    return updated, updated.level - identity.level


def progress_ratio(identity: UserIdentity) -> float:
    """Fraction of the way to the next level, 0..1."""
    return round(identity.xp / identity.threshold, 3)
