"""
Identity Models

An identity is a user-chosen archetype ("The Athlete", "The Learner", ...).
Habits are tagged with an identity name and feed it XP on every completion.
"""

from __future__ import annotations

from dataclasses import dataclass

XP_PER_LEVEL = 100

IDENTITY_ARCHETYPES = [
    {"id": "connector", "name": "The Connector", "description": "Builds valuable relationships daily"},
    {"id": "leader", "name": "The Leader", "description": "Influences and inspires others"},
    {"id": "creator", "name": "The Creator", "description": "Brings ideas to life consistently"},
    {"id": "achiever", "name": "The Achiever", "description": "Hits goals with relentless momentum"},
    {"id": "learner", "name": "The Learner", "description": "Grows knowledge and skills daily"},
    {"id": "athlete", "name": "The Athlete", "description": "Builds physical strength and vitality"},
]


@dataclass(frozen=True)
class UserIdentity:
    """Level/XP progress for one identity. Invariant: 0 <= xp < level * 100."""

    name: str
    level: int = 1
    xp: int = 0

    @property
    def threshold(self) -> int:
        return self.level * XP_PER_LEVEL

    def validate(self) -> None:
        assert self.level >= 1, f"level below 1: {self.level}"
        assert 0 <= self.xp < self.threshold, f"xp {self.xp} outside [0, {self.threshold})"

    def to_dict(self) -> dict:
        return {"name": self.name, "level": self.level, "xp": self.xp}

    @classmethod
    def from_dict(cls, data: dict) -> UserIdentity:
        return cls(name=data["name"], level=int(data.get("level", 1)), xp=int(data.get("xp", 0)))
