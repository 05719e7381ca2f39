from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Optional

MAX_SHIELDS = 3
COMEBACK_DAYS = 3
COMEBACK_MIN_STREAK = 3  # a lost streak must exceed 2 to earn a comeback
MILESTONE_STRIDE = 7

HabitState = Literal["fresh", "live", "broken", "shield_grace", "comeback_active"]


def parse_moment(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 string -> aware datetime (naive values are read as UTC)."""
    if not value:
        return None
    moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def format_moment(moment: Optional[datetime]) -> Optional[str]:
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.isoformat()


@dataclass(frozen=True)
class ComebackChallenge:
    """Three-day probation entered when a streak above 2 is lost without a shield."""

    is_active: bool
    days_remaining: int
    original_streak: int

    def to_dict(self) -> dict:
        return {
            "isActive": self.is_active,
            "daysRemaining": self.days_remaining,
            "originalStreak": self.original_streak,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional[ComebackChallenge]:
        if not data:
            return None
        return cls(
            is_active=bool(data.get("isActive", False)),
            days_remaining=int(data.get("daysRemaining", COMEBACK_DAYS)),
            original_streak=int(data.get("originalStreak", 0)),
        )


@dataclass(frozen=True)
class Habit:
    """
    Domain model for a tracked habit. Plain, serializable, no storage concerns.

    `completions` is append-only. `momentum_shields` stays within [0, MAX_SHIELDS]
    and `longest_streak >= streak` after every engine update.
    """

    id: str
    title: str
    description: str = ""
    identity_tag: str = ""
    cue: str = ""
    streak: int = 0
    longest_streak: int = 0
    last_completed: Optional[datetime] = None
    completions: tuple[datetime, ...] = field(default_factory=tuple)
    momentum_shields: int = 0
    comeback_challenge: Optional[ComebackChallenge] = None
    micro_version: Optional[str] = None

    @property
    def comeback_active(self) -> bool:
        return bool(self.comeback_challenge and self.comeback_challenge.is_active)

    def validate(self) -> None:
        """Ensure engine invariants hold."""
        assert self.id, "id required"
        assert self.streak >= 0, f"negative streak: {self.streak}"
        assert self.longest_streak >= self.streak, (
            f"longest_streak {self.longest_streak} below streak {self.streak}"
        )
        assert 0 <= self.momentum_shields <= MAX_SHIELDS, f"shields out of range: {self.momentum_shields}"
        if self.comeback_active:
            assert self.streak == 0, "streak must be pinned at 0 during a comeback"
            assert 1 <= self.comeback_challenge.days_remaining <= COMEBACK_DAYS, (
                f"days_remaining out of range: {self.comeback_challenge.days_remaining}"
            )

    def to_dict(self) -> dict:
        """Serialize using the client's persisted field names."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "identityTag": self.identity_tag,
            "cue": self.cue,
            "streak": self.streak,
            "longestStreak": self.longest_streak,
            "lastCompleted": format_moment(self.last_completed),
            "completions": [format_moment(c) for c in self.completions],
            "momentumShields": self.momentum_shields,
            "comebackChallenge": self.comeback_challenge.to_dict() if self.comeback_challenge else None,
            "microVersion": self.micro_version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Habit:
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            description=data.get("description", "") or "",
            identity_tag=data.get("identityTag", "") or "",
            cue=data.get("cue", "") or "",
            streak=int(data.get("streak", 0)),
            longest_streak=int(data.get("longestStreak", 0)),
            last_completed=parse_moment(data.get("lastCompleted")),
            completions=tuple(parse_moment(c) for c in data.get("completions", []) if c),
            momentum_shields=int(data.get("momentumShields", 0)),
            comeback_challenge=ComebackChallenge.from_dict(data.get("comebackChallenge")),
            micro_version=data.get("microVersion"),
        )
