from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional, TypeVar

from momentum_backend.models.habit import Habit
from momentum_backend.models.mission import Mission
from momentum_backend.models.squad import Ripple, Squad
from momentum_backend.models.user import UserProfile

logger = logging.getLogger("momentum")

T = TypeVar("T")


@dataclass
class AppState:
    """
    Everything the engine owns for the single local user.

    Chat messages, teams and team challenges are carried through untouched
    so a persisted client state round-trips without loss.
    """

    user: Optional[UserProfile] = None
    habits: List[Habit] = field(default_factory=list)
    squads: List[Squad] = field(default_factory=list)
    ripples: List[Ripple] = field(default_factory=list)
    chat_messages: List[dict] = field(default_factory=list)
    active_mission: Optional[Mission] = None
    priority_habit_id: Optional[str] = None
    teams: List[dict] = field(default_factory=list)
    team_challenges: List[dict] = field(default_factory=list)
    rollover_day: Optional[date] = None

    def habit(self, habit_id: str) -> Optional[Habit]:
        return next((h for h in self.habits if h.id == habit_id), None)

    def squad(self, squad_id: Optional[str]) -> Optional[Squad]:
        if not squad_id:
            return None
        return next((s for s in self.squads if s.id == squad_id), None)

    def put_habit(self, habit: Habit) -> None:
        self.habits = [habit if h.id == habit.id else h for h in self.habits]

    def put_squad(self, squad: Squad) -> None:
        if self.squad(squad.id) is None:
            self.squads = self.squads + [squad]
        else:
            self.squads = [squad if s.id == squad.id else s for s in self.squads]

    def blob(self, key: str) -> Any:
        if key == "user":
            return self.user.to_dict() if self.user else None
        if key == "habits":
            return [h.to_dict() for h in self.habits]
        if key == "squads":
            return [s.to_dict() for s in self.squads]
        if key == "ripples":
            return [r.to_dict() for r in self.ripples]
        if key == "active_mission":
            return self.active_mission.to_dict() if self.active_mission else None
        if key == "rollover_day":
            return self.rollover_day.isoformat() if self.rollover_day else None
        return getattr(self, key)

    @classmethod
    def from_blobs(cls, blobs: Dict[str, Any]) -> AppState:
        """
        Rebuild state from persisted blobs.

        A malformed record is dropped from its collection and a malformed
        scalar key falls back to its default; both are logged and loading
        carries on.
        """
        return cls(
            user=_parse_one(blobs, "user", UserProfile.from_dict),
            habits=_parse_many(blobs, "habits", Habit.from_dict),
            squads=_parse_many(blobs, "squads", Squad.from_dict),
            ripples=_parse_many(blobs, "ripples", Ripple.from_dict),
            chat_messages=_parse_list(blobs, "chat_messages"),
            active_mission=_parse_one(blobs, "active_mission", Mission.from_dict),
            priority_habit_id=_parse_one(blobs, "priority_habit_id", str),
            teams=_parse_list(blobs, "teams"),
            team_challenges=_parse_list(blobs, "team_challenges"),
            rollover_day=_parse_one(blobs, "rollover_day", date.fromisoformat),
        )


def _load_failed(key: str, exc: Exception) -> None:
    logger.error(
        "persistence.load_failed",
        extra={"error_code": "persistence_error", "state_key": key, "reason": str(exc)[:200]},
    )


def _parse_one(blobs: Dict[str, Any], key: str, parse: Callable[[Any], T]) -> Optional[T]:
    raw = blobs.get(key)
    if not raw:
        return None
    try:
        return parse(raw)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        _load_failed(key, exc)
        return None


def _parse_many(blobs: Dict[str, Any], key: str, parse: Callable[[dict], T]) -> List[T]:
    parsed: List[T] = []
    for raw in _parse_list(blobs, key):
        try:
            parsed.append(parse(raw))
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            _load_failed(key, exc)
    return parsed


def _parse_list(blobs: Dict[str, Any], key: str) -> List[Any]:
    raw = blobs.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        _load_failed(key, TypeError(f"expected a list, got {type(raw).__name__}"))
        return []
    return list(raw)
