"""
Squad domain models.

A squad is a small group (at most 5 members) whose completions accumulate into
`shared_momentum`. Membership changes only through join-request and kick votes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from momentum_backend.models.habit import format_moment, parse_moment

SQUAD_MEMBER_LIMIT = 5


@dataclass(frozen=True)
class JoinRequest:
    user_name: str
    message: str = ""
    approvals: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {"userName": self.user_name, "message": self.message, "approvals": list(self.approvals)}

    @classmethod
    def from_dict(cls, data: dict) -> JoinRequest:
        return cls(
            user_name=data["userName"],
            message=data.get("message", ""),
            approvals=tuple(data.get("approvals", [])),
        )


@dataclass(frozen=True)
class KickVote:
    target: str
    voters: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {"targetUserName": self.target, "voters": list(self.voters)}

    @classmethod
    def from_dict(cls, data: dict) -> KickVote:
        return cls(target=data["targetUserName"], voters=tuple(data.get("voters", [])))


@dataclass(frozen=True)
class SquadQuest:
    id: str
    title: str
    points: int
    is_completed: bool = False
    completed_by: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "points": self.points,
            "isCompleted": self.is_completed,
            "completedBy": self.completed_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SquadQuest:
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            points=int(data.get("points", 0)),
            is_completed=bool(data.get("isCompleted", False)),
            completed_by=data.get("completedBy"),
        )


@dataclass(frozen=True)
class DailyQuests:
    """Quest set stamped with the calendar day (YYYY-MM-DD) it was generated for."""

    date: str
    quests: tuple[SquadQuest, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {"date": self.date, "quests": [q.to_dict() for q in self.quests]}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional[DailyQuests]:
        if not data:
            return None
        return cls(date=data["date"], quests=tuple(SquadQuest.from_dict(q) for q in data.get("quests", [])))


@dataclass(frozen=True)
class Squad:
    id: str
    name: str
    goal_identity: str = ""
    shared_momentum: int = 0
    members: tuple[str, ...] = field(default_factory=tuple)
    pending_requests: tuple[JoinRequest, ...] = field(default_factory=tuple)
    active_kick_votes: tuple[KickVote, ...] = field(default_factory=tuple)
    daily_quests: Optional[DailyQuests] = None

    @property
    def is_full(self) -> bool:
        return len(self.members) >= SQUAD_MEMBER_LIMIT

    def request_for(self, user_name: str) -> Optional[JoinRequest]:
        return next((r for r in self.pending_requests if r.user_name == user_name), None)

    def kick_vote_for(self, target: str) -> Optional[KickVote]:
        return next((v for v in self.active_kick_votes if v.target == target), None)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "goalIdentity": self.goal_identity,
            "sharedMomentum": self.shared_momentum,
            "members": list(self.members),
            "pendingRequests": [r.to_dict() for r in self.pending_requests],
            "activeKickVotes": [v.to_dict() for v in self.active_kick_votes],
            "dailyQuests": self.daily_quests.to_dict() if self.daily_quests else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Squad:
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            goal_identity=data.get("goalIdentity", ""),
            shared_momentum=int(data.get("sharedMomentum", 0)),
            members=tuple(data.get("members", [])),
            pending_requests=tuple(JoinRequest.from_dict(r) for r in data.get("pendingRequests", [])),
            active_kick_votes=tuple(KickVote.from_dict(v) for v in data.get("activeKickVotes", [])),
            daily_quests=DailyQuests.from_dict(data.get("dailyQuests")),
        )


@dataclass(frozen=True)
class Ripple:
    """Activity-feed entry created when a squad member completes a habit."""

    id: str
    squad_id: str
    user_name: str
    habit_title: str
    identity_tag: str
    streak: int
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "squadId": self.squad_id,
            "userName": self.user_name,
            "habitTitle": self.habit_title,
            "identityTag": self.identity_tag,
            "streak": self.streak,
            "timestamp": format_moment(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Ripple:
        created_at = parse_moment(data.get("timestamp"))
        if created_at is None:
            raise ValueError("ripple without timestamp")
        return cls(
            id=str(data["id"]),
            squad_id=str(data.get("squadId", "")),
            user_name=data.get("userName", ""),
            habit_title=data.get("habitTitle", ""),
            identity_tag=data.get("identityTag", ""),
            streak=int(data.get("streak", 0)),
            created_at=created_at,
        )
