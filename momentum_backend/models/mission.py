from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Optional

RewardType = Literal["shield"]

MIN_TARGET_COMPLETIONS = 3
MAX_TARGET_COMPLETIONS = 5


@dataclass(frozen=True)
class MissionReward:
    type: RewardType = "shield"
    amount: int = 1

    def to_dict(self) -> dict:
        return {"type": self.type, "amount": self.amount}


@dataclass(frozen=True)
class Mission:
    """Domain model for the single active weekly mission tied to one habit."""

    id: str
    habit_id: str
    title: str
    description: str
    target_completions: int
    created_on: date
    current_completions: int = 0
    is_completed: bool = False
    reward: MissionReward = field(default_factory=MissionReward)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "habitId": self.habit_id,
            "title": self.title,
            "description": self.description,
            "targetCompletions": self.target_completions,
            "currentCompletions": self.current_completions,
            "isCompleted": self.is_completed,
            "reward": self.reward.to_dict(),
            "createdAt": self.created_on.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional[Mission]:
        if not data:
            return None
        reward = data.get("reward") or {}
        return cls(
            id=str(data["id"]),
            habit_id=str(data["habitId"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            target_completions=int(data.get("targetCompletions", MIN_TARGET_COMPLETIONS)),
            current_completions=int(data.get("currentCompletions", 0)),
            is_completed=bool(data.get("isCompleted", False)),
            reward=MissionReward(type=reward.get("type", "shield"), amount=int(reward.get("amount", 1))),
            created_on=date.fromisoformat(str(data["createdAt"])[:10]),
        )
