"""Engine event names. Events travel as {"type": ..., "payload": {...}} dicts."""

from typing import Any, Dict

STREAK_INCREMENTED = "streak.incremented"
STREAK_BROKEN = "streak.broken"
SHIELD_CONSUMED = "streak.shield_consumed"
SHIELD_EARNED = "streak.shield_earned"
COMEBACK_STARTED = "streak.comeback_started"
COMEBACK_PROGRESSED = "streak.comeback_progressed"
COMEBACK_RESOLVED = "streak.comeback_resolved"
COMEBACK_FAILED = "streak.comeback_failed"
MISSION_COMPLETED = "mission.completed"
IDENTITY_LEVELED_UP = "identity.leveled_up"
SQUAD_MOMENTUM_ADDED = "squad.momentum_added"
SQUAD_MEMBER_JOINED = "squad.member_joined"
SQUAD_REQUEST_DENIED = "squad.request_denied"
SQUAD_REQUEST_DROPPED = "squad.request_dropped"
SQUAD_MEMBER_REMOVED = "squad.member_removed"
SQUAD_QUEST_COMPLETED = "squad.quest_completed"


def event(event_type: str, **payload: Any) -> Dict[str, Any]:
    return {"type": event_type, "payload": payload}
