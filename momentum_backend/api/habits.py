from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, Field

from momentum_backend.core.logging import log_event
from momentum_backend.features.streaks.evaluator import classify_state, next_action_hint
from momentum_backend.features.store.service import get_store
from momentum_backend.models.habit import Habit

router = APIRouter()


class CreateHabitRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=120)
    description: str = ""
    identity_tag: str = ""
    cue: str = ""


def habit_view(habit: Habit) -> dict:
    """Persisted fields plus the derived streak state and a next-step hint."""
    today = get_store().today()
    return {
        **habit.to_dict(),
        "state": classify_state(habit, today),
        "hint": next_action_hint(habit, today),
    }


@router.get("/v1/habits")
def list_habits():
    return {"habits": [habit_view(h) for h in get_store().habits()]}


@router.post("/v1/habits", status_code=201)
def create_habit(body: CreateHabitRequest):
    habit = get_store().add_habit(
        body.title, description=body.description, identity_tag=body.identity_tag, cue=body.cue
    )
    return habit_view(habit)


@router.post("/v1/habits/rollover")
def run_rollover():
    """Apply the day-boundary rules now; a no-op once today's rollover has run."""
    emitted = get_store().rollover()
    return {"emitted": emitted}


@router.get("/v1/habits/{habit_id}")
def get_habit(habit_id: str):
    return habit_view(get_store().habit(habit_id))


@router.delete("/v1/habits/{habit_id}")
def delete_habit(habit_id: str):
    get_store().remove_habit(habit_id)
    return {"removed": habit_id}


@router.post("/v1/habits/{habit_id}/complete")
def complete_habit(habit_id: str):
    """Record today's completion. Repeats on the same day return the habit unchanged."""
    outcome = get_store().complete_habit(habit_id)
    log_event(
        "info",
        "habit.completed" if outcome.applied else "habit.complete_repeat",
        habit_id=habit_id,
        event_type="completion",
        extra={"events": len(outcome.events)},
    )
    return {
        "habit": habit_view(outcome.habit),
        "identity": outcome.identity.to_dict() if outcome.identity else None,
        "mission": outcome.mission.to_dict() if outcome.mission else None,
        "squad": outcome.squad.to_dict() if outcome.squad else None,
        "emitted": outcome.events,
    }


@router.post("/v1/habits/{habit_id}/micro-version")
def create_micro_version(habit_id: str):
    """Attach a shrunken version of the habit for low-energy days (cleared at rollover)."""
    return habit_view(get_store().request_micro_version(habit_id))
