from fastapi import APIRouter

from momentum_backend.features.store.service import get_store

router = APIRouter()


@router.get("/v1/missions/active")
def get_active_mission():
    mission = get_store().active_mission()
    return {"mission": mission.to_dict() if mission else None}


@router.post("/v1/missions/generate")
def generate_mission():
    """Idempotent: returns the active mission when one exists or fewer than two habits are tracked."""
    mission = get_store().ensure_mission()
    return {"mission": mission.to_dict() if mission else None}
