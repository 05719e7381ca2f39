from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from momentum_backend.core.errors import NotFoundError
from momentum_backend.features.identity.progression import progress_ratio
from momentum_backend.features.store.service import get_store
from momentum_backend.models.identity import IDENTITY_ARCHETYPES

router = APIRouter()


class ProfileRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=80)
    selected_identities: List[str] = Field(default_factory=list)
    identity_statements: Dict[str, str] = Field(default_factory=dict)
    locale: Optional[str] = Field(None, min_length=2, max_length=10)


@router.get("/v1/profile")
def get_profile():
    profile = get_store().profile()
    if profile is None:
        raise NotFoundError("No profile yet")
    return profile.to_dict()


@router.put("/v1/profile")
def put_profile(body: ProfileRequest):
    profile = get_store().save_profile(
        body.name,
        body.selected_identities,
        identity_statements=body.identity_statements,
        locale=body.locale,
    )
    return profile.to_dict()


@router.get("/v1/identities")
def list_identities():
    """Archetype catalog plus the user's level/XP progress per identity."""
    profile = get_store().profile()
    progress = []
    if profile is not None:
        for identity in profile.identities.values():
            progress.append({**identity.to_dict(), "threshold": identity.threshold, "progress": progress_ratio(identity)})
    return {"archetypes": IDENTITY_ARCHETYPES, "progress": progress}
