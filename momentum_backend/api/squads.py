from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from momentum_backend.features.store.service import get_store

router = APIRouter()


class CreateSquadRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=60)
    goal_identity: str = Field(..., min_length=1)


class JoinRequestBody(BaseModel):
    user_name: str = Field(..., min_length=1)
    message: str = Field("", max_length=280)


class VoteBody(BaseModel):
    voter: str = Field(..., min_length=1)
    vote: Literal["approve", "deny"]


class KickVoteBody(BaseModel):
    target: str = Field(..., min_length=1)
    voter: str = Field(..., min_length=1)


class QuestClaimBody(BaseModel):
    claimant: str = Field(..., min_length=1)


@router.post("/v1/squads", status_code=201)
def create_squad(body: CreateSquadRequest):
    return get_store().create_squad(body.name, body.goal_identity).to_dict()


@router.get("/v1/squads")
def list_squads():
    return {"squads": [s.to_dict() for s in get_store().squads()]}


@router.get("/v1/squads/suggestions")
def squad_suggestions():
    """Open squads sharing one of the user's identities, highest momentum first."""
    return {"squads": [s.to_dict() for s in get_store().suggested_squads()]}


@router.get("/v1/squads/{squad_id}")
def get_squad(squad_id: str):
    return get_store().squad(squad_id).to_dict()


@router.post("/v1/squads/{squad_id}/requests")
def request_to_join(squad_id: str, body: JoinRequestBody):
    return get_store().request_to_join(squad_id, body.user_name, body.message).to_dict()


@router.post("/v1/squads/{squad_id}/requests/{requester}/vote")
def vote_on_request(squad_id: str, requester: str, body: VoteBody):
    squad, emitted = get_store().vote_on_request(squad_id, requester, body.voter, body.vote)
    return {"squad": squad.to_dict(), "emitted": emitted}


@router.post("/v1/squads/{squad_id}/kick-votes")
def vote_to_kick(squad_id: str, body: KickVoteBody):
    squad, emitted = get_store().vote_to_kick(squad_id, body.target, body.voter)
    return {"squad": squad.to_dict(), "emitted": emitted}


@router.post("/v1/squads/{squad_id}/quests/{quest_id}/complete")
def complete_quest(squad_id: str, quest_id: str, body: QuestClaimBody):
    """First claim wins; later claims return the squad unchanged."""
    squad, emitted = get_store().complete_quest(squad_id, quest_id, body.claimant)
    return {"squad": squad.to_dict(), "emitted": emitted}


@router.get("/v1/ripples")
def list_ripples(limit: Optional[int] = Query(None, ge=1, le=20)):
    return {"ripples": [r.to_dict() for r in get_store().ripples(limit)]}
