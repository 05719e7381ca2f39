"""
Squad momentum aggregation and membership voting.

Functions take a Squad snapshot and return a new one plus the emitted
events. Only `create_squad` and `record_ripple` touch outside state: they mint
uuid4 ids. Unknown requests, targets, or quests are no-ops.

Voting rules:
- join request approved once approvals >= min(2, max(1, member_count));
  an approved request is dropped when the squad is already at 5 members
- a single denial removes the request immediately
- a member is removed once kick voters >= ceil(member_count * 0.5)
"""

from __future__ import annotations

import hashlib
import logging
import math
from dataclasses import replace
from datetime import date, datetime
from typing import Iterable, List, Literal, Optional, Sequence, Tuple
from uuid import uuid4

from momentum_backend.models import events as ev
from momentum_backend.models.habit import Habit
from momentum_backend.models.squad import (
    DailyQuests,
    JoinRequest,
    KickVote,
    Ripple,
    Squad,
    SquadQuest,
)
from momentum_backend.models.user import UserProfile

logger = logging.getLogger("momentum")

Vote = Literal["approve", "deny"]

QUESTS_PER_DAY = 3
MAX_SUGGESTIONS = 3

# Static catalog of squad quests (title, points)
QUEST_CATALOG = [
    ("Everyone completes their most important habit before noon", 30),
    ("Log 10 combined completions today", 40),
    ("Send one nudge to a squadmate who hasn't checked in", 15),
    ("Share today's win in the squad chat", 10),
    ("Two members finish a habit within the same hour", 20),
    ("Protect every streak: nobody misses today", 50),
    ("Try a micro-version of your hardest habit", 15),
    ("Post a photo of your habit setup", 10),
    ("Complete a habit tied to a new identity", 25),
    ("Hit a combined streak total of 30 days", 35),
]


def create_squad(name: str, goal_identity: str, founder: str, *, squad_id: Optional[str] = None) -> Squad:
    return Squad(
        id=squad_id or str(uuid4()),
        name=name,
        goal_identity=goal_identity,
        members=(founder,),
    )


def add_momentum(squad: Squad, amount: int) -> Squad:
    """Shared momentum only ever grows; non-positive amounts are ignored."""
    if amount <= 0:
        if amount < 0:
            logger.warning(
                "squad.negative_momentum_ignored",
                extra={"squad_id": squad.id, "event_type": "invariant", "requested": amount},
            )
        return squad
    return replace(squad, shared_momentum=squad.shared_momentum + amount)


# Join requests ----------------------------------------------------

def approval_threshold(member_count: int) -> int:
    return min(2, max(1, member_count))


def request_to_join(squad: Squad, user_name: str, message: str = "") -> Tuple[Squad, List[dict]]:
    if user_name in squad.members or squad.request_for(user_name):
        return squad, []
    request = JoinRequest(user_name=user_name, message=message)
    return replace(squad, pending_requests=squad.pending_requests + (request,)), []


def vote_on_request(squad: Squad, requester: str, voter: str, vote: Vote) -> Tuple[Squad, List[dict]]:
    request = squad.request_for(requester)
    if request is None:
        return squad, []
    if voter not in squad.members:
        logger.info("squad.vote_ignored", extra={"squad_id": squad.id, "event_type": "squad.vote_ignored"})
        return squad, []

    remaining = tuple(r for r in squad.pending_requests if r.user_name != requester)

    if vote == "deny":
        return (
            replace(squad, pending_requests=remaining),
            [ev.event(ev.SQUAD_REQUEST_DENIED, squadId=squad.id, userName=requester, deniedBy=voter)],
        )

    approvals = tuple(a for a in request.approvals if a in squad.members)
    if voter not in approvals:
        approvals += (voter,)
    if len(approvals) < approval_threshold(len(squad.members)):
        updated_request = replace(request, approvals=approvals)
        pending = tuple(updated_request if r.user_name == requester else r for r in squad.pending_requests)
        return replace(squad, pending_requests=pending), []

    if squad.is_full:
        return (
            replace(squad, pending_requests=remaining),
            [ev.event(ev.SQUAD_REQUEST_DROPPED, squadId=squad.id, userName=requester, reason="squad_full")],
        )

    return (
        replace(squad, pending_requests=remaining, members=squad.members + (requester,)),
        [ev.event(ev.SQUAD_MEMBER_JOINED, squadId=squad.id, userName=requester, approvals=list(approvals))],
    )


# Kick votes -------------------------------------------------------

def kick_threshold(member_count: int) -> int:
    # ceil(n/2): a strict majority for odd sizes, exactly half for even sizes
    return math.ceil(member_count * 0.5)


def vote_to_kick(squad: Squad, target: str, voter: str) -> Tuple[Squad, List[dict]]:
    if target not in squad.members or voter not in squad.members or voter == target:
        return squad, []

    existing = squad.kick_vote_for(target) or KickVote(target=target)
    voters = tuple(v for v in existing.voters if v in squad.members)
    if voter not in voters:
        voters += (voter,)
    others = tuple(v for v in squad.active_kick_votes if v.target != target)

    if len(voters) >= kick_threshold(len(squad.members)):
        removed = _without_ballots(replace(squad, active_kick_votes=others), target)
        members = tuple(m for m in squad.members if m != target)
        return (
            replace(removed, members=members),
            [ev.event(ev.SQUAD_MEMBER_REMOVED, squadId=squad.id, userName=target, voters=list(voters))],
        )

    return replace(squad, active_kick_votes=others + (replace(existing, voters=voters),)), []


def _without_ballots(squad: Squad, member: str) -> Squad:
    """Drop a departing member's approvals and kick votes."""
    requests = tuple(
        replace(r, approvals=tuple(a for a in r.approvals if a != member)) for r in squad.pending_requests
    )
    kick_votes = tuple(
        replace(v, voters=tuple(name for name in v.voters if name != member)) for v in squad.active_kick_votes
    )
    return replace(squad, pending_requests=requests, active_kick_votes=kick_votes)


# Daily quests -----------------------------------------------------

def _quest_indices(squad_id: str, day: date) -> List[int]:
    seed = f"{squad_id}:{day.isoformat()}"
    hash_val = int(hashlib.sha256(seed.encode()).hexdigest(), 16)
    indices: List[int] = []
    while len(indices) < min(QUESTS_PER_DAY, len(QUEST_CATALOG)):
        candidate = hash_val % len(QUEST_CATALOG)
        if candidate not in indices:
            indices.append(candidate)
        hash_val //= len(QUEST_CATALOG)
        if hash_val == 0:
            hash_val = int(hashlib.sha256(f"{seed}:{len(indices)}".encode()).hexdigest(), 16)
    return indices


def ensure_daily_quests(squad: Squad, today: date) -> Squad:
    """Regenerate the quest set once per calendar day."""
    stamp = today.isoformat()
    if squad.daily_quests and squad.daily_quests.date == stamp:
        return squad
    quests = tuple(
        SquadQuest(id=f"{stamp}-{index}", title=QUEST_CATALOG[index][0], points=QUEST_CATALOG[index][1])
        for index in _quest_indices(squad.id, today)
    )
    return replace(squad, daily_quests=DailyQuests(date=stamp, quests=quests))


def complete_quest(squad: Squad, quest_id: str, claimant: str) -> Tuple[Squad, List[dict]]:
    """First claim wins; a completed quest cannot be completed again."""
    if not squad.daily_quests:
        return squad, []
    quest = next((q for q in squad.daily_quests.quests if q.id == quest_id), None)
    if quest is None or quest.is_completed:
        return squad, []

    done = replace(quest, is_completed=True, completed_by=claimant)
    quests = tuple(done if q.id == quest_id else q for q in squad.daily_quests.quests)
    updated = add_momentum(replace(squad, daily_quests=replace(squad.daily_quests, quests=quests)), quest.points)
    return updated, [
        ev.event(ev.SQUAD_QUEST_COMPLETED, squadId=squad.id, questId=quest_id, completedBy=claimant, points=quest.points)
    ]


# Matching & ripples -----------------------------------------------

def find_matching_squads(
    profile: Optional[UserProfile], squads: Iterable[Squad], max_results: int = MAX_SUGGESTIONS
) -> List[Squad]:
    """Open squads whose goal identity the user shares, highest momentum first."""
    if profile is None or profile.squad_id:
        return []
    identities = set(profile.selected_identities)
    candidates = [s for s in squads if not s.is_full and s.goal_identity in identities]
    candidates.sort(key=lambda s: s.shared_momentum, reverse=True)
    return candidates[:max_results]


def record_ripple(squad: Squad, user_name: str, habit: Habit, at: datetime) -> Ripple:
    return Ripple(
        id=str(uuid4()),
        squad_id=squad.id,
        user_name=user_name,
        habit_title=habit.title,
        identity_tag=habit.identity_tag,
        streak=habit.streak,
        created_at=at,
    )


def bound_feed(ripples: Sequence[Ripple], limit: int = 20) -> List[Ripple]:
    """Newest first, at most `limit` entries."""
    ordered = sorted(ripples, key=lambda r: r.created_at, reverse=True)
    return ordered[:limit]
