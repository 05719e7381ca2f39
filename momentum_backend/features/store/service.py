"""
Application store.

Owns the AppState for the single local user and is the only place engine
results are committed. Ordering guarantees:
- the day-boundary rollover runs on load and on the first access of each new
  calendar day, before any completion for that day is accepted
- every habit update is one read-modify-write under a re-entrant lock
Changed keys are written through the StateRepository; a failed write is logged
and the in-memory state stays authoritative.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence

from momentum_backend.core.config import settings
from momentum_backend.core.errors import ConflictError, NotFoundError, ValidationError
from momentum_backend.features.ai import service as ai
from momentum_backend.features.clock.dates import local_date, utc_now
from momentum_backend.features.completions.processor import CompletionOutcome, complete
from momentum_backend.features.habits.builder import build_habit, remove_habit as drop_habit
from momentum_backend.features.identity.progression import new_identity
from momentum_backend.features.missions import tracker
from momentum_backend.features.review.service import weekly_stats
from momentum_backend.features.squads import service as squad_service
from momentum_backend.features.store.repository import StateRepository
from momentum_backend.features.streaks.evaluator import rollover_all
from momentum_backend.models.habit import Habit
from momentum_backend.models.mission import Mission
from momentum_backend.models.squad import Ripple, Squad
from momentum_backend.models.state import AppState
from momentum_backend.models.user import UserProfile

logger = logging.getLogger("momentum")


class AppStore:
    def __init__(
        self,
        repository: Optional[StateRepository] = None,
        now_fn: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository or StateRepository()
        self.now_fn = now_fn
        self.state = AppState()
        self._lock = threading.RLock()
        self._loaded = False

    # Lifecycle ------------------------------------------------------

    def today(self) -> date:
        return local_date(self.now_fn())

    def load(self) -> List[dict]:
        """Read persisted state, drop stale data, then run today's rollover."""
        with self._lock:
            self.state = AppState.from_blobs(self.repository.load())
            self._loaded = True
            today = self.today()
            self.state.active_mission = tracker.expire(
                self.state.active_mission, today, settings.MISSION_TTL_DAYS
            )
            self.state.ripples = squad_service.bound_feed(self.state.ripples, settings.RIPPLE_FEED_LIMIT)
            return self._roll_if_new_day()

    def _ensure_current(self) -> List[dict]:
        if not self._loaded:
            return self.load()
        return self._roll_if_new_day()

    def _roll_if_new_day(self) -> List[dict]:
        today = self.today()
        if self.state.rollover_day == today:
            return []
        habits, emitted = rollover_all(self.state.habits, today)
        self.state.habits = habits
        self.state.rollover_day = today
        self.state.active_mission = tracker.expire(self.state.active_mission, today, settings.MISSION_TTL_DAYS)
        squad = self._user_squad()
        if squad is not None:
            self.state.put_squad(squad_service.ensure_daily_quests(squad, today))
        logger.info(
            "rollover.completed",
            extra={"event_type": "rollover.completed", "day": today.isoformat(), "events": len(emitted)},
        )
        self._persist("habits", "rollover_day", "active_mission", "squads")
        return emitted

    def rollover(self) -> List[dict]:
        with self._lock:
            return self._ensure_current()

    def _persist(self, *keys: str) -> None:
        blobs = {key: self.state.blob(key) for key in keys}
        if not self.repository.save_many(blobs):
            logger.debug("persistence.skipped", extra={"keys": list(keys)})

    # Profile --------------------------------------------------------

    def profile(self) -> Optional[UserProfile]:
        with self._lock:
            self._ensure_current()
            return self.state.user

    def save_profile(
        self,
        name: str,
        selected_identities: Sequence[str],
        identity_statements: Optional[Dict[str, str]] = None,
        locale: Optional[str] = None,
    ) -> UserProfile:
        if not name.strip():
            raise ValidationError("Name is required")
        with self._lock:
            self._ensure_current()
            current = self.state.user or UserProfile(name=name.strip(), locale=settings.LOCALE)
            identities = dict(current.identities)
            for identity_name in selected_identities:
                identities.setdefault(identity_name, new_identity(identity_name))
            self.state.user = replace(
                current,
                name=name.strip(),
                selected_identities=tuple(selected_identities),
                identity_statements=dict(identity_statements or current.identity_statements),
                identities=identities,
                onboarding_completed=True,
                locale=locale or current.locale,
            )
            self._persist("user")
            return self.state.user

    def _require_user(self) -> UserProfile:
        if self.state.user is None:
            raise ValidationError("Create a profile first")
        return self.state.user

    # Habits ---------------------------------------------------------

    def habits(self) -> List[Habit]:
        with self._lock:
            self._ensure_current()
            return list(self.state.habits)

    def habit(self, habit_id: str) -> Habit:
        with self._lock:
            self._ensure_current()
            found = self.state.habit(habit_id)
            if found is None:
                raise NotFoundError(f"Habit {habit_id} not found")
            return found

    def add_habit(self, title: str, *, description: str = "", identity_tag: str = "", cue: str = "") -> Habit:
        with self._lock:
            self._ensure_current()
            habit = build_habit(
                title, description=description, identity_tag=identity_tag, cue=cue
            )
            self.state.habits = self.state.habits + [habit]
            self._persist("habits")
            logger.info("habit.created", extra={"habit_id": habit.id, "event_type": "habit.created"})
            return habit

    def remove_habit(self, habit_id: str) -> None:
        with self._lock:
            self._ensure_current()
            remaining, pointer, removed = drop_habit(self.state.habits, habit_id, self.state.priority_habit_id)
            if not removed:
                raise NotFoundError(f"Habit {habit_id} not found")
            self.state.habits = remaining
            self.state.priority_habit_id = pointer
            if self.state.active_mission and self.state.active_mission.habit_id == habit_id:
                self.state.active_mission = None
            self._persist("habits", "priority_habit_id", "active_mission")
            logger.info("habit.removed", extra={"habit_id": habit_id, "event_type": "habit.removed"})

    def complete_habit(self, habit_id: str) -> CompletionOutcome:
        with self._lock:
            self._ensure_current()
            habit = self.state.habit(habit_id)
            if habit is None:
                raise NotFoundError(f"Habit {habit_id} not found")
            user = self.state.user
            squad = self._user_squad()
            outcome = complete(
                habit,
                now=self.now_fn(),
                identities=user.identities if user else None,
                mission=self.state.active_mission,
                squad=squad,
                member_name=user.name if user else None,
            )
            if not outcome.applied:
                return outcome

            outcome.habit.validate()
            self.state.put_habit(outcome.habit)
            changed = ["habits"]
            if user is not None and outcome.identity is not None:
                self.state.user = user.with_identity(outcome.identity)
                changed.append("user")
            if outcome.mission is not self.state.active_mission:
                self.state.active_mission = tracker.claim(outcome.mission)
                changed.append("active_mission")
            if outcome.squad is not None:
                self.state.put_squad(outcome.squad)
                changed.append("squads")
            if outcome.ripple is not None:
                self.state.ripples = squad_service.bound_feed(
                    [outcome.ripple] + self.state.ripples, settings.RIPPLE_FEED_LIMIT
                )
                changed.append("ripples")
            self._persist(*changed)
            return outcome

    def request_micro_version(self, habit_id: str) -> Habit:
        with self._lock:
            habit = self.habit(habit_id)
            locale = self.state.user.locale if self.state.user else None
        # the model call runs unlocked; the result is merged into the current record
        micro = ai.generate_micro_version(habit.title, locale)
        with self._lock:
            updated = replace(self.habit(habit_id), micro_version=micro["title"])
            self.state.put_habit(updated)
            self._persist("habits")
            return updated

    # Missions -------------------------------------------------------

    def active_mission(self) -> Optional[Mission]:
        with self._lock:
            self._ensure_current()
            return self.state.active_mission

    def ensure_mission(self) -> Optional[Mission]:
        """Generate a mission when none is active and there are enough habits."""
        with self._lock:
            self._ensure_current()
            if not tracker.should_generate(self.state.active_mission, self.state.habits):
                return self.state.active_mission
            least, most = tracker.pick_focus_habits(self.state.habits)
            locale = self.state.user.locale if self.state.user else None
            created_on = self.today()
        content = ai.generate_mission(least, most, locale)
        with self._lock:
            if not tracker.should_generate(self.state.active_mission, self.state.habits):
                return self.state.active_mission
            weak, strong = self.state.habit(least.id), self.state.habit(most.id)
            if weak is None or strong is None:
                logger.info("mission.focus_habit_removed", extra={"habit_id": least.id, "event_type": "mission.skipped"})
                return None
            self.state.active_mission = tracker.generate(
                weak, strong, created_on=created_on, generator=lambda *_: content
            )
            self._persist("active_mission")
            return self.state.active_mission

    # Squads ---------------------------------------------------------

    def _user_squad(self) -> Optional[Squad]:
        user = self.state.user
        return self.state.squad(user.squad_id) if user else None

    def squads(self) -> List[Squad]:
        with self._lock:
            self._ensure_current()
            return list(self.state.squads)

    def squad(self, squad_id: str) -> Squad:
        with self._lock:
            self._ensure_current()
            found = self.state.squad(squad_id)
            if found is None:
                raise NotFoundError(f"Squad {squad_id} not found")
            return found

    def create_squad(self, name: str, goal_identity: str) -> Squad:
        with self._lock:
            self._ensure_current()
            user = self._require_user()
            if user.squad_id:
                raise ConflictError("Already a member of a squad")
            squad = squad_service.ensure_daily_quests(squad_service.create_squad(name, goal_identity, user.name), self.today())
            self.state.put_squad(squad)
            self.state.user = replace(user, squad_id=squad.id)
            self._persist("squads", "user")
            logger.info("squad.created", extra={"squad_id": squad.id, "event_type": "squad.created"})
            return squad

    def suggested_squads(self) -> List[Squad]:
        with self._lock:
            self._ensure_current()
            return squad_service.find_matching_squads(self.state.user, self.state.squads)

    def _guard_single_squad(self, user_name: str, squad_id: str) -> None:
        user = self.state.user
        if user is not None and user.name == user_name and user.squad_id and user.squad_id != squad_id:
            raise ConflictError("Already a member of a squad")

    def request_to_join(self, squad_id: str, user_name: str, message: str = "") -> Squad:
        with self._lock:
            squad = self.squad(squad_id)
            self._guard_single_squad(user_name, squad_id)
            squad, _ = squad_service.request_to_join(squad, user_name, message)
            self.state.put_squad(squad)
            self._persist("squads")
            return squad

    def vote_on_request(self, squad_id: str, requester: str, voter: str, vote: str) -> tuple[Squad, List[dict]]:
        with self._lock:
            current = self.squad(squad_id)
            if vote == "approve":
                self._guard_single_squad(requester, squad_id)
            squad, emitted = squad_service.vote_on_request(current, requester, voter, vote)
            self.state.put_squad(squad)
            changed = ["squads"]
            user = self.state.user
            if user is not None and user.name == requester and requester in squad.members:
                self.state.user = replace(user, squad_id=squad.id)
                changed.append("user")
            self._persist(*changed)
            return squad, emitted

    def vote_to_kick(self, squad_id: str, target: str, voter: str) -> tuple[Squad, List[dict]]:
        with self._lock:
            squad, emitted = squad_service.vote_to_kick(self.squad(squad_id), target, voter)
            self.state.put_squad(squad)
            changed = ["squads"]
            user = self.state.user
            if user is not None and user.name == target and target not in squad.members:
                self.state.user = replace(user, squad_id=None)
                changed.append("user")
            self._persist(*changed)
            return squad, emitted

    def complete_quest(self, squad_id: str, quest_id: str, claimant: str) -> tuple[Squad, List[dict]]:
        with self._lock:
            squad = squad_service.ensure_daily_quests(self.squad(squad_id), self.today())
            squad, emitted = squad_service.complete_quest(squad, quest_id, claimant)
            self.state.put_squad(squad)
            self._persist("squads")
            return squad, emitted

    def ripples(self, limit: Optional[int] = None) -> List[Ripple]:
        with self._lock:
            self._ensure_current()
            return squad_service.bound_feed(self.state.ripples, limit or settings.RIPPLE_FEED_LIMIT)

    # Review & briefing ----------------------------------------------

    def weekly_review(self) -> dict:
        with self._lock:
            self._ensure_current()
            stats = weekly_stats(self.state.habits, self.today())
            locale = self.state.user.locale if self.state.user else None
        return {"stats": stats, "insight": ai.generate_weekly_insight(stats, locale)}

    def daily_briefing(self) -> dict:
        with self._lock:
            self._ensure_current()
            user = self.state.user
            habits = list(self.state.habits)
            mission = self.state.active_mission
            today = self.today()
        briefing = ai.generate_daily_briefing(
            user.name if user else "there",
            habits,
            mission,
            user.locale if user else None,
            today=today,
        )
        with self._lock:
            pick = briefing.get("mostImportantHabitId")
            if pick is not None and self.state.habit(pick) is None:
                pick = None
                briefing = dict(briefing, mostImportantHabitId=None)
            if pick != self.state.priority_habit_id:
                self.state.priority_habit_id = pick
                self._persist("priority_habit_id")
            return briefing


_store: Optional[AppStore] = None
_store_lock = threading.Lock()


def get_store() -> AppStore:
    global _store
    with _store_lock:
        if _store is None:
            _store = AppStore()
        return _store


def set_store(store: Optional[AppStore]) -> None:
    """Swap the process-wide store (tests)."""
    global _store
    with _store_lock:
        _store = store
