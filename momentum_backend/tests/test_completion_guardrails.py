"""
Completion processor guardrails.

Covers the same-day idempotency rule, the comeback path, milestone shields,
mission rewards, identity XP, and squad momentum fan-out.
"""

from datetime import date, datetime, timedelta, timezone

from momentum_backend.features.completions.processor import complete
from momentum_backend.features.squads.service import create_squad
from momentum_backend.features.streaks.evaluator import evaluate_rollover
from momentum_backend.models import events as ev
from momentum_backend.models.habit import ComebackChallenge, Habit
from momentum_backend.models.identity import UserIdentity
from momentum_backend.models.mission import Mission

TODAY = date(2024, 3, 4)
NOW = datetime(2024, 3, 4, 18, 30, tzinfo=timezone.utc)


def days_ago(n: int) -> datetime:
    return NOW - timedelta(days=n)


def habit(**overrides) -> Habit:
    fields = {"id": "h1", "title": "Read", "identity_tag": "The Learner"}
    fields.update(overrides)
    return Habit(**fields)


def types(emitted):
    return [e["type"] for e in emitted]


class TestIdempotency:
    def test_second_completion_same_day_is_noop(self):
        first = complete(habit(), now=NOW)
        second = complete(first.habit, now=NOW + timedelta(hours=2))

        assert second.habit == first.habit
        assert second.events == []
        assert not second.applied

    def test_noop_leaves_collaborators_untouched(self):
        identities = {"The Learner": UserIdentity(name="The Learner", level=1, xp=40)}
        squad = create_squad("Readers", "The Learner", "ana", squad_id="s1")
        done = habit(streak=1, longest_streak=1, last_completed=NOW - timedelta(hours=1))

        outcome = complete(done, now=NOW, identities=identities, squad=squad, member_name="ana")
        assert outcome.identity == identities["The Learner"]
        assert outcome.squad is squad
        assert outcome.ripple is None


class TestNormalPath:
    def test_first_completion_starts_streak(self):
        outcome = complete(habit(), now=NOW)
        assert outcome.habit.streak == 1
        assert outcome.habit.longest_streak == 1
        assert outcome.habit.completions == (NOW,)
        assert outcome.habit.last_completed == NOW
        assert types(outcome.events) == [ev.STREAK_INCREMENTED]

    def test_completed_yesterday_increments(self):
        h = habit(streak=3, longest_streak=3, last_completed=days_ago(1), completions=(days_ago(1),))
        outcome = complete(h, now=NOW)
        assert outcome.habit.streak == 4
        assert outcome.habit.completions == (days_ago(1), NOW)

    def test_gap_restarts_at_one(self):
        h = habit(streak=0, longest_streak=9, last_completed=days_ago(4))
        outcome = complete(h, now=NOW)
        assert outcome.habit.streak == 1
        assert outcome.habit.longest_streak == 9

    def test_micro_version_cleared(self):
        h = habit(micro_version="Read one page")
        assert complete(h, now=NOW).habit.micro_version is None

    def test_no_shield_at_six(self):
        h = habit(streak=5, longest_streak=5, last_completed=days_ago(1))
        outcome = complete(h, now=NOW)
        assert outcome.habit.streak == 6
        assert outcome.habit.momentum_shields == 0
        assert ev.SHIELD_EARNED not in types(outcome.events)

    def test_shield_granted_at_seven(self):
        h = habit(streak=6, longest_streak=6, last_completed=days_ago(1), momentum_shields=1)
        outcome = complete(h, now=NOW)
        assert outcome.habit.streak == 7
        assert outcome.habit.momentum_shields == 2
        assert ev.SHIELD_EARNED in types(outcome.events)

    def test_milestone_shield_capped_at_three(self):
        h = habit(streak=13, longest_streak=13, last_completed=days_ago(1), momentum_shields=3)
        outcome = complete(h, now=NOW)
        assert outcome.habit.streak == 14
        assert outcome.habit.momentum_shields == 3
        assert ev.SHIELD_EARNED not in types(outcome.events)


class TestComebackPath:
    def test_full_comeback_scenario(self):
        start = habit(streak=5, longest_streak=5, momentum_shields=0, last_completed=days_ago(2))

        rolled, _ = evaluate_rollover(start, TODAY)
        assert rolled.comeback_challenge == ComebackChallenge(True, 3, 5)
        assert rolled.streak == 0

        day1 = complete(rolled, now=NOW)
        assert day1.habit.comeback_challenge.days_remaining == 2
        assert day1.habit.streak == 0
        assert day1.habit.completions == (NOW,)
        assert types(day1.events) == [ev.COMEBACK_PROGRESSED]

        tomorrow = NOW + timedelta(days=1)
        rolled2, emitted = evaluate_rollover(day1.habit, TODAY + timedelta(days=1))
        assert emitted == []
        day2 = complete(rolled2, now=tomorrow)
        assert day2.habit.comeback_challenge.days_remaining == 1

        rolled3, _ = evaluate_rollover(day2.habit, TODAY + timedelta(days=2))
        day3 = complete(rolled3, now=NOW + timedelta(days=2))
        assert day3.habit.comeback_challenge is None
        assert day3.habit.streak == 6
        assert day3.habit.longest_streak == 6
        assert types(day3.events) == [ev.COMEBACK_RESOLVED]

    def test_resolution_keeps_higher_longest(self):
        challenge = ComebackChallenge(is_active=True, days_remaining=1, original_streak=4)
        h = habit(streak=0, longest_streak=20, last_completed=days_ago(1), comeback_challenge=challenge)
        outcome = complete(h, now=NOW)
        assert outcome.habit.streak == 5
        assert outcome.habit.longest_streak == 20


class TestMissionProgress:
    def mission(self, **overrides) -> Mission:
        fields = {
            "id": "m1",
            "habit_id": "h1",
            "title": "Boost",
            "description": "",
            "target_completions": 3,
            "created_on": TODAY - timedelta(days=2),
        }
        fields.update(overrides)
        return Mission(**fields)

    def test_progress_on_target_habit(self):
        outcome = complete(habit(), now=NOW, mission=self.mission())
        assert outcome.mission.current_completions == 1
        assert not outcome.mission.is_completed

    def test_other_habit_does_not_progress(self):
        m = self.mission(habit_id="other")
        outcome = complete(habit(), now=NOW, mission=m)
        assert outcome.mission is m

    def test_completion_grants_shield_reward(self):
        m = self.mission(current_completions=2)
        outcome = complete(habit(momentum_shields=1), now=NOW, mission=m)
        assert outcome.mission.is_completed
        assert outcome.habit.momentum_shields == 2
        assert ev.MISSION_COMPLETED in types(outcome.events)

    def test_reward_respects_shield_cap(self):
        m = self.mission(current_completions=2)
        h = habit(streak=6, longest_streak=6, last_completed=days_ago(1), momentum_shields=2)
        outcome = complete(h, now=NOW, mission=m)
        # milestone takes it to 3, reward cannot exceed the cap
        assert outcome.habit.momentum_shields == 3


class TestIdentityXp:
    def test_xp_uses_post_update_streak(self):
        identities = {"The Learner": UserIdentity(name="The Learner", level=1, xp=0)}
        h = habit(streak=4, longest_streak=4, last_completed=days_ago(1))
        outcome = complete(h, now=NOW, identities=identities)
        assert outcome.identity.xp == 15  # 10 + streak 5

    def test_level_up_emits_event(self):
        identities = {"The Learner": UserIdentity(name="The Learner", level=1, xp=95)}
        outcome = complete(habit(), now=NOW, identities=identities)
        assert outcome.identity.level == 2
        assert outcome.identity.xp == 6
        assert ev.IDENTITY_LEVELED_UP in types(outcome.events)

    def test_unknown_identity_is_skipped(self):
        identities = {"The Athlete": UserIdentity(name="The Athlete")}
        outcome = complete(habit(), now=NOW, identities=identities)
        assert outcome.identity is None
        assert outcome.habit.streak == 1


class TestSquadMomentum:
    def test_completion_adds_momentum_and_ripple(self):
        squad = create_squad("Readers", "The Learner", "ana", squad_id="s1")
        h = habit(streak=2, longest_streak=2, last_completed=days_ago(1))
        outcome = complete(h, now=NOW, squad=squad, member_name="ana")

        assert outcome.squad.shared_momentum == 4  # 1 + new streak 3
        assert outcome.ripple.user_name == "ana"
        assert outcome.ripple.streak == 3
        assert outcome.ripple.squad_id == "s1"

    def test_no_squad_no_ripple(self):
        outcome = complete(habit(), now=NOW)
        assert outcome.squad is None
        assert outcome.ripple is None


def test_invariants_hold_over_a_long_sequence():
    h = habit(momentum_shields=1)
    day = TODAY
    pattern = [True, True, False, True, True, True, False, False, True, True, True, True, True, True, True, True, False]
    for done in pattern:
        h, _ = evaluate_rollover(h, day)
        if done:
            moment = datetime(day.year, day.month, day.day, 20, 0, tzinfo=timezone.utc)
            h = complete(h, now=moment).habit
        h.validate()
        day += timedelta(days=1)
