"""AI content collaborators backed by Groq.

Every call is fallible and optional: when no GROQ_API_KEY is configured, the
daily quota is used up, an identical request is already in flight, or the model
returns something unusable, the caller gets a deterministic local fallback.
Nothing here mutates engine state.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import date
from typing import Dict, Optional, Sequence, Set, Tuple

import groq

from momentum_backend.core.config import settings
from momentum_backend.core.errors import ExternalServiceError, QuotaExceededError
from momentum_backend.features.ai.prompts import (
    BASE_PROMPT,
    BRIEFING_PROMPT,
    MICRO_VERSION_PROMPT,
    MISSION_PROMPT,
    TRANSLATE_PROMPT,
    WEEKLY_INSIGHT_PROMPT,
    language_name,
)
from momentum_backend.features.clock.dates import is_today, local_today
from momentum_backend.features.missions.tracker import clamp_target, template_mission_content
from momentum_backend.models.habit import Habit
from momentum_backend.models.mission import Mission

logger = logging.getLogger("momentum")

_lock = threading.Lock()
_client: Optional[groq.Groq] = None
_quota_day: Optional[date] = None
_quota_used = 0
_in_flight: Set[Tuple[str, str]] = set()
_translation_cache: Dict[Tuple[str, str], str] = {}


def reset_state() -> None:
    """Clear quota, in-flight keys, translation cache and the cached client (tests)."""
    global _client, _quota_day, _quota_used
    with _lock:
        _client = None
        _quota_day = None
        _quota_used = 0
        _in_flight.clear()
        _translation_cache.clear()


def _get_client() -> Optional[groq.Groq]:
    global _client
    if not settings.GROQ_API_KEY:
        return None
    if _client is None:
        _client = groq.Groq(api_key=settings.GROQ_API_KEY)
    return _client


def quota_remaining(today: Optional[date] = None) -> int:
    day = today or local_today()
    with _lock:
        used = _quota_used if _quota_day == day else 0
    return max(0, settings.AI_DAILY_QUOTA - used)


def _consume_quota(today: Optional[date] = None) -> None:
    """Count one call against today's quota; the counter resets when the calendar day changes."""
    global _quota_day, _quota_used
    day = today or local_today()
    with _lock:
        if _quota_day != day:
            _quota_day = day
            _quota_used = 0
        if _quota_used >= settings.AI_DAILY_QUOTA:
            raise QuotaExceededError(f"Daily AI quota of {settings.AI_DAILY_QUOTA} calls reached")
        _quota_used += 1


def _chat_json(prompt: str, *, kind: str, temperature: float = 0.7) -> dict:
    """Run one JSON-mode completion. Raises ExternalServiceError/QuotaExceededError."""
    client = _get_client()
    if client is None:
        raise ExternalServiceError("GROQ_API_KEY not configured")
    _consume_quota()
    try:
        response = client.chat.completions.create(
            messages=[
                {"role": "system", "content": BASE_PROMPT},
                {"role": "user", "content": prompt},
            ],
            model=settings.AI_MODEL,
            temperature=temperature,
            max_tokens=512,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content or ""
        data = json.loads(content)
    except (groq.GroqError, json.JSONDecodeError, IndexError, AttributeError) as exc:
        raise ExternalServiceError(f"{kind} generation failed: {exc}") from exc
    if not isinstance(data, dict):
        raise ExternalServiceError(f"{kind} generation returned {type(data).__name__}, expected object")
    logger.info("ai.call_succeeded", extra={"event_type": f"ai.{kind}"})
    return data


def _fallback(kind: str, exc: Exception) -> None:
    logger.warning(
        "ai.fallback_used",
        extra={"event_type": f"ai.{kind}", "error_code": getattr(exc, "code", "error"), "reason": str(exc)[:200]},
    )


# Missions ---------------------------------------------------------

def generate_mission(least: Habit, most: Habit, locale: Optional[str] = None) -> dict:
    prompt = MISSION_PROMPT.format(
        least=least.title,
        least_streak=least.streak,
        most=most.title,
        most_streak=most.streak,
        language=language_name(locale or settings.LOCALE),
    )
    fallback = template_mission_content(least, most)
    try:
        data = _chat_json(prompt, kind="mission")
    except (ExternalServiceError, QuotaExceededError) as exc:
        _fallback("mission", exc)
        return fallback
    return {
        "title": str(data.get("title") or fallback["title"]),
        "description": str(data.get("description") or fallback["description"]),
        "targetCompletions": clamp_target(data.get("targetCompletions")),
    }


# Daily briefing ---------------------------------------------------

def fallback_focus_habit(habits: Sequence[Habit], today: date) -> Optional[Habit]:
    """Longest live streak among habits not done today; first habit when all are at zero."""
    pending = [h for h in habits if not is_today(h.last_completed, today)]
    if not pending:
        return None
    return max(pending, key=lambda h: h.streak)


def fallback_briefing(user_name: str, habits: Sequence[Habit], today: date) -> dict:
    focus = fallback_focus_habit(habits, today)
    if focus is None:
        greeting = f"Everything is done for today, {user_name}. That's who you are now."
        return {"greeting": greeting, "mostImportantHabitId": None}
    if focus.streak > 0:
        greeting = f"Good to see you, {user_name}. Protect your {focus.streak}-day streak on '{focus.title}' today."
    else:
        greeting = f"Good to see you, {user_name}. Start today with '{focus.title}'."
    return {"greeting": greeting, "mostImportantHabitId": focus.id}


def generate_daily_briefing(
    user_name: str,
    habits: Sequence[Habit],
    mission: Optional[Mission] = None,
    locale: Optional[str] = None,
    today: Optional[date] = None,
) -> dict:
    day = today or local_today()
    fallback = fallback_briefing(user_name, habits, day)
    if not habits:
        return fallback
    summary = "; ".join(
        f"{h.id} | {h.title} | {h.streak} | {'yes' if is_today(h.last_completed, day) else 'no'}" for h in habits
    )
    prompt = BRIEFING_PROMPT.format(
        name=user_name,
        habits=summary,
        mission=mission.title if mission else "none",
        language=language_name(locale or settings.LOCALE),
    )
    try:
        data = _chat_json(prompt, kind="briefing")
    except (ExternalServiceError, QuotaExceededError) as exc:
        _fallback("briefing", exc)
        return fallback
    known_ids = {h.id for h in habits}
    habit_id = data.get("mostImportantHabitId")
    return {
        "greeting": str(data.get("greeting") or fallback["greeting"]),
        "mostImportantHabitId": habit_id if habit_id in known_ids else fallback["mostImportantHabitId"],
    }


# Micro versions ---------------------------------------------------

def fallback_micro_version(habit_title: str) -> dict:
    return {"title": f"2-minute version: {habit_title}"}


def generate_micro_version(habit_title: str, locale: Optional[str] = None) -> dict:
    prompt = MICRO_VERSION_PROMPT.format(title=habit_title, language=language_name(locale or settings.LOCALE))
    try:
        data = _chat_json(prompt, kind="micro_version")
    except (ExternalServiceError, QuotaExceededError) as exc:
        _fallback("micro_version", exc)
        return fallback_micro_version(habit_title)
    title = str(data.get("title") or "").strip()
    return {"title": title} if title else fallback_micro_version(habit_title)


# Translation ------------------------------------------------------

def translate(text: str, target_locale: str, source_locale: Optional[str] = None) -> str:
    """Translate `text`; the source text itself is the fallback."""
    source = source_locale or settings.LOCALE
    if not text or target_locale == source:
        return text
    key = (text, target_locale)
    with _lock:
        if key in _translation_cache:
            return _translation_cache[key]
        if key in _in_flight:
            logger.info("ai.translation_deduplicated", extra={"event_type": "ai.translate"})
            return text
        _in_flight.add(key)
    try:
        prompt = TRANSLATE_PROMPT.format(
            source=language_name(source), target=language_name(target_locale), text=text
        )
        try:
            data = _chat_json(prompt, kind="translate", temperature=0.2)
        except (ExternalServiceError, QuotaExceededError) as exc:
            _fallback("translate", exc)
            return text
        translated = str(data.get("text") or "").strip()
        if not translated:
            return text
        with _lock:
            _translation_cache[key] = translated
        return translated
    finally:
        with _lock:
            _in_flight.discard(key)


# Weekly insight ---------------------------------------------------

def fallback_weekly_insight(stats: dict) -> str:
    best_day = stats.get("bestDay") or "N/A"
    return (
        "There was an issue generating your AI insight. It seems your best day was "
        f"{best_day}. Try to replicate what made that day successful!"
    )


def generate_weekly_insight(stats: dict, locale: Optional[str] = None) -> str:
    prompt = WEEKLY_INSIGHT_PROMPT.format(
        total=stats.get("totalCompletions", 0),
        rate=stats.get("completionRate", 0),
        best_day=stats.get("bestDay") or "N/A",
        worst_day=stats.get("worstDay") or "N/A",
        top_habit=stats.get("mostConsistentHabit") or "None",
        language=language_name(locale or settings.LOCALE),
    )
    try:
        data = _chat_json(prompt, kind="weekly_insight")
    except (ExternalServiceError, QuotaExceededError) as exc:
        _fallback("weekly_insight", exc)
        return fallback_weekly_insight(stats)
    insight = str(data.get("insight") or "").strip()
    return insight or fallback_weekly_insight(stats)
