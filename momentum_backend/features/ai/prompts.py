"""Prompt templates for the habit coach content calls.

Every prompt asks for a single JSON object so responses can be validated field
by field; anything missing falls back to local templates.
"""

BASE_PROMPT = (
    "You are an identity-based habit coach. You speak to the user as the person "
    "they are becoming, never shame missed days, and keep every answer short and "
    "concrete. Always reply with one JSON object and nothing else."
)

LOCALE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "pt": "Portuguese",
    "it": "Italian",
    "ja": "Japanese",
}

MISSION_PROMPT = (
    "The user is consistent with '{most}' (streak {most_streak}) but struggling with "
    "'{least}' (streak {least_streak}). Create a one-week mission that uses the "
    "strong habit's momentum to lift the weak one. Respond in {language} as JSON: "
    '{{"title": str, "description": str, "targetCompletions": int between 3 and 5}}.'
)

BRIEFING_PROMPT = (
    "User: {name}. Habits (id | title | streak | done today): {habits}. "
    "Active mission: {mission}. Write a one-sentence morning greeting and pick the "
    "single most important habit for today. Respond in {language} as JSON: "
    '{{"greeting": str, "mostImportantHabitId": str}}.'
)

MICRO_VERSION_PROMPT = (
    "The user is low on energy today. Shrink the habit '{title}' into a version "
    "that takes under two minutes. Respond in {language} as JSON: "
    '{{"title": str}}.'
)

TRANSLATE_PROMPT = (
    "Translate the following text from {source} to {target}. Keep the tone. "
    'Respond as JSON: {{"text": str}}.\n\n{text}'
)

WEEKLY_INSIGHT_PROMPT = (
    "Weekly stats: {total} completions, {rate}% completion rate, best day {best_day}, "
    "worst day {worst_day}, most consistent habit '{top_habit}'. Give one encouraging, "
    "specific insight for next week in {language} as JSON: "
    '{{"insight": str}}.'
)


def language_name(locale: str) -> str:
    return LOCALE_NAMES.get((locale or "en").split("-")[0].lower(), locale or "English")
