from __future__ import annotations

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from momentum_backend.features.ai import service as ai
from momentum_backend.features.store.service import get_store

router = APIRouter()


class TranslateRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=4000)
    target_locale: str = Field(..., min_length=2, max_length=10)
    source_locale: Optional[str] = Field(None, min_length=2, max_length=10)


@router.get("/v1/review/weekly")
def weekly_review():
    return get_store().weekly_review()


@router.get("/v1/briefing/today")
def daily_briefing():
    """Greeting plus the habit to focus on; the pick becomes the priority habit."""
    return get_store().daily_briefing()


@router.post("/v1/translate")
def translate(body: TranslateRequest):
    """Falls back to the source text when translation is unavailable."""
    translated = ai.translate(body.text, body.target_locale, body.source_locale)
    return {"text": translated, "targetLocale": body.target_locale}
