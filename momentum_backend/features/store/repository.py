"""
Key-value persistence for application state.

One JSON blob per top-level collection in the `app_state` table. Failures are
logged and reported through the return value; the session carries on in memory.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from momentum_backend.core.database import app_state, create_all_tables, get_database_url, get_db_session

logger = logging.getLogger("momentum")

STATE_KEYS = (
    "user",
    "habits",
    "squads",
    "ripples",
    "chat_messages",
    "active_mission",
    "priority_habit_id",
    "teams",
    "team_challenges",
    "rollover_day",
)


class StateRepository:
    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = bool(get_database_url()) if enabled is None else enabled
        self._ready = False

    def _ensure_schema(self) -> bool:
        if self._ready:
            return True
        try:
            create_all_tables()
        except (SQLAlchemyError, ValueError) as exc:
            logger.error("persistence.schema_failed", extra={"error_code": "persistence_error", "reason": str(exc)[:200]})
            return False
        self._ready = True
        return True

    def load(self) -> Dict[str, Any]:
        """All stored blobs keyed by name; empty when disabled or unreadable."""
        if not self.enabled or not self._ensure_schema():
            return {}
        try:
            with get_db_session() as session:
                rows = session.execute(select(app_state.c.key, app_state.c.value)).all()
        except SQLAlchemyError as exc:
            logger.error("persistence.load_failed", extra={"error_code": "persistence_error", "reason": str(exc)[:200]})
            return {}
        blobs = {row.key: row.value for row in rows if row.key in STATE_KEYS}
        logger.info("persistence.loaded", extra={"event_type": "persistence.loaded", "keys": sorted(blobs)})
        return blobs

    def save(self, key: str, value: Any) -> bool:
        """Upsert one blob. False when disabled or the write failed."""
        if key not in STATE_KEYS:
            raise ValueError(f"Unknown state key: {key}")
        if not self.enabled or not self._ensure_schema():
            return False
        try:
            with get_db_session() as session:
                exists = session.execute(select(app_state.c.key).where(app_state.c.key == key)).first()
                if exists:
                    session.execute(app_state.update().where(app_state.c.key == key).values(value=value))
                else:
                    session.execute(app_state.insert().values(key=key, value=value))
        except SQLAlchemyError as exc:
            logger.error(
                "persistence.save_failed",
                extra={"error_code": "persistence_error", "state_key": key, "reason": str(exc)[:200]},
            )
            return False
        return True

    def save_many(self, blobs: Dict[str, Any]) -> bool:
        results = [self.save(key, value) for key, value in blobs.items()]
        return all(results)
