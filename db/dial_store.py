"""SQLite persistence for the exploration dial position."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from config import settings
from feed.dial import DEFAULT_POSITION, ExplorationPosition

logger = logging.getLogger(__name__)

DIAL_POSITION_KEY = "crateDialPosition"


class CrateDialStore:
    """Keyed single-value storage for the user's dial position.

    Reads never fail on bad data: a missing row or an out-of-range value
    reads back as the mixed-crate default.
    """

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = Path(db_path or settings.DB_PATH)
        self._ensure_table()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False, timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_table(self):
        """Create the settings table when it does not already exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS crate_settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @property
    def position(self) -> ExplorationPosition:
        """Current dial position; defaults to mixed crate if never set."""
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute("SELECT value FROM crate_settings WHERE key=? LIMIT 1", (DIAL_POSITION_KEY,))
            row = cur.fetchone()
        finally:
            conn.close()
        if not row:
            return DEFAULT_POSITION
        position = ExplorationPosition.from_value(row["value"])
        if str(int(position)) != str(row["value"]).strip():
            logger.warning("[DIAL] ignoring invalid stored position value=%r", row["value"])
        return position

    def set_position(self, position: ExplorationPosition | int) -> ExplorationPosition:
        """Upsert the dial position; raises ``ValueError`` outside 1..5."""
        try:
            resolved = ExplorationPosition(int(position))
        except (TypeError, ValueError):
            raise ValueError(f"dial position must be between 1 and 5, got {position!r}") from None
        updated_at = datetime.now(timezone.utc).isoformat()
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO crate_settings (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at=excluded.updated_at
                """,
                (DIAL_POSITION_KEY, str(int(resolved)), updated_at),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("[DIAL] position=%s label=%s", int(resolved), resolved.label)
        return resolved

    def clear(self) -> None:
        """Delete the stored position so reads fall back to the default."""
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM crate_settings WHERE key=?", (DIAL_POSITION_KEY,))
            conn.commit()
        finally:
            conn.close()
