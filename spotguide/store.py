"""SQLite persistence for spot unlock state and session settings."""

import json
import sqlite3
from datetime import datetime
from typing import Optional

from .catalog import SpotCatalog
from .logger import Logger
from .models import SessionState, Spot


class StateStore:
    """SQLite database holding the full spot records and session scalars"""

    def __init__(self, db_path: str = "spotguide_state.db", logger: Optional[Logger] = None):
        self.db_path = db_path
        self.logger = logger or Logger()
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self._init_schema()

    def _init_schema(self):
        """Create database tables"""
        # Columns are nullable so damaged rows can be detected and skipped
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS spots (
                position INTEGER PRIMARY KEY,
                id INTEGER,
                latitude TEXT,
                longitude TEXT,
                name_primary TEXT,
                name_secondary TEXT,
                radius TEXT,
                description_primary TEXT,
                description_secondary TEXT,
                media_reference TEXT,
                unlocked INTEGER
            )
        """)
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS session (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self.conn.commit()

    def persist(self, catalog: SpotCatalog, session: Optional[SessionState] = None):
        """Replace the saved state with a snapshot of catalog and session"""
        spots = catalog.snapshot()
        now = datetime.now().isoformat()
        with self.conn:
            self.conn.execute("DELETE FROM spots")
            self.conn.executemany("""
                INSERT INTO spots (position, id, latitude, longitude, name_primary, name_secondary,
                                   radius, description_primary, description_secondary,
                                   media_reference, unlocked)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, [
                (i, s.id, s.latitude, s.longitude, s.name_primary, s.name_secondary,
                 s.radius, s.description_primary, s.description_secondary,
                 s.media_reference, int(s.unlocked))
                for i, s in enumerate(spots)
            ])
            if session is not None:
                self.conn.executemany(
                    "INSERT OR REPLACE INTO session (key, value, updated_at) VALUES (?, ?, ?)",
                    [(k, json.dumps(v), now) for k, v in session.to_dict().items()]
                )
        self.logger.debug("State saved", {"spots": len(spots), "unlocked": sum(1 for s in spots if s.unlocked)})

    def restore(self) -> tuple[list[Spot], SessionState]:
        """Load saved spots and session.

        Rows missing a required field are dropped. An empty result is
        logged as a warning, not raised.
        """
        cursor = self.conn.execute("""
            SELECT latitude, longitude, id, name_primary, name_secondary, radius,
                   description_primary, description_secondary, unlocked, media_reference
            FROM spots ORDER BY position
        """)
        columns = [c[0] for c in cursor.description]
        spots = []
        dropped = 0
        for row in cursor.fetchall():
            record = dict(zip(columns, row))
            try:
                spots.append(Spot.from_record(record, strict=True))
            except ValueError as e:
                dropped += 1
                self.logger.debug("Dropped damaged spot record", {"id": record.get("id"), "error": str(e)})

        if dropped:
            self.logger.log("Skipped damaged spot records", {"dropped": dropped})
        if spots:
            self.logger.log("Restored spots", {"count": len(spots)})
        else:
            self.logger.warning("No spot records restored")

        return spots, self._restore_session()

    def _restore_session(self) -> SessionState:
        values = {}
        for key, value in self.conn.execute("SELECT key, value FROM session").fetchall():
            try:
                values[key] = json.loads(value)
            except json.JSONDecodeError:
                self.logger.debug("Dropped damaged session value", {"key": key})
        return SessionState.from_dict(values)

    def reset_progress(self) -> int:
        """Mark every saved spot as locked. Returns the number of spots reset."""
        with self.conn:
            cursor = self.conn.execute("UPDATE spots SET unlocked = 0 WHERE unlocked != 0")
        return cursor.rowcount

    def close(self):
        self.conn.close()
