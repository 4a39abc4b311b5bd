"""Session history persistence with SQLite."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict
from pathlib import Path

from keysprint.models import NoteMetric, SessionRecord

DEFAULT_DB_PATH = Path.home() / ".keysprint" / "progress.db"


class ProgressStore:
    def __init__(self, db_path: Path = DEFAULT_DB_PATH) -> None:
        if str(db_path) != ":memory:":
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(db_path))
        self._init_db()

    def _init_db(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL UNIQUE,
                started_at REAL,
                duration_ms REAL,
                total_patterns INTEGER,
                correct_patterns INTEGER,
                accuracy REAL,
                average_response_time_ms REAL,
                fastest_time_ms REAL,
                slowest_time_ms REAL,
                note_metrics TEXT,
                attempts TEXT,
                saved_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self.conn.commit()

    def save_or_update_session(self, record: SessionRecord) -> None:
        """Insert the session, or overwrite the row with the same session id."""
        note_metrics = json.dumps({str(midi): asdict(m) for midi, m in record.note_metrics.items()})
        attempts = json.dumps([
            {**asdict(a), "difficulty": a.difficulty.value} for a in record.attempts
        ])
        self.conn.execute(
            """INSERT INTO sessions
               (session_id, started_at, duration_ms, total_patterns, correct_patterns, accuracy,
                average_response_time_ms, fastest_time_ms, slowest_time_ms, note_metrics, attempts)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(session_id) DO UPDATE SET
                started_at = excluded.started_at,
                duration_ms = excluded.duration_ms,
                total_patterns = excluded.total_patterns,
                correct_patterns = excluded.correct_patterns,
                accuracy = excluded.accuracy,
                average_response_time_ms = excluded.average_response_time_ms,
                fastest_time_ms = excluded.fastest_time_ms,
                slowest_time_ms = excluded.slowest_time_ms,
                note_metrics = excluded.note_metrics,
                attempts = excluded.attempts,
                saved_at = CURRENT_TIMESTAMP""",
            (
                record.session_id,
                record.started_at,
                record.duration_ms,
                record.total_patterns,
                record.correct_patterns,
                record.accuracy,
                record.average_response_time_ms,
                record.fastest_time_ms,
                record.slowest_time_ms,
                note_metrics,
                attempts,
            ),
        )
        self.conn.commit()

    def get_recent_sessions(self, limit: int = 30) -> list[dict]:
        cur = self.conn.execute(
            "SELECT * FROM sessions ORDER BY started_at DESC, id DESC LIMIT ?", (limit,)
        )
        cols = [d[0] for d in cur.description]
        rows = []
        for row in cur.fetchall():
            data = dict(zip(cols, row))
            data["note_metrics"] = json.loads(data["note_metrics"] or "{}")
            data["attempts"] = json.loads(data["attempts"] or "[]")
            rows.append(data)
        return rows

    def get_note_performance(self) -> dict[int, NoteMetric]:
        """Per-note metrics merged across every stored session.

        Average times are weighted by each session's attempt count.
        """
        merged: dict[int, NoteMetric] = {}
        for (raw,) in self.conn.execute("SELECT note_metrics FROM sessions"):
            for midi_str, m in json.loads(raw or "{}").items():
                midi = int(midi_str)
                total = merged.get(midi)
                if total is None:
                    total = merged[midi] = NoteMetric(midi)
                attempts = total.attempts + m["attempts"]
                if attempts:
                    total.average_time_ms = (
                        total.average_time_ms * total.attempts + m["average_time_ms"] * m["attempts"]
                    ) / attempts
                total.attempts = attempts
                total.correct += m["correct"]
                total.accuracy = total.correct / attempts if attempts else 0.0
                fastest = m.get("fastest_time_ms")
                if fastest is not None and (total.fastest_time_ms is None or fastest < total.fastest_time_ms):
                    total.fastest_time_ms = fastest
        return merged

    def close(self) -> None:
        self.conn.close()
