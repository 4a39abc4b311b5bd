"""Tests for SQLite session persistence."""

from keysprint.models import DifficultyLevel, NoteMetric, PatternAttempt, SessionRecord
from keysprint.progress import ProgressStore


def _record(session_id, started_at, notes=None, total=1):
    return SessionRecord(
        session_id=session_id,
        started_at=started_at,
        duration_ms=60_000.0,
        total_patterns=total,
        correct_patterns=total,
        accuracy=1.0,
        average_response_time_ms=500.0,
        note_metrics=notes or {},
        attempts=[PatternAttempt("p1", DifficultyLevel.TRIAD, True, [60, 64, 67], 500.0, started_at)],
        fastest_time_ms=500.0,
        slowest_time_ms=500.0,
    )


def test_save_then_update_keeps_one_row(tmp_path):
    store = ProgressStore(tmp_path / "progress.db")
    store.save_or_update_session(_record("s1", 1.0, total=1))
    store.save_or_update_session(_record("s1", 1.0, total=4))
    rows = store.get_recent_sessions()
    assert len(rows) == 1
    assert rows[0]["total_patterns"] == 4
    assert rows[0]["attempts"][0]["difficulty"] == "triad"
    store.close()


def test_recent_sessions_newest_first(tmp_path):
    store = ProgressStore(tmp_path / "progress.db")
    for i in range(4):
        store.save_or_update_session(_record(f"s{i}", float(i)))
    rows = store.get_recent_sessions(limit=2)
    assert [r["session_id"] for r in rows] == ["s3", "s2"]
    store.close()


def test_note_performance_merges_sessions_by_attempt_weight(tmp_path):
    store = ProgressStore(tmp_path / "progress.db")
    store.save_or_update_session(_record("a", 1.0, {60: NoteMetric(60, 2, 2, 1.0, 300.0, 250.0)}))
    store.save_or_update_session(_record("b", 2.0, {
        60: NoteMetric(60, 1, 0, 0.0, 600.0, None),
        62: NoteMetric(62, 1, 1, 1.0, 100.0, 100.0),
    }))
    merged = store.get_note_performance()
    assert merged[60].attempts == 3
    assert merged[60].correct == 2
    assert merged[60].average_time_ms == 400.0
    assert merged[60].fastest_time_ms == 250.0
    assert merged[62].accuracy == 1.0
    store.close()


def test_reopening_keeps_data(tmp_path):
    path = tmp_path / "nested" / "progress.db"
    store = ProgressStore(path)
    store.save_or_update_session(_record("s1", 1.0))
    store.close()
    assert [r["session_id"] for r in ProgressStore(path).get_recent_sessions()] == ["s1"]
