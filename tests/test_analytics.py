"""Tests for session analytics."""

import json
import logging

from conftest import FakeClock
from keysprint.analytics import SessionAnalytics
from keysprint.models import DifficultyLevel, PatternAttempt


def _attempt(pid, correct, time_ms, difficulty=DifficultyLevel.SINGLE_NOTE, notes=(60,), ts=0.0):
    return PatternAttempt(
        pattern_id=pid,
        difficulty=difficulty,
        correct=correct,
        midi_notes=list(notes),
        attempt_time_ms=time_ms,
        timestamp=ts,
    )


def _analytics():
    return SessionAnalytics(clock=FakeClock(10_000.0))


def test_pattern_metrics_track_best_worst_and_average():
    analytics = _analytics()
    for t in (1000.0, 500.0, 1201.0):
        analytics.track(_attempt("p1", True, t))
    metric = analytics.pattern_metrics("p1")
    assert metric.attempts == 3
    assert metric.best_time_ms == 500.0
    assert metric.worst_time_ms == 1201.0
    assert metric.average_time_ms == 900.33
    assert analytics.pattern_metrics("missing") is None


def test_flat_times_at_coin_flip_accuracy_is_a_plateau():
    analytics = _analytics()
    for i, t in enumerate([1480, 1510, 1495, 1505, 1490]):
        analytics.track(_attempt("p1", i % 2 == 0, float(t)))
    progress = analytics.get_pattern_progress("p1")
    assert progress.plateau


def test_getting_faster_is_improving_not_plateau():
    analytics = _analytics()
    for t in (3000.0, 3000.0, 1000.0, 1000.0, 900.0):
        analytics.track(_attempt("p1", True, t))
    progress = analytics.get_pattern_progress("p1")
    assert progress.improving
    assert progress.time_improvement > 0.6
    assert not progress.plateau


def test_few_attempts_never_plateau():
    analytics = _analytics()
    analytics.track(_attempt("p1", True, 1000.0))
    progress = analytics.get_pattern_progress("p1")
    assert progress.attempts == 1
    assert not progress.plateau
    assert analytics.get_pattern_progress("missing") is None


def test_problem_slow_and_weak_note_queries():
    analytics = _analytics()
    analytics.track(_attempt("bad", False, 2500.0, notes=(61,)))
    analytics.track(_attempt("bad", False, 2500.0, notes=(61,)))
    analytics.track(_attempt("bad", True, 2600.0, notes=(61,)))
    analytics.track(_attempt("meh", True, 3500.0, notes=(62,)))
    analytics.track(_attempt("meh", False, 3500.0, notes=(62,)))
    analytics.track(_attempt("good", True, 300.0))

    assert [m.pattern_id for m in analytics.get_problem_patterns()] == ["bad"]
    assert [m.pattern_id for m in analytics.get_problem_patterns(0.6)] == ["bad", "meh"]
    assert [m.pattern_id for m in analytics.get_slow_patterns()] == ["meh", "bad"]
    assert [m.midi for m in analytics.get_problematic_notes()] == [61]


def test_note_metrics_use_running_mean_and_fastest_correct_time():
    analytics = _analytics()
    analytics.track(_attempt("a", True, 400.0, notes=(60, 64)))
    analytics.track(_attempt("b", False, 200.0, notes=(60,)))
    notes = analytics.note_metrics()
    assert notes[60].attempts == 2
    assert notes[60].average_time_ms == 300.0
    assert notes[60].fastest_time_ms == 400.0
    assert notes[64].accuracy == 1.0


def test_summary_of_empty_session():
    summary = _analytics().get_session_summary()
    assert summary.total_patterns == 0
    assert summary.overall_accuracy == 0.0
    assert summary.average_response_time_ms == 0.0
    assert set(summary.difficulty_breakdown) == set(DifficultyLevel)


def test_summary_classifies_strengths_and_weaknesses():
    clock = FakeClock(0.0)
    analytics = SessionAnalytics(clock=clock)
    for i in range(5):
        analytics.track(_attempt(f"s{i}", True, 500.0))
        analytics.track(_attempt(f"t{i}", i == 0, 900.0, DifficultyLevel.TRIAD, (60, 64, 67)))
    clock.advance(60_000.0)

    summary = analytics.get_session_summary()
    assert summary.session_duration_ms == 60_000.0
    assert summary.total_patterns == 10
    assert summary.unique_patterns == 10
    assert summary.overall_accuracy == 0.6
    assert summary.average_response_time_ms == 700.0
    assert summary.strengths == [DifficultyLevel.SINGLE_NOTE]
    assert summary.weaknesses == [DifficultyLevel.TRIAD]
    assert summary.recommendations[0] == "Practice triads at a slower tempo to improve accuracy"


def test_export_import_round_trip_reproduces_summary():
    clock = FakeClock(0.0)
    source = SessionAnalytics(clock=clock)
    source.track(_attempt("p1", True, 800.0, ts=1.0))
    source.track(_attempt("p1", False, 1200.0, ts=2.0))
    source.track(_attempt("p2", True, 600.0, DifficultyLevel.INTERVAL, (60, 67), ts=3.0))
    clock.advance(5000.0)

    exported = json.loads(json.dumps(source.export_data()))
    restored = SessionAnalytics(clock=clock)
    restored.import_data(exported)

    assert restored.get_session_summary() == source.get_session_summary()
    assert restored.pattern_metrics("p1") == source.pattern_metrics("p1")
    assert restored.note_metrics() == source.note_metrics()
    assert restored.get_pattern_progress("p1") == source.get_pattern_progress("p1")


def test_import_warns_on_version_mismatch(caplog):
    analytics = _analytics()
    data = analytics.export_data()
    data["version"] = "0.9.0"
    with caplog.at_level(logging.WARNING, logger="keysprint.analytics"):
        SessionAnalytics(clock=FakeClock(0.0)).import_data(data)
    assert "0.9.0" in caplog.text


def test_reset_and_clear_pattern_data():
    analytics = _analytics()
    analytics.track(_attempt("p1", True, 100.0))
    analytics.track(_attempt("p2", True, 100.0))
    analytics.clear_pattern_data("p1")
    assert analytics.pattern_metrics("p1") is None
    assert analytics.get_session_summary().total_patterns == 2

    analytics.reset_session()
    assert analytics.get_session_summary().total_patterns == 0
    assert analytics.difficulty_metrics(DifficultyLevel.SINGLE_NOTE).attempts == 0


def test_session_record_collects_attempts():
    analytics = _analytics()
    analytics.track(_attempt("p1", True, 700.0, ts=2.0))
    analytics.track(_attempt("p2", False, 300.0, ts=1.0))
    record = analytics.build_session_record("abc")
    assert record.session_id == "abc"
    assert record.total_patterns == 2
    assert record.correct_patterns == 1
    assert record.accuracy == 0.5
    assert [a.pattern_id for a in record.attempts] == ["p2", "p1"]
    assert record.fastest_time_ms == 300.0
    assert record.slowest_time_ms == 700.0
    assert 60 in record.note_metrics
