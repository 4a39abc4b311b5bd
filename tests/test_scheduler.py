"""Tests for idle-time schedulers."""

import asyncio

from conftest import FakeClock
from keysprint.scheduler import CooperativeScheduler, IdleDeadline, IdleScheduler, TimerScheduler


def test_deadline_counts_down_in_milliseconds():
    clock = FakeClock(10.0)  # seconds here, like perf_counter
    deadline = IdleDeadline(5.0, clock)
    assert abs(deadline.time_remaining() - 5.0) < 1e-6
    clock.advance(0.002)
    assert abs(deadline.time_remaining() - 3.0) < 1e-6
    clock.advance(1.0)
    assert deadline.time_remaining() == 0.0


def test_schedulers_satisfy_protocol():
    assert isinstance(CooperativeScheduler(), IdleScheduler)
    assert isinstance(TimerScheduler(), IdleScheduler)


def test_cooperative_runs_in_fifo_order_and_honours_cancel():
    scheduler = CooperativeScheduler()
    ran = []
    scheduler.request_idle(lambda d: ran.append("a"))
    handle = scheduler.request_idle(lambda d: ran.append("b"))
    scheduler.request_idle(lambda d: ran.append("c"))
    scheduler.cancel(handle)
    assert scheduler.run_idle(50.0) == 2
    assert ran == ["a", "c"]
    assert scheduler.pending == 0


def test_cooperative_needs_a_positive_budget():
    scheduler = CooperativeScheduler()
    scheduler.request_idle(lambda d: None)
    assert scheduler.run_idle(0.0) == 0
    assert scheduler.run_idle(-3.0) == 0
    assert scheduler.pending == 1


def test_callbacks_requested_during_a_slice_wait_for_the_next():
    scheduler = CooperativeScheduler()
    ran = []

    def first(deadline):
        ran.append("first")
        scheduler.request_idle(lambda d: ran.append("second"))

    scheduler.request_idle(first)
    scheduler.run_idle(50.0)
    assert ran == ["first"]
    scheduler.run_idle(50.0)
    assert ran == ["first", "second"]


def test_failing_callback_does_not_stop_the_slice():
    scheduler = CooperativeScheduler()
    ran = []

    def broken(deadline):
        raise RuntimeError("boom")

    scheduler.request_idle(broken)
    scheduler.request_idle(lambda d: ran.append("ok"))
    scheduler.run_idle(50.0)
    assert ran == ["ok"]


def test_timer_scheduler_runs_on_the_event_loop():
    ran = []

    async def main():
        scheduler = TimerScheduler(delay_s=0.0, slice_budget_ms=50.0)
        scheduler.request_idle(lambda d: ran.append(d.time_remaining() > 0))
        handle = scheduler.request_idle(lambda d: ran.append("cancelled"))
        scheduler.cancel(handle)
        await asyncio.sleep(0.05)
        assert scheduler.pending == 0

    asyncio.run(main())
    assert ran == [True]
