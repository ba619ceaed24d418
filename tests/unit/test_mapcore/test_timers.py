"""Tests for schedulers and the debouncer."""

import threading

from mapcore.timers import Debouncer, ManualScheduler, ThreadingScheduler


class TestManualScheduler:
    """Tests for the virtual clock."""

    def test_fires_when_due(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(0.5, calls.append, "a")

        scheduler.advance(0.4)
        assert calls == []
        scheduler.advance(0.1)
        assert calls == ["a"]
        assert scheduler.now() == 0.5

    def test_due_order_with_ties_in_schedule_order(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(0.3, calls.append, "late")
        scheduler.call_later(0.1, calls.append, "first")
        scheduler.call_later(0.1, calls.append, "second")

        assert scheduler.advance(1.0) == 3
        assert calls == ["first", "second", "late"]

    def test_cancel(self):
        scheduler = ManualScheduler()
        calls = []
        handle = scheduler.call_later(0.1, calls.append, "x")
        handle.cancel()

        scheduler.advance(1.0)
        assert calls == []
        assert handle.cancelled and not handle.fired
        assert scheduler.pending == 0

    def test_nested_scheduling_within_window(self):
        scheduler = ManualScheduler()
        calls = []

        def outer():
            calls.append("outer")
            scheduler.call_later(0.2, calls.append, "inner")

        scheduler.call_later(0.1, outer)
        scheduler.advance(0.5)
        assert calls == ["outer", "inner"]

    def test_callback_errors_are_contained(self):
        scheduler = ManualScheduler()
        calls = []

        def boom():
            raise ValueError("bad")

        scheduler.call_later(0.1, boom)
        scheduler.call_later(0.2, calls.append, "ok")
        scheduler.advance(1.0)
        assert calls == ["ok"]


class TestThreadingScheduler:

    def test_fires_on_timer_thread(self):
        done = threading.Event()
        handle = ThreadingScheduler().call_later(0.01, done.set)
        assert done.wait(2.0)
        assert handle.fired

    def test_cancel_before_fire(self):
        done = threading.Event()
        handle = ThreadingScheduler().call_later(0.2, done.set)
        handle.cancel()
        assert not done.wait(0.4)


class TestDebouncer:
    """Tests for burst collapsing."""

    def test_collapses_burst_latest_args_win(self):
        scheduler = ManualScheduler()
        calls = []
        debouncer = Debouncer(scheduler, 0.5, calls.append)

        for text in ["d", "de", "del", "delh", "delhi"]:
            debouncer.trigger(text)
            scheduler.advance(0.1)
        assert calls == []
        assert debouncer.pending

        scheduler.advance(0.5)
        assert calls == ["delhi"]
        assert not debouncer.pending

    def test_cancel(self):
        scheduler = ManualScheduler()
        calls = []
        debouncer = Debouncer(scheduler, 0.5, calls.append)
        debouncer.trigger("x")
        debouncer.cancel()
        scheduler.advance(1.0)
        assert calls == []

    def test_flush(self):
        scheduler = ManualScheduler()
        calls = []
        debouncer = Debouncer(scheduler, 0.5, calls.append)
        debouncer.trigger("now")

        assert debouncer.flush() is True
        assert calls == ["now"]
        scheduler.advance(1.0)
        assert calls == ["now"]
        assert debouncer.flush() is False
