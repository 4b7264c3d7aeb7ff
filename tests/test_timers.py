"""Tests for the Coordinator and HoldTimer."""

import threading
import time

import pytest

from savesouls.engine import Coordinator, HoldTimer


class TestCoordinator:
    """Test cases for Coordinator."""

    def test_runs_callbacks_when_due(self, clock, coordinator):
        """Callbacks run in due order once the clock reaches them."""
        calls = []
        coordinator.call_later(2.0, calls.append, "late")
        coordinator.call_later(1.0, calls.append, "early")

        assert coordinator.run_pending() == 0
        clock.advance(1.0)
        coordinator.run_pending()
        assert calls == ["early"]
        clock.advance(1.0)
        coordinator.run_pending()
        assert calls == ["early", "late"]

    def test_cancelled_handle_never_runs(self, clock, coordinator):
        calls = []
        handle = coordinator.call_later(1.0, calls.append, "x")
        handle.cancel()
        clock.advance(2.0)
        coordinator.run_pending()
        assert calls == []
        assert coordinator.pending == 0

    def test_failing_callback_does_not_stop_others(self, coordinator):
        """An exception in one callback is logged and the rest still run."""
        calls = []

        def boom():
            raise RuntimeError("boom")

        coordinator.post(boom)
        coordinator.post(calls.append, "after")
        coordinator.run_pending()
        assert calls == ["after"]

    def test_posted_from_callback_runs_same_pass(self, coordinator):
        calls = []
        coordinator.post(lambda: coordinator.post(calls.append, "nested"))
        assert coordinator.run_pending() == 2
        assert calls == ["nested"]

    def test_background_thread(self):
        """Started coordinator runs posted work on its own thread."""
        coordinator = Coordinator()
        done = threading.Event()
        seen = []
        coordinator.start()
        try:
            coordinator.post(lambda: (seen.append(coordinator.in_coordinator_thread()), done.set()))
            assert done.wait(2.0)
            assert seen == [True]
            assert not coordinator.in_coordinator_thread()
        finally:
            coordinator.stop()

    def test_background_timer(self):
        coordinator = Coordinator()
        done = threading.Event()
        coordinator.start()
        try:
            started = time.monotonic()
            coordinator.call_later(0.1, done.set)
            assert done.wait(2.0)
            assert time.monotonic() - started >= 0.09
        finally:
            coordinator.stop()


class TestHoldTimer:
    """Test cases for HoldTimer."""

    def make_timer(self, coordinator, duration=1.0, tick=0.25, **callbacks):
        self.ticks = []
        self.completed = 0
        self.cancelled = 0

        def on_complete():
            self.completed += 1

        def on_cancel():
            self.cancelled += 1

        return HoldTimer(
            coordinator, duration, tick,
            on_tick=callbacks.get("on_tick", self.ticks.append),
            on_complete=on_complete,
            on_cancel=on_cancel,
        )

    def test_rejects_non_positive_values(self, coordinator):
        with pytest.raises(ValueError):
            HoldTimer(coordinator, 0, 0.1)
        with pytest.raises(ValueError):
            HoldTimer(coordinator, 1.0, 0)

    def test_completes_once(self, coordinator, advance):
        """Ticks report progress and exactly one completion follows."""
        timer = self.make_timer(coordinator)
        assert timer.start()
        advance(2.0)

        assert self.completed == 1
        assert self.cancelled == 0
        assert not timer.is_active
        assert len(self.ticks) >= 3
        progress = [tick.progress_percent for tick in self.ticks]
        assert progress == sorted(progress)
        assert 25 <= progress[0] < 50

    def test_start_while_active_is_refused(self, coordinator, advance):
        timer = self.make_timer(coordinator)
        assert timer.start()
        advance(0.5)
        assert timer.start() is False
        advance(0.6)
        assert self.completed == 1

    def test_cancel_prevents_completion(self, coordinator, advance):
        """Cancelling just before the deadline still wins."""
        timer = self.make_timer(coordinator)
        timer.start()
        advance(0.95)
        assert timer.cancel()
        advance(2.0)

        assert self.completed == 0
        assert self.cancelled == 1
        assert timer.cancel() is False

    def test_cancel_from_inside_tick(self, coordinator, advance):
        """A tick callback may cancel its own timer."""
        timer = None
        seen = []

        def on_tick(tick):
            seen.append(tick)
            if len(seen) == 2:
                timer.cancel()

        timer = self.make_timer(coordinator, on_tick=on_tick)
        timer.start()
        advance(2.0)

        assert len(seen) == 2
        assert self.completed == 0
        assert self.cancelled == 1

    def test_restart_moves_deadline(self, clock, coordinator, advance):
        """restart() counts the full duration again from now."""
        timer = self.make_timer(coordinator)
        timer.start()
        advance(0.8)
        timer.restart()
        assert timer.deadline == pytest.approx(clock() + 1.0)

        advance(0.8)
        assert self.completed == 0
        advance(0.3)
        assert self.completed == 1

    def test_remaining(self, coordinator, advance):
        timer = self.make_timer(coordinator, duration=2.0, tick=0.5)
        assert timer.remaining() == 0.0
        timer.start()
        advance(0.5)
        assert timer.remaining() == pytest.approx(1.5)
