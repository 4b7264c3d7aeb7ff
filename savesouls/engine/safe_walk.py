"""
Safe Walk: a check-in deadline that raises the alarm when it lapses

While a walk is active the contacts get a start message, a location update
every share interval and a closing message. Checking in pushes the deadline
back by the full walk duration. Missing the deadline alerts the contacts and
triggers the alarm.
"""

import logging
from dataclasses import dataclass

from ..config import (
    WALK_MIN_MINUTES,
    WALK_MAX_MINUTES,
    WALK_SHARE_INTERVAL_SECONDS,
    WALK_TICK_SECONDS,
    WALK_WARNING_SECONDS,
)
from ..services.notifier import UiEvent
from .arbiter import TriggerSource
from .timers import HoldTimer

logger = logging.getLogger(__name__)


@dataclass
class WalkSession:
    deadline: float
    duration: float
    started_at: float
    active: bool = True
    check_ins: int = 0


def _with_location(text, label, location):
    if location is None:
        return text
    return f"{text}{label}{location.maps_url}"


class SafeWalkTimer:
    def __init__(self, coordinator, arbiter, alerts, notifier=None,
                 share_interval=WALK_SHARE_INTERVAL_SECONDS,
                 tick_interval=WALK_TICK_SECONDS,
                 warning_seconds=WALK_WARNING_SECONDS,
                 min_minutes=WALK_MIN_MINUTES, max_minutes=WALK_MAX_MINUTES):
        self.coordinator = coordinator
        self.arbiter = arbiter
        self.alerts = alerts
        self.notifier = notifier
        self.share_interval = share_interval
        self.tick_interval = tick_interval
        self.warning_seconds = warning_seconds
        self.min_minutes = min_minutes
        self.max_minutes = max_minutes

        self.session = None
        self._timer = None
        self._share_handle = None
        self._warned = False

    @property
    def is_active(self):
        return self.session is not None and self.session.active

    def _announce(self, event, payload=None):
        if self.notifier is not None:
            self.notifier.announce(event, payload)

    def start(self, duration_seconds):
        if self.is_active:
            raise RuntimeError("A safe walk is already active")
        minutes = duration_seconds / 60
        if not self.min_minutes <= minutes <= self.max_minutes:
            raise ValueError(f"Walk duration must be {self.min_minutes}-{self.max_minutes} minutes, "
                             f"got {minutes:g}")

        now = self.coordinator.now()
        self.session = WalkSession(deadline=now + duration_seconds,
                                   duration=duration_seconds, started_at=now)
        self._warned = False
        self._timer = HoldTimer(self.coordinator, duration_seconds, self.tick_interval,
                                on_tick=self._on_tick, on_complete=self._on_expired,
                                name="safe walk")
        self._timer.start()
        self._share_handle = self.coordinator.call_later(self.share_interval,
                                                         self._share_location)

        self.alerts.submit(lambda location: _with_location(
            f"🚶 Safe Walk STARTED. I'll be walking for {minutes:g} minutes. "
            "If you don't hear from me, please check in. ",
            "My location: ", location))
        self._announce(UiEvent.WALK_STARTED, {"duration": duration_seconds})
        logger.info(f"Safe walk started ({minutes:g} min)")
        return self.session

    def check_in(self):
        if not self.is_active:
            return False

        self._timer.restart()
        self._warned = False
        self.session.deadline = self.coordinator.now() + self.session.duration
        self.session.check_ins += 1

        self.alerts.submit(lambda location: _with_location(
            "✅ Safe Walk CHECK-IN: I'm safe! ", "Location: ", location))
        self._announce(UiEvent.WALK_CHECKED_IN, {"deadline": self.session.deadline})
        logger.info(f"Safe walk check-in #{self.session.check_ins}")
        return True

    def stop(self):
        if not self.is_active:
            return False

        self.session.active = False
        self._timer.cancel()
        if self._share_handle is not None:
            self._share_handle.cancel()
            self._share_handle = None

        self.alerts.submit(lambda location: _with_location(
            "🏠 Safe Walk ENDED — I have arrived safely! ", "Final location: ", location))
        self._announce(UiEvent.WALK_ENDED, {"check_ins": self.session.check_ins})
        logger.info("Safe walk ended")
        return True

    def _on_tick(self, tick):
        remaining = tick.remaining_ms / 1000
        self._announce(UiEvent.WALK_TICK, {"remaining_seconds": int(remaining)})
        if remaining < self.warning_seconds and not self._warned:
            self._warned = True
            logger.warning("Safe walk: 1 minute left, check in or SOS fires")
            self._announce(UiEvent.WALK_WARNING, {"remaining_seconds": int(remaining)})

    def _on_expired(self):
        if not self.is_active:
            return
        logger.warning("Safe walk expired with no check-in, raising the alarm")
        self.alerts.submit(lambda location: _with_location(
            "🆘 SOS AUTO-TRIGGERED! Safe Walk timer expired with no check-in. ",
            "Last location: ", location))
        self.arbiter.request_trigger(TriggerSource.SAFE_WALK_EXPIRY)
        self.stop()

    def _share_location(self):
        if not self.is_active:
            return
        self.alerts.submit(self._compose_update)
        self._share_handle = self.coordinator.call_later(self.share_interval,
                                                         self._share_location)

    @staticmethod
    def _compose_update(location):
        # Nothing is sent while the position is unknown
        if location is None:
            return None
        return f"📍 Safe Walk location update: {location.maps_url}"
