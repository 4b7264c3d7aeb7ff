"""
Cancellable SOS countdown used by the SOS command and the shake gesture
"""

import logging

from ..config import SOS_COUNTDOWN_SECONDS, SOS_COUNTDOWN_TICK_SECONDS
from ..services.notifier import UiEvent
from .arbiter import TriggerSource
from .timers import HoldTimer

logger = logging.getLogger(__name__)


class SosCountdown:
    def __init__(self, coordinator, arbiter, alerts, notifier=None,
                 duration=SOS_COUNTDOWN_SECONDS, tick_interval=SOS_COUNTDOWN_TICK_SECONDS):
        self.arbiter = arbiter
        self.alerts = alerts
        self.notifier = notifier
        self.source = TriggerSource.MANUAL
        self.timer = HoldTimer(
            coordinator, duration, tick_interval,
            on_tick=self._on_tick,
            on_complete=self._on_complete,
            on_cancel=self._on_cancel,
            name="sos countdown",
        )

    @property
    def is_counting(self):
        return self.timer.is_active

    def arm(self, source=TriggerSource.MANUAL):
        """Start the countdown. Returns False when it was refused."""
        if self.arbiter.lifecycle.is_active:
            logger.info("SOS countdown refused, alarm already active")
            return False
        if self.timer.is_active:
            logger.info("SOS countdown already running")
            return False
        if not self.alerts.has_contacts():
            logger.warning("SOS countdown refused, add emergency contacts first")
            return False

        self.source = source
        self.timer.start()
        logger.warning(f"SOS in {self.timer.duration:.0f}s ({source.value}), cancel to abort")
        return True

    def disarm(self):
        return self.timer.cancel()

    def _announce(self, event, payload):
        if self.notifier is not None:
            self.notifier.announce(event, payload)

    def _on_tick(self, tick):
        seconds_left = -(-tick.remaining_ms // 1000)
        self._announce(UiEvent.COUNTDOWN_TICK, {"seconds_left": seconds_left})

    def _on_cancel(self):
        logger.info("SOS countdown cancelled")
        self._announce(UiEvent.COUNTDOWN_CANCELLED, {})

    def _on_complete(self):
        self.arbiter.request_trigger(self.source)
