"""
One-way announcements to whatever presents state to the user
"""

import logging
import threading
from enum import Enum

logger = logging.getLogger(__name__)


class UiEvent(Enum):
    ALARM_STARTED = "alarm_started"
    ALARM_STOPPED = "alarm_stopped"
    LOCATION = "location"
    PHOTO_TAKEN = "photo_taken"
    COUNTDOWN_TICK = "countdown_tick"
    COUNTDOWN_CANCELLED = "countdown_cancelled"
    GESTURE_PROGRESS = "gesture_progress"
    GESTURE_RESET = "gesture_reset"
    DETECTOR_STATE = "detector_state"
    WALK_STARTED = "walk_started"
    WALK_TICK = "walk_tick"
    WALK_WARNING = "walk_warning"
    WALK_CHECKED_IN = "walk_checked_in"
    WALK_ENDED = "walk_ended"


class UiNotifier:
    """
    Fire-and-forget fan-out. A failing listener is logged and skipped.
    """

    def __init__(self):
        self._listeners = []
        self._lock = threading.Lock()

    def subscribe(self, listener):
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener):
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def announce(self, event, payload=None):
        payload = payload or {}
        logger.debug(f"UI event {event.value}: {payload}")
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, payload)
            except Exception as e:
                logger.error(f"UI listener failed on {event.value}: {e}")
