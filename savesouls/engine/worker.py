"""
Shared lifecycle for the always-on detection workers

A worker holds its device at detector priority, samples it on a daemon
thread and hands confirmed detections to the coordinator. After it fires,
or after the alarm takes its device away, it stays down for the alarm
window plus a grace period and then comes back only if the user still has
it switched on.
"""

import logging
import threading

from ..config import ALARM_DURATION_SECONDS, RESTART_GRACE_SECONDS, DETECTOR_RETRY_SECONDS
from ..errors import ResourceUnavailable
from ..services.notifier import UiEvent
from .resources import Priority

logger = logging.getLogger(__name__)


class DetectionWorker:
    """
    Subclasses set OWNER, RESOURCE, PREF_KEY and TRIGGER_SOURCE and implement
    _open_device(), _close_device() and _detection_loop().
    """

    OWNER = None
    RESOURCE = None
    PREF_KEY = None
    TRIGGER_SOURCE = None

    def __init__(self, coordinator, broker, arbiter, preferences, notifier=None,
                 restart_delay=ALARM_DURATION_SECONDS + RESTART_GRACE_SECONDS,
                 retry_delay=DETECTOR_RETRY_SECONDS):
        self.coordinator = coordinator
        self.broker = broker
        self.arbiter = arbiter
        self.preferences = preferences
        self.notifier = notifier
        self.restart_delay = restart_delay
        self.retry_delay = retry_delay

        self.is_running = False
        self.detection_thread = None
        self.restart_handle = None
        self._lease = None
        self._lock = threading.RLock()

    @property
    def enabled(self):
        return bool(self.preferences.get(self.PREF_KEY, False))

    def _announce_state(self, reason):
        if self.notifier is not None:
            self.notifier.announce(UiEvent.DETECTOR_STATE, {
                "detector": self.OWNER,
                "running": self.is_running,
                "reason": reason,
            })

    # -------------------------------------------------------------------
    # User switch
    # -------------------------------------------------------------------
    def start(self):
        """
        Switch the detector on and persist the choice. Raises
        ResourceUnavailable when the device is busy or cannot be opened;
        the switch stays on so the next restart picks it up.
        """
        self.preferences.set(self.PREF_KEY, True)
        self._cancel_restart()
        self._begin()

    def stop(self):
        """Switch the detector off and persist the choice."""
        self.preferences.set(self.PREF_KEY, False)
        self._cancel_restart()
        self._halt("disabled")

    def shutdown(self):
        """Stop for application exit, leaving the persisted switch as it is."""
        self._cancel_restart()
        self._halt("shutdown")

    def resume(self):
        """Start only if the persisted switch is on. Used at application start."""
        if not self.enabled:
            return False
        try:
            self._begin()
        except ResourceUnavailable as e:
            logger.warning(f"{self.OWNER} could not resume: {e}")
            self._schedule_restart(self.retry_delay)
            return False
        return True

    # -------------------------------------------------------------------
    # Device and thread handling
    # -------------------------------------------------------------------
    def _begin(self):
        with self._lock:
            if self.is_running:
                return
            lease = self.broker.acquire(self.RESOURCE, self.OWNER, Priority.DETECTOR,
                                        on_revoked=self._on_revoked)
            try:
                self._open_device()
            except Exception:
                lease.release()
                raise
            self._lease = lease
            self.is_running = True
            self.detection_thread = threading.Thread(
                target=self._run, name=self.OWNER, daemon=True)
            self.detection_thread.start()

        logger.info(f"{self.OWNER} started")
        self._announce_state("started")

    def _run(self):
        try:
            self._detection_loop()
        except Exception:
            logger.exception(f"{self.OWNER} worker crashed")
            self._halt("error")

    def _halt(self, reason):
        with self._lock:
            if not self.is_running:
                return False
            self.is_running = False
            try:
                self._close_device()
            except Exception as e:
                logger.warning(f"Error closing {self.RESOURCE.value}: {e}")
            if self._lease is not None:
                self._lease.release()
                self._lease = None
            thread = self.detection_thread

        if thread and thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout=2.0)

        logger.info(f"{self.OWNER} stopped ({reason})")
        self._announce_state(reason)
        return True

    # -------------------------------------------------------------------
    # Firing and restart
    # -------------------------------------------------------------------
    def _fire(self):
        """Release the device, raise the alarm and come back after it."""
        self._halt("fired")
        self.coordinator.post(self.arbiter.request_trigger, self.TRIGGER_SOURCE)
        self._schedule_restart(self.restart_delay)

    def _on_revoked(self, lease):
        # Runs in the thread that took the device; never block on our worker here
        with self._lock:
            if self._lease is not lease:
                return
            self._lease = None
        logger.info(f"{self.RESOURCE.value} taken by the alarm, pausing {self.OWNER}")
        if self._halt("preempted"):
            self._schedule_restart(self.restart_delay)

    def _schedule_restart(self, delay):
        with self._lock:
            if self.restart_handle is not None:
                self.restart_handle.cancel()
            self.restart_handle = self.coordinator.call_later(delay, self._restart)
        logger.debug(f"{self.OWNER} restart scheduled in {delay:.0f}s")

    def _cancel_restart(self):
        with self._lock:
            if self.restart_handle is not None:
                self.restart_handle.cancel()
                self.restart_handle = None

    def _restart(self):
        with self._lock:
            self.restart_handle = None

        # The user may have switched it off while it was down
        self.preferences.reload()
        if not self.enabled:
            logger.info(f"{self.OWNER} left off, switch was disabled")
            return

        try:
            self._begin()
        except ResourceUnavailable as e:
            logger.warning(f"{self.OWNER} restart failed, retrying in {self.retry_delay:.0f}s: {e}")
            self._schedule_restart(self.retry_delay)

    def _open_device(self):
        raise NotImplementedError

    def _close_device(self):
        raise NotImplementedError

    def _detection_loop(self):
        raise NotImplementedError
