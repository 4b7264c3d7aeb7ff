"""
Hand gesture detection service

A palm held up close to the front camera brightens the upper-centre of the
frame. Each frame is reduced to a presence boolean on the worker thread;
debouncing and the 4 second hold run on the coordinator, and a completed
hold raises the alarm.
"""

import logging
import threading

from .config import (
    PREF_GESTURE_ENABLED,
    GESTURE_CAMERA_INDEX,
    GESTURE_HOLD_SECONDS,
    GESTURE_TICK_SECONDS,
    GESTURE_FRAME_INTERVAL_SECONDS,
)
from .detection.debounce import DebounceConfirmer, Edge
from .detection.presence import PresenceDetector
from .engine.arbiter import TriggerSource
from .engine.resources import Resource
from .engine.timers import HoldTimer
from .engine.worker import DetectionWorker
from .errors import TransientCaptureFailure
from .services.notifier import UiEvent
from .video_capture import LumaZoneSampler, OpenCVCamera

logger = logging.getLogger(__name__)


class GestureDetectionService(DetectionWorker):
    OWNER = "gesture_detector"
    RESOURCE = Resource.CAMERA
    PREF_KEY = PREF_GESTURE_ENABLED
    TRIGGER_SOURCE = TriggerSource.GESTURE

    def __init__(self, coordinator, broker, arbiter, preferences, notifier=None,
                 camera=None, sampler=None, presence=None, confirmer=None,
                 hold_seconds=GESTURE_HOLD_SECONDS, tick_seconds=GESTURE_TICK_SECONDS,
                 frame_interval=GESTURE_FRAME_INTERVAL_SECONDS, **kwargs):
        super().__init__(coordinator, broker, arbiter, preferences, notifier, **kwargs)
        self.camera = camera or OpenCVCamera(GESTURE_CAMERA_INDEX)
        self.sampler = sampler or LumaZoneSampler()
        self.presence = presence or PresenceDetector()
        self.confirmer = confirmer or DebounceConfirmer()
        self.frame_interval = frame_interval

        self.hold_timer = HoldTimer(
            coordinator, hold_seconds, tick_seconds,
            on_tick=self._on_hold_tick,
            on_complete=self._on_hold_complete,
            on_cancel=self._on_hold_cancel,
            name="gesture hold",
        )
        self.frames_processed = 0
        self._stop_event = threading.Event()
        self._run_id = 0

    def _open_device(self):
        self.camera.open()
        self.confirmer.reset()
        self._run_id += 1
        self._stop_event.clear()

    def _close_device(self):
        self._stop_event.set()
        self.hold_timer.cancel()
        self.camera.close()

    def _detection_loop(self):
        run_id = self._run_id
        while self.is_running:
            try:
                frame = self.camera.capture()
            except TransientCaptureFailure as e:
                logger.debug(f"Frame skipped: {e}")
                self._stop_event.wait(self.frame_interval)
                continue

            reading = self.sampler.sample(frame)
            present = self.presence.is_present(reading)
            self.frames_processed += 1
            self.coordinator.post(self._on_presence, present, run_id)
            self._stop_event.wait(self.frame_interval)

    # -------------------------------------------------------------------
    # Coordinator side
    # -------------------------------------------------------------------
    def _on_presence(self, present, run_id):
        # Frames from a stream that has since been closed are dropped
        if not self.is_running or run_id != self._run_id:
            return

        edge = self.confirmer.update(present)
        if edge is Edge.RISING:
            logger.info("Palm detected, hold for SOS")
            self.hold_timer.start()
        elif edge is Edge.FALLING:
            self.hold_timer.cancel()

    def _on_hold_tick(self, tick):
        if self.notifier is not None:
            self.notifier.announce(UiEvent.GESTURE_PROGRESS, {
                "progress": tick.progress_percent,
                "remaining_ms": tick.remaining_ms,
            })

    def _on_hold_cancel(self):
        logger.debug("Gesture released before the hold completed")
        if self.notifier is not None:
            self.notifier.announce(UiEvent.GESTURE_RESET, {})

    def _on_hold_complete(self):
        logger.warning("✋ Hand gesture held, raising the alarm")
        self._fire()

    def get_status(self):
        return {
            "is_running": self.is_running,
            "enabled": self.enabled,
            "frames_processed": self.frames_processed,
            "streak": self.confirmer.streak,
            "holding": self.hold_timer.is_active,
        }
