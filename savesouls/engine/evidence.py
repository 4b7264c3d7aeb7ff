"""
Periodic photo evidence while the alarm is active
"""

import datetime
import logging
import os
import threading
from dataclasses import dataclass

from ..config import CAPTURE_INTERVAL_SECONDS, MAX_PHOTOS, EVIDENCE_DIR
from ..errors import ResourceUnavailable, TransientCaptureFailure
from ..services.notifier import UiEvent
from .resources import Resource, Priority

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvidenceArtifact:
    path: str
    captured_at: datetime.datetime
    sequence_number: int


class EvidenceCaptureScheduler:
    """
    Takes one photo immediately, then one every `interval` seconds, until
    `max_photos` is reached or stop() is called. A busy camera or failed
    shot is retried on the next interval. Once stop() returns no further
    artifact is recorded and the camera lease is released.
    """

    def __init__(self, broker, camera, media, notifier=None, evidence_dir=EVIDENCE_DIR,
                 interval=CAPTURE_INTERVAL_SECONDS, max_photos=MAX_PHOTOS, owner="alarm"):
        self.broker = broker
        self.camera = camera
        self.media = media
        self.notifier = notifier
        self.evidence_dir = evidence_dir
        self.interval = interval
        self.max_photos = max_photos
        self.owner = owner

        self.artifacts = []
        self.session_id = None
        self.failures = 0

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread = None
        self._lease = None

    @property
    def is_running(self):
        return self._thread is not None and self._thread.is_alive()

    @property
    def photo_count(self):
        with self._lock:
            return len(self.artifacts)

    def start(self, session_id):
        if self.is_running:
            logger.warning("Evidence capture already running")
            return False

        with self._lock:
            self.artifacts = []
            self.failures = 0
            self.session_id = session_id
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._capture_loop,
                                        name="EvidenceCapture", daemon=True)
        self._thread.start()
        logger.info(f"Evidence capture started (every {self.interval}s, max {self.max_photos})")
        return True

    def stop(self):
        with self._lock:
            self._stop_event.set()
        thread = self._thread
        if thread and thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout=2.0)
        self._release_camera()
        logger.info(f"Evidence capture stopped, {self.photo_count} photo(s) saved")

    def _capture_loop(self):
        try:
            while not self._stop_event.is_set():
                if self.photo_count >= self.max_photos:
                    logger.info("Photo limit reached")
                    break
                self.capture_once()
                if self.photo_count >= self.max_photos:
                    logger.info("Photo limit reached")
                    break
                self._stop_event.wait(self.interval)
        finally:
            self._release_camera()

    def _ensure_camera(self):
        if self._lease is not None and self._lease.active:
            return
        # Alarm priority: gesture detection holding the camera is paused first
        self._lease = self.broker.acquire(Resource.CAMERA, self.owner, Priority.ALARM)
        try:
            self.camera.open()
        except Exception:
            self._lease.release()
            self._lease = None
            raise

    def _release_camera(self):
        try:
            self.camera.close()
        except Exception as e:
            logger.warning(f"Error closing evidence camera: {e}")
        if self._lease is not None:
            self._lease.release()
            self._lease = None

    def capture_once(self):
        """One capture attempt. Returns the new artifact or None."""
        if self._stop_event.is_set():
            return None
        try:
            self._ensure_camera()
            frame = self.camera.capture()
        except (ResourceUnavailable, TransientCaptureFailure) as e:
            self.failures += 1
            logger.warning(f"Photo capture failed, retrying in {self.interval}s: {e}")
            return None

        with self._lock:
            if self._stop_event.is_set() or len(self.artifacts) >= self.max_photos:
                return None
            sequence = len(self.artifacts) + 1
            timestamp = datetime.datetime.now()
            path = os.path.join(self.evidence_dir,
                                f"CAM_{timestamp.strftime('%Y%m%d_%H%M%S')}_{sequence}.jpg")
            try:
                self.media.write_image(path, frame)
            except Exception as e:
                self.failures += 1
                logger.warning(f"Photo save failed: {e}")
                return None
            artifact = EvidenceArtifact(path, timestamp, sequence)
            self.artifacts.append(artifact)

        logger.debug(f"Photo #{sequence} captured")
        if self.notifier is not None:
            self.notifier.announce(UiEvent.PHOTO_TAKEN, {"count": sequence, "path": path})
        return artifact
