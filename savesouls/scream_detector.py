"""
Scream detection service
Feeds microphone amplitude windows through the adaptive-threshold detector
and raises the alarm on a confirmed scream
"""

import logging

from .audio_capture import AmplitudeSampler
from .config import PREF_SCREAM_ENABLED
from .detection.amplitude import AdaptiveThresholdDetector
from .engine.arbiter import TriggerSource
from .engine.resources import Resource
from .engine.worker import DetectionWorker

logger = logging.getLogger(__name__)


class ScreamDetectionService(DetectionWorker):
    OWNER = "scream_detector"
    RESOURCE = Resource.MICROPHONE
    PREF_KEY = PREF_SCREAM_ENABLED
    TRIGGER_SOURCE = TriggerSource.SCREAM

    def __init__(self, coordinator, broker, arbiter, preferences, notifier=None,
                 sampler=None, detector=None, **kwargs):
        super().__init__(coordinator, broker, arbiter, preferences, notifier, **kwargs)
        self.sampler = sampler or AmplitudeSampler()
        self.detector = detector or AdaptiveThresholdDetector()
        self.samples_processed = 0

    def _open_device(self):
        self.sampler.open()
        # Fresh streak for the new stream; an active lockout is kept
        self.detector.reset()

    def _close_device(self):
        self.sampler.close()

    def _detection_loop(self):
        """
        Main detection loop - runs in background thread
        """
        while self.is_running:
            sample = self.sampler.read(timeout=0.5)
            if sample is None:
                continue

            self.samples_processed += 1
            if self.detector.process(sample.rms, self.coordinator.now()):
                logger.info(f"Handing scream over to the alarm "
                            f"(floor {self.detector.background_floor:.0f})")
                self._fire()
                return

    def get_status(self):
        return {
            "is_running": self.is_running,
            "enabled": self.enabled,
            "samples_processed": self.samples_processed,
            "background_floor": self.detector.background_floor,
            "detections": self.detector.detections,
        }
