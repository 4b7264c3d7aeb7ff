"""
Video capture module for the SaveSouls gesture detector and evidence camera
"""

import logging
import threading
from dataclasses import dataclass

import cv2
import numpy as np

from .config import LUMA_STEP, ZONE_WIDTH_FRACTION, ZONE_HEIGHT_FRACTION
from .errors import ResourceUnavailable, TransientCaptureFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LumaReading:
    frame_avg: float
    zone_avg: float


def to_luma(frame):
    """Return the luma plane of a BGR or already-grayscale frame."""
    frame = np.asarray(frame)
    if frame.ndim == 3:
        return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    return frame


class LumaZoneSampler:
    """
    Averages frame brightness over the whole frame and over the upper-centre
    zone where a hand held towards the camera appears.

    The whole frame is sampled every 2*step pixels, the zone every step
    pixels; subsampling keeps this cheap enough to run on every frame.
    """

    def __init__(self, step=LUMA_STEP, zone_x=ZONE_WIDTH_FRACTION, zone_height=ZONE_HEIGHT_FRACTION):
        self.step = step
        self.zone_x = zone_x
        self.zone_height = zone_height

    def zone_bounds(self, width, height):
        """(x0, x1, y0, y1) of the sampled zone for a frame size"""
        x0 = int(width * self.zone_x[0])
        x1 = int(width * self.zone_x[1])
        y1 = int(height * self.zone_height)
        return x0, x1, 0, y1

    def sample(self, frame):
        luma = to_luma(frame)
        height, width = luma.shape[:2]

        full = luma[::self.step * 2, ::self.step * 2]
        frame_avg = float(full.mean()) if full.size else 128.0

        x0, x1, y0, y1 = self.zone_bounds(width, height)
        zone = luma[y0:y1:self.step, x0:x1:self.step]
        zone_avg = float(zone.mean()) if zone.size else 0.0

        return LumaReading(frame_avg=frame_avg, zone_avg=zone_avg)


class OpenCVCamera:
    """
    Single camera device opened through OpenCV

    open/capture/close may be called from different threads; the lock keeps
    release() from running while a read() is in progress.
    """

    def __init__(self, index=0, width=1280, height=720):
        self.index = index
        self.width = width
        self.height = height
        self.capture_device = None
        self._lock = threading.Lock()

    @property
    def is_open(self):
        return self.capture_device is not None

    def open(self):
        with self._lock:
            if self.capture_device is not None:
                return

            device = cv2.VideoCapture(self.index)
            if not device.isOpened():
                device.release()
                raise ResourceUnavailable(f"Camera {self.index} could not be opened")

            device.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            device.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
            self.capture_device = device
        logger.info(f"Camera {self.index} opened")

    def capture(self):
        """Grab one BGR frame."""
        with self._lock:
            device = self.capture_device
            if device is None:
                raise TransientCaptureFailure("Camera is not open")
            try:
                ok, frame = device.read()
            except cv2.error as e:
                raise TransientCaptureFailure(f"Camera {self.index} read failed: {e}") from e

        if not ok or frame is None:
            raise TransientCaptureFailure(f"Camera {self.index} returned no frame")
        return frame

    def close(self):
        with self._lock:
            device = self.capture_device
            if device is None:
                return
            self.capture_device = None
            device.release()
        logger.info(f"Camera {self.index} released")
