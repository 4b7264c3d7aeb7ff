"""
Evidence files: voice recordings and still photos
"""

import logging
import os
import threading

import cv2
import numpy as np
from scipy.io import wavfile

from ..config import SAMPLE_RATE, CHANNELS, JPEG_QUALITY
from ..errors import ResourceUnavailable, TransientCaptureFailure

logger = logging.getLogger(__name__)


class AudioRecording:
    """
    Handle for an in-progress microphone recording.
    stop() finalises the WAV file and is safe to call more than once.
    """

    def __init__(self, path, sample_rate=SAMPLE_RATE, channels=CHANNELS, device=None):
        self.path = path
        self.sample_rate = sample_rate
        self.channels = channels
        self.device = device

        self._blocks = []
        self._lock = threading.Lock()
        self.stream = None
        self.finalized = False

    def _callback(self, indata, frames, time_info, status):
        if status:
            logger.debug(f"Recorder status: {status}")
        with self._lock:
            self._blocks.append(indata.copy())

    def start(self):
        try:
            import sounddevice as sd
            self.stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                device=self.device,
                callback=self._callback,
            )
            self.stream.start()
        except Exception as e:
            self.stream = None
            raise ResourceUnavailable(f"Microphone unavailable for recording: {e}") from e
        logger.info(f"Voice recording started: {self.path}")

    def stop(self):
        if self.finalized:
            return self.path
        self.finalized = True

        if self.stream is not None:
            try:
                self.stream.stop()
                self.stream.close()
            except Exception as e:
                logger.warning(f"Error closing recorder stream: {e}")
            self.stream = None

        with self._lock:
            blocks, self._blocks = self._blocks, []

        if blocks:
            audio = np.concatenate(blocks)
        else:
            audio = np.zeros((0, self.channels), dtype=np.int16)
        wavfile.write(self.path, self.sample_rate, audio)
        logger.info(f"Voice recording saved: {self.path} ({len(audio) / self.sample_rate:.1f}s)")
        return self.path


class FileMediaSink:
    def __init__(self, sample_rate=SAMPLE_RATE, jpeg_quality=JPEG_QUALITY, input_device=None):
        self.sample_rate = sample_rate
        self.jpeg_quality = jpeg_quality
        self.input_device = input_device

    @staticmethod
    def _ensure_dir(path):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def write_audio(self, path):
        self._ensure_dir(path)
        recording = AudioRecording(path, sample_rate=self.sample_rate, device=self.input_device)
        recording.start()
        return recording

    def write_image(self, path, frame):
        self._ensure_dir(path)
        params = [int(cv2.IMWRITE_JPEG_QUALITY), int(self.jpeg_quality)]
        try:
            ok = cv2.imwrite(path, frame, params)
        except cv2.error as e:
            raise TransientCaptureFailure(f"Could not encode {path}: {e}") from e
        if not ok:
            raise TransientCaptureFailure(f"Could not write {path}")
        logger.debug(f"Photo saved: {path}")
