"""
Audio capture module for the SaveSouls scream detector
Converts the microphone stream into one RMS amplitude reading per 100ms window
"""

import logging
from dataclasses import dataclass
from queue import Queue, Empty, Full

import numpy as np

from .config import SAMPLE_RATE, CHANNELS, WINDOW_SIZE_MS, AUDIO_QUEUE_SIZE
from .errors import ResourceUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AmplitudeSample:
    """RMS amplitude of one audio window on the 16-bit PCM scale"""
    rms: float


def compute_rms(pcm):
    """
    Root-mean-square of a block of PCM samples
    """
    data = np.asarray(pcm, dtype=np.float64).ravel()
    if data.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(data * data)))


def iter_pcm_windows(pcm, sample_rate=SAMPLE_RATE, window_ms=WINDOW_SIZE_MS):
    """
    Yield one AmplitudeSample per window of an in-memory PCM array.
    A trailing partial window is still measured, as a short hardware read would be.
    """
    window_samples = max(1, int(sample_rate * window_ms / 1000))
    pcm = np.asarray(pcm)
    for start in range(0, len(pcm), window_samples):
        yield AmplitudeSample(compute_rms(pcm[start:start + window_samples]))


class AmplitudeSampler:
    """
    Opens the microphone and publishes amplitude samples on a thread-safe queue
    """

    def __init__(self, sample_rate=SAMPLE_RATE, window_ms=WINDOW_SIZE_MS, device=None):
        self.sample_rate = sample_rate
        self.channels = CHANNELS
        self.device = device
        self.window_samples = int(self.sample_rate * window_ms / 1000)

        # Decouples the PortAudio callback from the detector worker
        self.sample_queue = Queue(maxsize=AUDIO_QUEUE_SIZE)
        self.stream = None

    def audio_callback(self, indata, frames, time_info, status):
        """
        Callback function for audio stream - runs in the PortAudio thread
        """
        if status:
            logger.debug(f"Audio stream status: {status}")

        samples = indata[:, 0] if indata.ndim > 1 else indata
        try:
            self.sample_queue.put_nowait(AmplitudeSample(compute_rms(samples)))
        except Full:
            logger.debug("Amplitude queue full, dropping window")

    def open(self):
        """
        Open the input stream. Raises ResourceUnavailable if the microphone
        is busy, missing or not permitted.
        """
        if self.stream is not None:
            return

        try:
            # PortAudio is loaded on first use so hosts without it can still
            # run the offline parts of this module
            import sounddevice as sd
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                blocksize=self.window_samples,
                device=self.device,
                callback=self.audio_callback,
            )
            stream.start()
        except Exception as e:
            raise ResourceUnavailable(f"Microphone unavailable: {e}") from e

        self.stream = stream
        logger.info("Microphone opened for amplitude sampling")

    def read(self, timeout=0.5):
        """
        Block for the next amplitude sample. Returns None on timeout.
        """
        try:
            return self.sample_queue.get(timeout=timeout)
        except Empty:
            return None

    def close(self):
        """
        Stop the stream and drop pending samples
        """
        if self.stream is None:
            return

        try:
            self.stream.stop()
            self.stream.close()
        except Exception as e:
            logger.warning(f"Error closing microphone: {e}")
        finally:
            self.stream = None

        while True:
            try:
                self.sample_queue.get_nowait()
            except Empty:
                break

        logger.info("Microphone released")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
