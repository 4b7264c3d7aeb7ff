"""
Alarm outputs: looping siren and haptic alert
"""

import logging

import numpy as np

from ..config import SIREN_FREQUENCIES, SIREN_PULSE_RATE, ALARM_VOLUME

logger = logging.getLogger(__name__)


def generate_siren(sample_rate=44100, duration=2.0, frequencies=SIREN_FREQUENCIES,
                   pulse_rate=SIREN_PULSE_RATE, volume=ALARM_VOLUME):
    """
    Two alternating tones switched `pulse_rate` times per second, as float32
    in [-volume, volume]. The duration is a whole number of pulses so the
    buffer loops without a click.
    """
    t = np.arange(int(sample_rate * duration)) / sample_rate
    gate = np.sin(2 * np.pi * pulse_rate * t) > 0

    low, high = frequencies
    signal = np.where(gate, np.sin(2 * np.pi * low * t), np.sin(2 * np.pi * high * t))
    peak = np.max(np.abs(signal)) or 1.0
    return (signal / peak * volume).astype(np.float32)


class SirenPlayer:
    def __init__(self, sample_rate=44100, device=None):
        self.sample_rate = sample_rate
        self.device = device
        self.signal = generate_siren(sample_rate)
        self.playing = False

    def start(self):
        if self.playing:
            return
        import sounddevice as sd
        sd.play(self.signal, self.sample_rate, loop=True, device=self.device)
        self.playing = True
        logger.info("Siren started")

    def stop(self):
        if not self.playing:
            return
        import sounddevice as sd
        sd.stop()
        self.playing = False
        logger.info("Siren stopped")


class LogHaptics:
    """Stand-in for a vibration motor on hardware that has none."""

    PATTERN_MS = (0, 500, 200, 500, 200, 500)

    def __init__(self):
        self.active = False

    def start(self):
        self.active = True
        logger.info(f"Haptic alert pattern {self.PATTERN_MS}")

    def stop(self):
        self.active = False
