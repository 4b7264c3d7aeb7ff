"""
Adaptive-threshold loud sound (scream) detector

Tracks a background noise floor that falls quickly and rises slowly, and
confirms a scream when several consecutive windows are both absolutely loud
and well above that floor.
"""

import logging
from dataclasses import dataclass

from ..config import (
    SCREAM_INITIAL_FLOOR, SCREAM_AMPLITUDE_THRESHOLD, SCREAM_MULTIPLIER,
    SCREAM_CONFIRM_COUNT, SCREAM_LOCKOUT_SECONDS, FLOOR_FALL_RATE, FLOOR_RISE_RATE
)

logger = logging.getLogger(__name__)


@dataclass
class DetectorState:
    background_floor: float
    confirm_streak: int = 0
    lockout_until: float = float("-inf")


class AdaptiveThresholdDetector:
    """
    Stateful detector fed one RMS value per audio window.

    The floor adapts asymmetrically: it rises slowly so the scream being
    detected cannot drag it up, and falls quickly so quiet rooms are learnt fast.
    """

    def __init__(self, initial_floor=SCREAM_INITIAL_FLOOR,
                 absolute_threshold=SCREAM_AMPLITUDE_THRESHOLD,
                 multiplier=SCREAM_MULTIPLIER,
                 confirm_count=SCREAM_CONFIRM_COUNT,
                 lockout_seconds=SCREAM_LOCKOUT_SECONDS,
                 fall_rate=FLOOR_FALL_RATE,
                 rise_rate=FLOOR_RISE_RATE):
        self.initial_floor = float(initial_floor)
        self.absolute_threshold = absolute_threshold
        self.multiplier = multiplier
        self.confirm_count = confirm_count
        self.lockout_seconds = lockout_seconds
        self.fall_rate = fall_rate
        self.rise_rate = rise_rate

        self.state = DetectorState(background_floor=self.initial_floor)
        self.detections = 0

    @property
    def background_floor(self):
        return self.state.background_floor

    @property
    def confirm_streak(self):
        return self.state.confirm_streak

    def reset(self):
        """
        Forget the learnt floor and any partial streak.
        The lockout survives, it protects against the alarm's own siren.
        """
        self.state.background_floor = self.initial_floor
        self.state.confirm_streak = 0

    def in_lockout(self, now):
        return now < self.state.lockout_until

    def _update_floor(self, rms):
        floor = self.state.background_floor
        if rms < floor:
            floor = floor * (1.0 - self.fall_rate) + rms * self.fall_rate
        else:
            floor = floor * (1.0 - self.rise_rate) + rms * self.rise_rate
        self.state.background_floor = floor

    def process(self, rms, now):
        """
        Feed one amplitude sample taken at time `now` (seconds).
        Returns True exactly when a scream is confirmed.
        """
        self._update_floor(rms)

        is_loud = rms > self.absolute_threshold
        is_spike = rms > self.state.background_floor * self.multiplier

        if is_loud and is_spike and not self.in_lockout(now):
            self.state.confirm_streak += 1
            logger.debug(
                f"Loud window rms={rms:.0f} floor={self.state.background_floor:.0f} "
                f"({self.state.confirm_streak}/{self.confirm_count})"
            )
            if self.state.confirm_streak >= self.confirm_count:
                self.state.confirm_streak = 0
                self.state.lockout_until = now + self.lockout_seconds
                self.detections += 1
                logger.warning(f"Scream confirmed (rms={rms:.0f})")
                return True
        elif self.state.confirm_streak > 0:
            self.state.confirm_streak -= 1

        return False
