"""
Physical input pattern detectors: rapid volume-key presses and phone shakes
"""

import logging

from ..config import (
    VOLUME_PRESSES, VOLUME_WINDOW_SECONDS, VOLUME_REARM_SECONDS,
    SHAKE_DELTA, SHAKE_SPACING_SECONDS, SHAKE_RESET_SECONDS, SHAKE_COUNT
)

logger = logging.getLogger(__name__)


class VolumeKeyPatternDetector:
    """
    Fires when the volume level changes several times in quick succession.
    Each change must follow the previous one within `window` seconds; after
    firing the detector stays disarmed for `rearm` seconds.
    """

    def __init__(self, presses=VOLUME_PRESSES, window=VOLUME_WINDOW_SECONDS,
                 rearm=VOLUME_REARM_SECONDS, initial_level=None):
        self.presses = presses
        self.window = window
        self.rearm = rearm

        self.last_level = initial_level
        self.last_change_time = float("-inf")
        self.change_count = 0
        self.disarmed_until = float("-inf")

    def on_volume_change(self, level, now):
        if self.last_level is None:
            self.last_level = level
            return False
        if level == self.last_level:
            return False

        if now - self.last_change_time < self.window:
            self.change_count += 1
        else:
            self.change_count = 1
        self.last_change_time = now
        self.last_level = level

        if self.change_count >= self.presses and now >= self.disarmed_until:
            self.change_count = 0
            self.disarmed_until = now + self.rearm
            logger.warning(f"Volume key pattern detected ({self.presses} rapid presses)")
            return True
        return False


class ShakeDetector:
    """
    Counts sharp accelerometer jolts. A jolt is a summed per-axis change above
    `delta_threshold`, at least `spacing` seconds after the previous one. The
    count restarts when `reset_after` seconds pass since the first jolt of a burst.
    """

    def __init__(self, delta_threshold=SHAKE_DELTA, spacing=SHAKE_SPACING_SECONDS,
                 reset_after=SHAKE_RESET_SECONDS, required=SHAKE_COUNT):
        self.delta_threshold = delta_threshold
        self.spacing = spacing
        self.reset_after = reset_after
        self.required = required

        self.last_reading = None
        self.last_shake_time = float("-inf")
        self.burst_start = float("-inf")
        self.shake_count = 0

    def on_acceleration(self, x, y, z, now):
        previous = self.last_reading
        self.last_reading = (x, y, z)
        if previous is None:
            return False

        if self.shake_count and now - self.burst_start > self.reset_after:
            self.shake_count = 0

        delta = abs(x - previous[0]) + abs(y - previous[1]) + abs(z - previous[2])
        if delta <= self.delta_threshold or now - self.last_shake_time <= self.spacing:
            return False

        self.last_shake_time = now
        if self.shake_count == 0:
            self.burst_start = now
        self.shake_count += 1
        logger.debug(f"Shake ({self.shake_count}/{self.required}) delta={delta:.1f}")

        if self.shake_count >= self.required:
            self.shake_count = 0
            logger.warning("Shake pattern detected")
            return True
        return False
