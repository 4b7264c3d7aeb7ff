"""Bright-zone presence test used by gesture detection."""

from ..config import PRESENCE_RATIO, MIN_ZONE_LUMA


class PresenceDetector:
    """
    A hand held close to the camera in the upper-centre zone reflects more
    light than the background. The test is relative to the frame average so
    it behaves the same in bright and dim rooms; the absolute floor stops
    noise in a dark frame from counting.
    """

    def __init__(self, presence_ratio=PRESENCE_RATIO, min_zone_luma=MIN_ZONE_LUMA):
        self.presence_ratio = presence_ratio
        self.min_zone_luma = min_zone_luma

    def is_present(self, reading):
        return (reading.zone_avg > reading.frame_avg * self.presence_ratio
                and reading.zone_avg > self.min_zone_luma)

    def ratio(self, reading):
        return reading.zone_avg / max(1.0, reading.frame_avg)
