"""
Asymmetric streak counter that turns noisy per-sample booleans into a
confirmed held / not-held state
"""

from enum import Enum

from ..config import GESTURE_CONFIRM_FRAMES, GESTURE_STREAK_CAP


class HoldState(Enum):
    NOT_HELD = "not_held"
    HELD = "held"


class Edge(Enum):
    RISING = "rising"
    FALLING = "falling"


class DebounceConfirmer:
    """
    True samples grow the streak by one, false samples shrink it by two, so
    a momentary miss does not cancel a held gesture but sustained absence does.
    """

    def __init__(self, threshold=GESTURE_CONFIRM_FRAMES, cap=None, decay=2):
        self.threshold = threshold
        self.cap = cap if cap is not None else max(threshold, GESTURE_STREAK_CAP)
        self.decay = decay
        self.streak = 0
        self.state = HoldState.NOT_HELD

    @property
    def confirmed(self):
        return self.streak >= self.threshold

    @property
    def held(self):
        return self.state is HoldState.HELD

    def update(self, value):
        """
        Feed one sample. Returns Edge.RISING when the state enters HELD,
        Edge.FALLING when it leaves, otherwise None.
        """
        if value:
            self.streak = min(self.streak + 1, self.cap)
        else:
            self.streak = max(0, self.streak - self.decay)

        if self.confirmed and self.state is HoldState.NOT_HELD:
            self.state = HoldState.HELD
            return Edge.RISING
        if not self.confirmed and self.state is HoldState.HELD:
            self.state = HoldState.NOT_HELD
            return Edge.FALLING
        return None

    def reset(self):
        self.streak = 0
        self.state = HoldState.NOT_HELD
