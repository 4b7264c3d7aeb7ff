"""
Single-fire gate in front of the alarm lifecycle
"""

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class TriggerSource(Enum):
    SCREAM = "scream"
    GESTURE = "gesture"
    VOLUME_KEYS = "volume_keys"
    SHAKE = "shake"
    SAFE_WALK_EXPIRY = "safe_walk_expiry"
    MANUAL = "manual"


@dataclass(frozen=True)
class TriggerRequest:
    source: TriggerSource
    timestamp: float


class TriggerResult(Enum):
    ADMITTED = "admitted"
    ALREADY_ACTIVE = "already_active"


class TriggerArbiter:
    """
    Accepts trigger requests from any thread and admits at most one alarm
    session at a time. The state check and session creation happen under the
    lifecycle's transition lock, so simultaneous requests cannot both pass.
    """

    def __init__(self, lifecycle):
        self.lifecycle = lifecycle
        self.admitted = 0
        self.rejected = 0

    def request_trigger(self, source):
        request = TriggerRequest(source, self.lifecycle.coordinator.now())

        with self.lifecycle.transition_lock:
            if self.lifecycle.is_active:
                self.rejected += 1
                logger.info(f"Trigger from {source.value} ignored, alarm already active")
                return TriggerResult.ALREADY_ACTIVE
            self.lifecycle.activate(request)
            self.admitted += 1

        logger.warning(f"Trigger from {source.value} admitted")
        return TriggerResult.ADMITTED
