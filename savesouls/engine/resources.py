"""
Single-owner leases for the microphone and camera

Policy: an ALARM-priority acquire revokes a DETECTOR lease (the detector's
on_revoked callback runs before the acquire returns); a DETECTOR acquire
while anyone else holds the resource raises ResourceUnavailable.
"""

import logging
import threading
from enum import Enum, IntEnum

from ..errors import ResourceUnavailable

logger = logging.getLogger(__name__)


class Resource(Enum):
    MICROPHONE = "microphone"
    CAMERA = "camera"


class Priority(IntEnum):
    DETECTOR = 1
    ALARM = 2


class Lease:
    def __init__(self, broker, resource, owner, priority, on_revoked=None):
        self.broker = broker
        self.resource = resource
        self.owner = owner
        self.priority = priority
        self.on_revoked = on_revoked
        self.released = False

    @property
    def active(self):
        return not self.released

    def release(self):
        self.broker.release(self)

    def __repr__(self):
        state = "released" if self.released else "held"
        return f"Lease({self.resource.value}, owner={self.owner}, {state})"


class ResourceBroker:
    def __init__(self):
        self._lock = threading.Lock()
        self._holders = {}

    def holder(self, resource):
        with self._lock:
            return self._holders.get(resource)

    def is_held(self, resource):
        return self.holder(resource) is not None

    def acquire(self, resource, owner, priority=Priority.DETECTOR, on_revoked=None):
        revoked = None
        with self._lock:
            current = self._holders.get(resource)
            if current is not None:
                if current.owner == owner:
                    return current
                if priority <= current.priority:
                    raise ResourceUnavailable(
                        f"{resource.value} is held by {current.owner}")
                current.released = True
                revoked = current
            lease = Lease(self, resource, owner, priority, on_revoked)
            self._holders[resource] = lease

        if revoked is not None:
            logger.info(f"{resource.value} revoked from {revoked.owner} for {owner}")
            if revoked.on_revoked:
                try:
                    revoked.on_revoked(revoked)
                except Exception:
                    logger.exception(f"Revocation handler of {revoked.owner} failed")

        logger.debug(f"{resource.value} acquired by {owner}")
        return lease

    def release(self, lease):
        with self._lock:
            if self._holders.get(lease.resource) is lease:
                del self._holders[lease.resource]
                logger.debug(f"{lease.resource.value} released by {lease.owner}")
            lease.released = True

    def release_owner(self, owner):
        """Release everything `owner` holds. Returns the resources freed."""
        with self._lock:
            leases = [lease for lease in self._holders.values() if lease.owner == owner]
            for lease in leases:
                del self._holders[lease.resource]
                lease.released = True
        return [lease.resource for lease in leases]
