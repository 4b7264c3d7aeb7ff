"""
Error taxonomy for the SaveSouls safety engine.

None of these is fatal to the process: the alarm still fires with reduced
evidence or alerting when any of them is raised.
"""


class SaveSoulsError(Exception):
    """Base class for engine errors."""


class ResourceUnavailable(SaveSoulsError):
    """Microphone or camera busy, missing, or permission denied."""


class TransientCaptureFailure(SaveSoulsError):
    """One photo or audio window failed; retried on the next attempt."""


class AlertDeliveryFailure(SaveSoulsError):
    """A message to one contact could not be delivered."""

    def __init__(self, phone, detail):
        super().__init__(f"Delivery to {phone} failed: {detail}")
        self.phone = phone
        self.detail = detail


class LocationTimeout(SaveSoulsError):
    """No location fix within the allotted time."""
