"""
Text message transport for emergency alerts
"""

import logging
import os

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from ..errors import AlertDeliveryFailure

logger = logging.getLogger(__name__)


class TwilioMessenger:
    """
    Sends SMS (or WhatsApp) messages through Twilio.

    Each call to send() is independent; a failure raises
    AlertDeliveryFailure for that one recipient only.
    """

    CHANNELS = ("sms", "whatsapp")

    def __init__(self, account_sid, auth_token, from_number, channel="sms", client=None):
        if channel not in self.CHANNELS:
            raise ValueError(f"Unknown channel '{channel}', expected one of {self.CHANNELS}")
        if not all([account_sid, auth_token, from_number]):
            raise ValueError("Missing Twilio credentials")

        self.from_number = from_number
        self.channel = channel
        self.client = client or Client(account_sid, auth_token)

    @classmethod
    def from_env(cls):
        """
        Build from TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_FROM_NUMBER
        and SAVESOULS_CHANNEL. Returns None when credentials are missing.
        """
        account_sid = os.environ.get("TWILIO_ACCOUNT_SID")
        auth_token = os.environ.get("TWILIO_AUTH_TOKEN")
        from_number = os.environ.get("TWILIO_FROM_NUMBER")
        if not all([account_sid, auth_token, from_number]):
            return None
        channel = os.environ.get("SAVESOULS_CHANNEL", "sms")
        return cls(account_sid, auth_token, from_number, channel=channel)

    def _address(self, phone):
        if self.channel == "whatsapp":
            return f"whatsapp:{phone}"
        return phone

    def send(self, phone, text):
        try:
            message = self.client.messages.create(
                body=text,
                from_=self._address(self.from_number),
                to=self._address(phone),
            )
        except TwilioRestException as e:
            raise AlertDeliveryFailure(phone, e.msg) from e
        except Exception as e:
            raise AlertDeliveryFailure(phone, str(e)) from e

        logger.info(f"{self.channel.upper()} sent to {phone} (sid: {message.sid})")
        return {"success": True, "detail": message.sid}


class LogMessenger:
    """Dry-run transport used when no credentials are configured."""

    def __init__(self):
        self.sent = []

    def send(self, phone, text):
        logger.warning(f"[dry-run] message to {phone}: {text!r}")
        self.sent.append((phone, text))
        return {"success": True, "detail": "dry-run"}
