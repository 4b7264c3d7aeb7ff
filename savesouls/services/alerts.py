"""
Alert Dispatcher
================
Sends one text to every stored contact. Each recipient is isolated: a
failed delivery is logged and recorded, and the others still go out.
Location lookups and network sends run on a small worker pool so timers
and detectors are never blocked by them.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait

from ..config import APP_SIGNATURE, LOCATION_TIMEOUT_SECONDS
from ..errors import AlertDeliveryFailure, LocationTimeout

logger = logging.getLogger(__name__)


def format_location_text(location):
    if location is None:
        return "📍 Location unavailable"
    return f"📍 Location: {location.maps_url}"


def build_sos_message(location_text):
    return f"🆘 SOS EMERGENCY!\nI need immediate help!\n{location_text}\n{APP_SIGNATURE}"


class AlertDispatcher:
    def __init__(self, contacts, messenger, location=None,
                 location_timeout=LOCATION_TIMEOUT_SECONDS, max_workers=2):
        """
        Args:
            contacts: object with .list() -> [Contact]
            messenger: object with .send(phone, text)
            location: object with .get_current(timeout) -> Location | None
        """
        self.contacts = contacts
        self.messenger = messenger
        self.location = location
        self.location_timeout = location_timeout
        self.alert_log = []

        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix="alert")
        self._pending = set()
        self._lock = threading.Lock()

    def has_contacts(self):
        return bool(self.contacts.list())

    def locate(self):
        """Best-effort location; None when unavailable for any reason."""
        if self.location is None:
            return None
        try:
            return self.location.get_current(self.location_timeout)
        except LocationTimeout as e:
            logger.warning(f"Location timeout: {e}")
        except Exception as e:
            logger.error(f"Location lookup error: {e}")
        return None

    def broadcast(self, text):
        """
        Send `text` to every contact. Returns one result dict per contact.
        """
        try:
            contacts = self.contacts.list()
        except Exception as e:
            logger.error(f"Could not load contacts: {e}")
            return []

        if not contacts:
            logger.warning("No emergency contacts stored, alert not sent")

        results = []
        for contact in contacts:
            try:
                outcome = self.messenger.send(contact.phone, text)
                results.append({
                    "phone": contact.phone,
                    "success": outcome.get("success", False),
                    "detail": outcome.get("detail", ""),
                })
            except AlertDeliveryFailure as e:
                logger.error(str(e))
                results.append({"phone": contact.phone, "success": False, "detail": e.detail})
            except Exception as e:
                logger.error(f"Delivery to {contact.phone} failed: {e}")
                results.append({"phone": contact.phone, "success": False, "detail": str(e)})

        self.alert_log.append({"text": text, "results": results})
        return results

    def _compose_and_send(self, compose):
        text = compose(self.locate())
        if text is None:
            return []
        return self.broadcast(text)

    def submit(self, compose):
        """
        In the background: resolve the location, call compose(location) and
        broadcast the text it returns (nothing is sent for None).
        """
        future = self._executor.submit(self._compose_and_send, compose)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future):
        with self._lock:
            self._pending.discard(future)
        error = future.exception()
        if error is not None:
            logger.error(f"Background alert failed: {error}")

    def wait(self, timeout=None):
        """Block until background alerts finish. Returns True if all did."""
        with self._lock:
            pending = list(self._pending)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self):
        self._executor.shutdown(wait=True)
