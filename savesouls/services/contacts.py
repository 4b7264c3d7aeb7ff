"""
Emergency contact list persisted as a JSON array of {name, phone}
"""

import json
import logging
import os
import re
import threading
from dataclasses import dataclass, asdict

from ..config import CONTACTS_FILE

logger = logging.getLogger(__name__)


def normalize_phone(phone):
    """Strip spaces and hyphens, keep everything else."""
    return re.sub(r"[\s\-]", "", phone)


@dataclass(frozen=True)
class Contact:
    name: str
    phone: str


class JsonContactStore:
    def __init__(self, path=CONTACTS_FILE):
        self.path = path
        self._lock = threading.Lock()

    def _load(self):
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read contacts from {self.path}: {e}")
            return []

        contacts = []
        for entry in raw:
            try:
                contacts.append(Contact(entry.get("name", ""), normalize_phone(entry["phone"])))
            except (KeyError, TypeError, AttributeError):
                logger.warning(f"Skipping malformed contact entry: {entry!r}")
        return contacts

    def _save(self, contacts):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump([asdict(c) for c in contacts], f, indent=2)

    def list(self):
        with self._lock:
            return self._load()

    def add(self, name, phone):
        contact = Contact(name, normalize_phone(phone))
        with self._lock:
            contacts = [c for c in self._load() if c.phone != contact.phone]
            contacts.append(contact)
            self._save(contacts)
        return contact

    def remove(self, phone):
        phone = normalize_phone(phone)
        with self._lock:
            contacts = self._load()
            kept = [c for c in contacts if c.phone != phone]
            if len(kept) == len(contacts):
                return False
            self._save(kept)
        return True
