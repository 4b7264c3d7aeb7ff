"""
Persisted detector switches. They survive restarts so detectors can be
resumed on relaunch.
"""

import json
import logging
import os
import threading

from ..config import PREFERENCES_FILE, PREF_SCREAM_ENABLED, PREF_GESTURE_ENABLED

logger = logging.getLogger(__name__)


class Preferences:
    DEFAULTS = {
        PREF_SCREAM_ENABLED: False,
        PREF_GESTURE_ENABLED: False,
    }

    def __init__(self, path=PREFERENCES_FILE):
        self.path = path
        self._lock = threading.Lock()
        self.values = self._load()

    def _load(self):
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            return {**self.DEFAULTS, **loaded}
        except FileNotFoundError:
            return dict(self.DEFAULTS)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read preferences from {self.path}: {e}")
            return dict(self.DEFAULTS)

    def save(self):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self.values, f, indent=2)
        os.replace(tmp_path, self.path)

    def get(self, key, default=None):
        with self._lock:
            return self.values.get(key, default)

    def set(self, key, value):
        with self._lock:
            self.values[key] = value
            try:
                self.save()
            except OSError as e:
                logger.error(f"Could not persist preference {key}: {e}")

    def reload(self):
        with self._lock:
            self.values = self._load()
