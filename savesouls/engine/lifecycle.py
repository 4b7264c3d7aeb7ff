"""
Alarm lifecycle: the Idle/Active state machine behind every trigger source

Entering Active fans out into haptics, siren, voice recording, photo
evidence, location lookup and contact alerts. Each step is attempted even if
another fails; the alarm must never be blocked by a single subsystem.
Leaving Active (auto-expiry or manual stop) tears all of it down and always
frees the microphone and camera.
"""

import datetime
import itertools
import logging
import os
import threading
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from ..config import (
    ALARM_DURATION_SECONDS,
    ALARM_HISTORY_SIZE,
    EVIDENCE_DIR,
    RECORDING_RETRY_SECONDS,
)
from ..services.alerts import build_sos_message, format_location_text
from ..services.notifier import UiEvent
from .resources import Resource, Priority

logger = logging.getLogger(__name__)


class AlarmState(Enum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass
class AlarmSession:
    session_id: int
    source: object
    started_at: float
    expires_at: float
    state: AlarmState = AlarmState.ACTIVE
    active_resources: set = field(default_factory=set)
    recording_path: str = None
    ended_at: float = None
    end_reason: str = None


class AlarmLifecycle:
    OWNER = "alarm"

    def __init__(self, coordinator, broker, alerts=None, notifier=None, siren=None,
                 haptics=None, media=None, evidence=None,
                 evidence_dir=EVIDENCE_DIR, duration=ALARM_DURATION_SECONDS, log_file=None,
                 history_size=ALARM_HISTORY_SIZE):
        self.coordinator = coordinator
        self.broker = broker
        self.alerts = alerts
        self.notifier = notifier
        self.siren = siren
        self.haptics = haptics
        self.media = media
        self.evidence = evidence
        self.evidence_dir = evidence_dir
        self.duration = duration
        self.log_file = log_file

        # Re-entrant: entry/exit steps may announce to listeners that call back in
        self.transition_lock = threading.RLock()
        self.session = None
        self.history = deque(maxlen=history_size)

        self._session_ids = itertools.count(1)
        self._recording = None
        self._mic_lease = None
        self._expiry_handle = None
        self._retry_handle = None

    @property
    def state(self):
        with self.transition_lock:
            return AlarmState.ACTIVE if self.session is not None else AlarmState.IDLE

    @property
    def is_active(self):
        return self.state is AlarmState.ACTIVE

    def _run_step(self, name, step, *args):
        try:
            step(*args)
            return True
        except Exception as e:
            logger.error(f"Alarm step '{name}' failed: {e}")
            return False

    def _announce(self, event, payload=None):
        if self.notifier is not None:
            self.notifier.announce(event, payload)

    # -------------------------------------------------------------------
    # Idle -> Active
    # -------------------------------------------------------------------
    def activate(self, request):
        """
        Start a session for an admitted trigger. Returns the new session, or
        None if one is already active. Callers go through TriggerArbiter.
        """
        with self.transition_lock:
            if self.session is not None:
                return None

            now = self.coordinator.now()
            session = AlarmSession(
                session_id=next(self._session_ids),
                source=request.source,
                started_at=now,
                expires_at=now + self.duration,
            )
            self.session = session
            logger.warning(f"🚨 ALARM ACTIVE (session {session.session_id}, "
                           f"source: {request.source.value})")

            self._run_step("incident log", self._write_incident, request)
            self._run_step("haptics", self._start_haptics)
            self._run_step("siren", self._start_siren)
            if not self._run_step("recording", self._start_recording, session):
                self._schedule_recording_retry(session)
            self._run_step("evidence", self._start_evidence, session)
            self._run_step("alerts", self._dispatch_alerts, session)
            self._run_step("ui", self._announce, UiEvent.ALARM_STARTED, {
                "session_id": session.session_id,
                "source": request.source.value,
                "expires_in": self.duration,
            })

            self._expiry_handle = self.coordinator.call_later(
                self.duration, self._expire, session.session_id)
            return session

    def _write_incident(self, request):
        if not self.log_file:
            return
        timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(f"[{timestamp}] EMERGENCY: {request.source.value}\n")

    def _start_haptics(self):
        if self.haptics is not None:
            self.haptics.start()

    def _start_siren(self):
        if self.siren is not None:
            self.siren.start()

    def _start_recording(self, session):
        if self.media is None:
            return
        # Alarm priority: a scream detector holding the mic is stopped first
        self._mic_lease = self.broker.acquire(Resource.MICROPHONE, self.OWNER, Priority.ALARM)
        session.active_resources.add(Resource.MICROPHONE)

        timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        path = os.path.join(self.evidence_dir, f"SOS_{timestamp}.wav")
        self._recording = self.media.write_audio(path)
        session.recording_path = path

    def _schedule_recording_retry(self, session):
        if self.media is None:
            return
        self._retry_handle = self.coordinator.call_later(
            RECORDING_RETRY_SECONDS, self._retry_recording, session.session_id)

    def _retry_recording(self, session_id):
        with self.transition_lock:
            session = self.session
            if session is None or session.session_id != session_id or self._recording is not None:
                return
            logger.info("Retrying voice recording")
            self._run_step("recording retry", self._start_recording, session)

    def _start_evidence(self, session):
        if self.evidence is None:
            return
        self.evidence.start(session.session_id)
        session.active_resources.add(Resource.CAMERA)

    def _dispatch_alerts(self, session):
        if self.alerts is None:
            return
        self.alerts.submit(self._compose_sos)

    def _compose_sos(self, location):
        location_text = format_location_text(location)
        self._announce(UiEvent.LOCATION, {
            "text": location_text,
            "maps_url": location.maps_url if location else "",
        })
        return build_sos_message(location_text)

    # -------------------------------------------------------------------
    # Active -> Idle
    # -------------------------------------------------------------------
    def stop(self, reason="manual"):
        """Silence the alarm. Returns False if it was not active."""
        with self.transition_lock:
            if self.session is None:
                return False
            self._deactivate(reason)
            return True

    def _expire(self, session_id):
        with self.transition_lock:
            if self.session is None or self.session.session_id != session_id:
                return
            logger.info(f"Alarm session {session_id} expired after {self.duration}s")
            self._deactivate("expired")

    def _deactivate(self, reason):
        # Caller holds the transition lock
        session = self.session

        self._run_step("siren", self._stop_siren)
        self._run_step("haptics", self._stop_haptics)
        self._run_step("recording", self._stop_recording)
        self._run_step("evidence", self._stop_evidence)
        self._release_resources(session)
        self._run_step("timers", self._cancel_timers)

        session.state = AlarmState.IDLE
        session.ended_at = self.coordinator.now()
        session.end_reason = reason
        self.history.append(session)
        self.session = None
        logger.info(f"Alarm stopped (session {session.session_id}, reason: {reason})")

        self._run_step("ui", self._announce, UiEvent.ALARM_STOPPED, {
            "session_id": session.session_id,
            "reason": reason,
            "recording_path": session.recording_path,
        })

    def _stop_siren(self):
        if self.siren is not None:
            self.siren.stop()

    def _stop_haptics(self):
        if self.haptics is not None:
            self.haptics.stop()

    def _stop_recording(self):
        recording, self._recording = self._recording, None
        if recording is not None:
            recording.stop()

    def _stop_evidence(self):
        if self.evidence is not None:
            self.evidence.stop()

    def _release_resources(self, session):
        if self._mic_lease is not None:
            self._mic_lease.release()
            self._mic_lease = None
        # Whatever the steps above left behind
        freed = self.broker.release_owner(self.OWNER)
        if freed:
            logger.debug(f"Released leftover resources: {[r.value for r in freed]}")
        session.active_resources.clear()

    def _cancel_timers(self):
        for handle in (self._expiry_handle, self._retry_handle):
            if handle is not None:
                handle.cancel()
        self._expiry_handle = None
        self._retry_handle = None
