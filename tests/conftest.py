"""Pytest configuration and fixtures for SaveSouls tests."""

import threading
import time

import numpy as np
import pytest

from savesouls.engine import AlarmLifecycle, Coordinator, ResourceBroker, TriggerArbiter
from savesouls.errors import ResourceUnavailable, TransientCaptureFailure
from savesouls.services import Preferences, UiNotifier, Location


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start=1000.0):
        self.now = start
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            return self.now

    def advance(self, seconds):
        with self._lock:
            self.now += seconds


class FakeRecording:
    def __init__(self, path):
        self.path = path
        self.stopped = False

    def stop(self):
        self.stopped = True
        return self.path


class FakeMedia:
    def __init__(self, audio_failures=0, image_failures=0):
        self.audio_failures = audio_failures
        self.image_failures = image_failures
        self.recordings = []
        self.images = []

    def write_audio(self, path):
        if self.audio_failures:
            self.audio_failures -= 1
            raise ResourceUnavailable("microphone busy")
        recording = FakeRecording(path)
        self.recordings.append(recording)
        return recording

    def write_image(self, path, frame):
        if self.image_failures:
            self.image_failures -= 1
            raise TransientCaptureFailure("disk full")
        self.images.append(path)


class FakeCamera:
    """Returns `frame` on every capture; fails the first `failures` captures."""

    def __init__(self, frame=None, failures=0, open_error=None):
        self.frame = frame if frame is not None else np.zeros((8, 8, 3), dtype=np.uint8)
        self.failures = failures
        self.open_error = open_error
        self.is_open = False
        self.opened = 0
        self.captures = 0

    def open(self):
        if self.open_error is not None:
            raise self.open_error
        self.is_open = True
        self.opened += 1

    def capture(self):
        if not self.is_open:
            raise TransientCaptureFailure("camera closed")
        self.captures += 1
        if self.failures:
            self.failures -= 1
            raise TransientCaptureFailure("no frame")
        return self.frame

    def close(self):
        self.is_open = False


class FakeOutput:
    """Siren or haptics stand-in; set `fail` to make start() raise."""

    def __init__(self, fail=False):
        self.fail = fail
        self.active = False
        self.starts = 0

    def start(self):
        self.starts += 1
        if self.fail:
            raise RuntimeError("no audio device")
        self.active = True

    def stop(self):
        self.active = False


class FakeEvidence:
    def __init__(self, fail=False):
        self.fail = fail
        self.started = []
        self.stopped = 0

    def start(self, session_id):
        if self.fail:
            raise RuntimeError("evidence failed")
        self.started.append(session_id)

    def stop(self):
        self.stopped += 1


class FakeAlerts:
    """Runs compose(location) synchronously and records the texts sent."""

    def __init__(self, location=None, contacts=True):
        self.location = location
        self.contacts = contacts
        self.sent = []

    def has_contacts(self):
        return self.contacts

    def submit(self, compose):
        text = compose(self.location)
        if text is not None:
            self.sent.append(text)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def coordinator(clock):
    return Coordinator(clock=clock)


@pytest.fixture
def advance(clock, coordinator):
    """Move time forward in small steps, running due callbacks at each step."""

    def _advance(seconds, step=0.05):
        remaining = seconds
        while remaining > 1e-9:
            delta = min(step, remaining)
            clock.advance(delta)
            coordinator.run_pending()
            remaining -= delta

    return _advance


@pytest.fixture
def broker():
    return ResourceBroker()


@pytest.fixture
def notifier():
    return UiNotifier()


@pytest.fixture
def events(notifier):
    """List of (event, payload) announced on the notifier."""
    received = []
    notifier.subscribe(lambda event, payload: received.append((event, payload)))
    return received


@pytest.fixture
def preferences(tmp_path):
    return Preferences(str(tmp_path / "preferences.json"))


@pytest.fixture
def location():
    return Location(12.9716, 77.5946)


@pytest.fixture
def fake_alerts(location):
    return FakeAlerts(location=location)


@pytest.fixture
def siren():
    return FakeOutput()


@pytest.fixture
def media():
    return FakeMedia()


@pytest.fixture
def evidence():
    return FakeEvidence()


@pytest.fixture
def lifecycle(coordinator, broker, notifier, fake_alerts, siren, media, evidence, tmp_path):
    return AlarmLifecycle(
        coordinator, broker,
        alerts=fake_alerts,
        notifier=notifier,
        siren=siren,
        haptics=FakeOutput(),
        media=media,
        evidence=evidence,
        evidence_dir=str(tmp_path / "evidence"),
        duration=300,
        log_file=str(tmp_path / "incidents.txt"),
    )


@pytest.fixture
def arbiter(lifecycle):
    return TriggerArbiter(lifecycle)


def wait_for(condition, timeout=2.0):
    """Poll `condition` from the test thread until true or timed out."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.005)
    return condition()
