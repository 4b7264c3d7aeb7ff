"""
SaveSouls personal safety engine

Multi-sensor emergency triggers feeding a single alarm lifecycle.

Components:
- Scream detection from microphone amplitude with an adaptive noise floor
- Hand gesture detection from camera brightness with a 4 second hold
- Volume-key pattern, shake and manual SOS triggers
- Alarm fan-out: siren, voice recording, photo evidence, location, alerts
- Safe Walk check-in timer that raises the alarm when it lapses
"""

from .config import *
from .engine import (
    AlarmLifecycle,
    Coordinator,
    ResourceBroker,
    SafeWalkTimer,
    SosCountdown,
    TriggerArbiter,
    TriggerSource,
)
from .scream_detector import ScreamDetectionService
from .gesture_detector import GestureDetectionService
from .main import SaveSoulsApp

__version__ = "1.0.0"
