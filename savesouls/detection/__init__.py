"""Per-sample detectors. Pure state machines, no threads or hardware."""

from .amplitude import AdaptiveThresholdDetector, DetectorState
from .presence import PresenceDetector
from .debounce import DebounceConfirmer, Edge, HoldState
from .inputs import VolumeKeyPatternDetector, ShakeDetector
