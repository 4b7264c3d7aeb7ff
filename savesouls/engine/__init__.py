"""Alarm engine: trigger arbitration, alarm lifecycle, timers and device sharing."""

from .timers import Coordinator, HoldTimer, HoldTick
from .resources import Resource, Priority, ResourceBroker
from .arbiter import TriggerArbiter, TriggerSource, TriggerResult, TriggerRequest
from .lifecycle import AlarmLifecycle, AlarmState, AlarmSession
from .evidence import EvidenceCaptureScheduler, EvidenceArtifact
from .countdown import SosCountdown
from .safe_walk import SafeWalkTimer, WalkSession
