"""External collaborators consumed by the engine."""

from .alerts import AlertDispatcher, build_sos_message, format_location_text
from .alarm_output import SirenPlayer, LogHaptics
from .contacts import Contact, JsonContactStore
from .location import Location, IpLocationProvider, StaticLocationProvider
from .media import FileMediaSink
from .messaging import TwilioMessenger, LogMessenger
from .notifier import UiEvent, UiNotifier
from .preferences import Preferences
