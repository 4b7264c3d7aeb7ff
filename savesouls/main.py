"""
Main application for the SaveSouls personal safety engine
Wires detectors, the alarm engine and alert services together and provides
a command line for running detection, raising an SOS and safe walks
"""

import argparse
import logging
import os
import sys
import time

from dotenv import load_dotenv

from .config import (
    CONTACTS_FILE,
    PREFERENCES_FILE,
    EVIDENCE_DIR,
    EVIDENCE_CAMERA_INDEX,
    LOG_FILE,
    WALK_DEFAULT_MINUTES,
)
from .detection.inputs import VolumeKeyPatternDetector, ShakeDetector
from .engine import (
    AlarmLifecycle,
    Coordinator,
    EvidenceCaptureScheduler,
    ResourceBroker,
    SafeWalkTimer,
    SosCountdown,
    TriggerArbiter,
    TriggerSource,
)
from .gesture_detector import GestureDetectionService
from .scream_detector import ScreamDetectionService
from .errors import ResourceUnavailable
from .services import (
    AlertDispatcher,
    FileMediaSink,
    IpLocationProvider,
    JsonContactStore,
    LogHaptics,
    LogMessenger,
    Preferences,
    SirenPlayer,
    StaticLocationProvider,
    TwilioMessenger,
    UiEvent,
    UiNotifier,
)
from .video_capture import OpenCVCamera

logger = logging.getLogger(__name__)


def console_listener(event, payload):
    """Print the announcements a person at the terminal needs to see."""
    if event is UiEvent.ALARM_STARTED:
        print(f"\n*** 🚨 SOS ALARM ACTIVE ({payload['source']}) - Ctrl+C to stop ***\n")
    elif event is UiEvent.ALARM_STOPPED:
        print(f"\n[*] Alarm stopped ({payload['reason']})")
    elif event is UiEvent.LOCATION:
        print(f"    {payload['text']}")
    elif event is UiEvent.COUNTDOWN_TICK:
        print(f"    SOS in {payload['seconds_left']}...")
    elif event is UiEvent.COUNTDOWN_CANCELLED:
        print("[*] SOS cancelled")
    elif event is UiEvent.WALK_WARNING:
        print("⚠️  1 minute left! Press Enter to check in or SOS fires!")
    elif event is UiEvent.WALK_CHECKED_IN:
        print("✅ Checked in! Timer reset.")
    elif event is UiEvent.WALK_ENDED:
        print("Safe Walk ended. Stay safe! 💙")


class SaveSoulsApp:
    """
    Main application class for the SaveSouls safety engine
    """

    def __init__(self, data_paths=None, messenger=None, location=None, coordinator=None):
        paths = data_paths or {}
        self.contacts = JsonContactStore(paths.get("contacts", CONTACTS_FILE))
        self.preferences = Preferences(paths.get("preferences", PREFERENCES_FILE))
        evidence_dir = paths.get("evidence", EVIDENCE_DIR)

        self.notifier = UiNotifier()
        self.coordinator = coordinator or Coordinator()
        self.broker = ResourceBroker()

        self.messenger = messenger or self._default_messenger()
        self.alerts = AlertDispatcher(self.contacts, self.messenger,
                                      location or self._default_location())
        media = FileMediaSink()
        self.evidence = EvidenceCaptureScheduler(
            self.broker, OpenCVCamera(EVIDENCE_CAMERA_INDEX), media,
            notifier=self.notifier, evidence_dir=evidence_dir,
        )
        self.lifecycle = AlarmLifecycle(
            self.coordinator, self.broker,
            alerts=self.alerts,
            notifier=self.notifier,
            siren=SirenPlayer(),
            haptics=LogHaptics(),
            media=media,
            evidence=self.evidence,
            evidence_dir=evidence_dir,
            log_file=paths.get("log", LOG_FILE),
        )
        self.arbiter = TriggerArbiter(self.lifecycle)
        self.countdown = SosCountdown(self.coordinator, self.arbiter, self.alerts,
                                      notifier=self.notifier)
        self.safe_walk = SafeWalkTimer(self.coordinator, self.arbiter, self.alerts,
                                       notifier=self.notifier)

        self.scream = ScreamDetectionService(self.coordinator, self.broker, self.arbiter,
                                             self.preferences, notifier=self.notifier)
        self.gesture = GestureDetectionService(self.coordinator, self.broker, self.arbiter,
                                               self.preferences, notifier=self.notifier)

        self.volume_keys = VolumeKeyPatternDetector()
        self.shake = ShakeDetector()

    @staticmethod
    def _default_messenger():
        messenger = TwilioMessenger.from_env()
        if messenger is None:
            logger.warning("Twilio credentials not set, alerts will only be logged")
            return LogMessenger()
        return messenger

    @staticmethod
    def _default_location():
        lat = os.environ.get("SAVESOULS_LAT")
        lng = os.environ.get("SAVESOULS_LNG")
        if lat and lng:
            return StaticLocationProvider(float(lat), float(lng))
        return IpLocationProvider()

    # -------------------------------------------------------------------
    # Hardware input hooks
    # -------------------------------------------------------------------
    def on_volume_change(self, level):
        """Four rapid volume changes raise the alarm straight away."""
        if self.volume_keys.on_volume_change(level, self.coordinator.now()):
            self.coordinator.post(self.arbiter.request_trigger, TriggerSource.VOLUME_KEYS)

    def on_acceleration(self, x, y, z):
        """Three hard shakes start the cancellable SOS countdown."""
        if self.shake.on_acceleration(x, y, z, self.coordinator.now()):
            self.coordinator.post(self.countdown.arm, TriggerSource.SHAKE)

    def feed_sensor_events(self, stream):
        """
        Drive the volume-key and shake hooks from a text stream, one reading
        per line, as written by a phone or sensor bridge:

            volume <level>
            accel <x> <y> <z>

        Blank lines and lines starting with # are skipped. Returns the number
        of readings applied.
        """
        applied = 0
        for line in stream:
            parts = line.split()
            if not parts or parts[0].startswith("#"):
                continue
            try:
                if parts[0] == "volume" and len(parts) == 2:
                    self.on_volume_change(int(parts[1]))
                elif parts[0] == "accel" and len(parts) == 4:
                    self.on_acceleration(*(float(value) for value in parts[1:]))
                else:
                    logger.warning(f"Unrecognised sensor line: {line.strip()}")
                    continue
            except ValueError:
                logger.warning(f"Bad sensor reading: {line.strip()}")
                continue
            applied += 1
        return applied

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def start(self):
        self.notifier.subscribe(console_listener)
        self.coordinator.start()

    def resume_detectors(self):
        """Bring back whichever detectors were switched on last time."""
        for service in (self.scream, self.gesture):
            if service.resume():
                print(f"[*] {service.OWNER} resumed")

    def shutdown(self):
        self.countdown.disarm()
        if self.safe_walk.is_active:
            self.safe_walk.stop()
        self.scream.shutdown()
        self.gesture.shutdown()
        self.lifecycle.stop("shutdown")
        self.coordinator.stop()
        self.alerts.wait(timeout=10.0)
        self.alerts.shutdown()

    def wait(self):
        """
        Block until Ctrl+C. While an alarm sounds, Ctrl+C silences it and
        monitoring continues; otherwise it exits.
        """
        print("[*] Press Ctrl+C to stop\n")
        while True:
            try:
                time.sleep(1)
            except KeyboardInterrupt:
                if self.lifecycle.is_active:
                    self.lifecycle.stop("manual")
                    continue
                if self.countdown.disarm():
                    continue
                print("\n[*] Stopping...")
                return

    # -------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------
    def run(self, sensor_stream=None):
        self.resume_detectors()
        if sensor_stream is not None:
            print("[*] Reading volume/shake events from sensor feed")
            try:
                self.feed_sensor_events(sensor_stream)
            except KeyboardInterrupt:
                print("\n[*] Stopping...")
                return
        self.wait()

    def status(self):
        """Snapshot of the engine for the status command."""
        session = self.lifecycle.session
        return {
            "alarm": self.lifecycle.state.value,
            "alarm_source": session.source.value if session else None,
            "alarms_raised": self.arbiter.admitted,
            "safe_walk_active": self.safe_walk.is_active,
            "contacts": len(self.contacts.list()),
            "scream": self.scream.get_status(),
            "gesture": self.gesture.get_status(),
        }

    def print_status(self):
        status = self.status()
        print("📊 SaveSouls Status")
        print("========================================")
        print(f"Alarm: {status['alarm']}")
        print(f"Emergency contacts: {status['contacts']}")
        print(f"Safe walk active: {status['safe_walk_active']}")
        for name in ("scream", "gesture"):
            detector = status[name]
            state = "on" if detector["enabled"] else "off"
            print(f"{name.capitalize()} detection: {state} (running: {detector['is_running']})")

    def sos(self, immediate=False):
        if immediate:
            self.coordinator.post(self.arbiter.request_trigger, TriggerSource.MANUAL)
        elif not self.countdown.arm(TriggerSource.MANUAL):
            print("❌ SOS not armed (alarm already active or no emergency contacts)")
            return
        self.wait()

    def set_detector(self, service, enabled):
        if not enabled:
            service.stop()
            print(f"[*] {service.OWNER} switched off")
            return
        try:
            service.start()
        except ResourceUnavailable as e:
            print(f"❌ {service.OWNER} could not start: {e}")
            return
        self.wait()

    def walk(self, minutes):
        try:
            self.safe_walk.start(minutes * 60)
        except ValueError as e:
            print(f"❌ {e}")
            return
        print(f"🟢 Safe Walk active for {minutes} minutes. Stay safe!")
        print("    Enter = check in, q + Enter = arrived safely")

        try:
            while self.safe_walk.is_active:
                line = input()
                if not self.safe_walk.is_active:
                    break
                if line.strip().lower() == "q":
                    self.safe_walk.stop()
                else:
                    self.safe_walk.check_in()
        except (KeyboardInterrupt, EOFError):
            self.safe_walk.stop()

        if self.lifecycle.is_active:
            self.wait()

    def manage_contacts(self, action, name=None, phone=None):
        if action == "list":
            contacts = self.contacts.list()
            if not contacts:
                print("No emergency contacts stored")
            for contact in contacts:
                print(f"  {contact.name}: {contact.phone}")
        elif action == "add":
            contact = self.contacts.add(name, phone)
            print(f"✅ Added {contact.name} ({contact.phone})")
        elif action == "remove":
            if self.contacts.remove(phone):
                print(f"✅ Removed {phone}")
            else:
                print(f"❌ No contact with number {phone}")


# -------------------------------------------------------------------
# Entry point
# -------------------------------------------------------------------
def build_parser():
    parser = argparse.ArgumentParser(
        description="SaveSouls personal safety engine"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    run = commands.add_parser("run", help="Resume enabled detectors and keep monitoring")
    run.add_argument(
        "--sensors",
        type=argparse.FileType("r"),
        help="Read volume/shake events from a file or pipe (- for stdin)",
    )

    commands.add_parser("status", help="Show alarm, safe walk and detector state")

    sos = commands.add_parser("sos", help="Raise an SOS after a cancellable countdown")
    sos.add_argument("--now", action="store_true", help="Skip the countdown")

    walk = commands.add_parser("walk", help="Start a safe walk")
    walk.add_argument(
        "--minutes",
        type=int,
        default=WALK_DEFAULT_MINUTES,
        help=f"Walk duration in minutes (default: {WALK_DEFAULT_MINUTES})",
    )

    for name, label in (("scream", "scream detection"), ("gesture", "hand gesture detection")):
        detector = commands.add_parser(name, help=f"Switch {label} on or off")
        detector.add_argument("state", choices=["on", "off"])

    contacts = commands.add_parser("contacts", help="Manage emergency contacts")
    contacts.add_argument("action", choices=["list", "add", "remove"])
    contacts.add_argument("--name", help="Contact name (add)")
    contacts.add_argument("--phone", help="Phone number (add/remove)")

    return parser


def main(argv=None):
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "contacts" and args.action != "list" and not args.phone:
        parser.error("--phone is required to add or remove a contact")

    app = SaveSoulsApp()

    if args.command == "contacts":
        app.manage_contacts(args.action, args.name or "", args.phone)
        return
    if args.command == "status":
        app.print_status()
        return

    app.start()
    try:
        if args.command == "run":
            app.run(sensor_stream=args.sensors)
        elif args.command == "sos":
            app.sos(immediate=args.now)
        elif args.command == "walk":
            app.walk(args.minutes)
        elif args.command == "scream":
            app.set_detector(app.scream, args.state == "on")
        elif args.command == "gesture":
            app.set_detector(app.gesture, args.state == "on")
        else:
            parser.print_help()
            sys.exit(1)
    except Exception as e:
        logger.error(f"Error: {e}")
        raise
    finally:
        app.shutdown()


if __name__ == "__main__":
    main()
