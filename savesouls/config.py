"""
Configuration constants for the SaveSouls safety engine
"""

import os

# Audio Configuration
SAMPLE_RATE = 44100  # 44.1 kHz mono PCM
CHANNELS = 1  # Mono
WINDOW_SIZE_MS = 100  # One amplitude sample per 100ms window
AUDIO_QUEUE_SIZE = 50  # ~5s of amplitude samples

# Scream Detection (16-bit PCM scale)
SCREAM_INITIAL_FLOOR = 500.0
SCREAM_AMPLITUDE_THRESHOLD = 18000  # Absolute loudness floor
SCREAM_MULTIPLIER = 2.8  # Spike must exceed background floor by this factor
SCREAM_CONFIRM_COUNT = 3  # Consecutive qualifying windows (~300ms)
SCREAM_LOCKOUT_SECONDS = 30.0
FLOOR_FALL_RATE = 0.05  # Fast downward tracking
FLOOR_RISE_RATE = 0.005  # Slow upward tracking

# Gesture Detection
PRESENCE_RATIO = 1.15  # Upper zone must be 15% brighter than the frame
MIN_ZONE_LUMA = 40  # Avoid triggering in pitch dark
LUMA_STEP = 8  # Sample every Nth pixel
ZONE_WIDTH_FRACTION = (0.25, 0.75)  # Middle 50% horizontally
ZONE_HEIGHT_FRACTION = 0.45  # Top 45% vertically
GESTURE_CONFIRM_FRAMES = 5
GESTURE_STREAK_CAP = GESTURE_CONFIRM_FRAMES + 10
GESTURE_HOLD_SECONDS = 4.0
GESTURE_TICK_SECONDS = 0.1
GESTURE_FRAME_INTERVAL_SECONDS = 0.1  # ~10 analysed frames per second
GESTURE_CAMERA_INDEX = 0  # Front camera

# Alarm
ALARM_DURATION_SECONDS = 5 * 60  # Auto-stop after 5 minutes
RESTART_GRACE_SECONDS = 2.0  # Detector restart after alarm window + grace
DETECTOR_RETRY_SECONDS = 10.0  # Retry when the device is still busy at restart
RECORDING_RETRY_SECONDS = 1.0  # One retry when the mic cannot be opened
ALARM_HISTORY_SIZE = 50  # Finished sessions kept in memory
LOCATION_TIMEOUT_SECONDS = 8.0
ALARM_VOLUME = 1.0  # Max output amplitude
SIREN_FREQUENCIES = (800, 1000)  # Hz, alternating
SIREN_PULSE_RATE = 4  # Alternations per second

# Evidence Capture
CAPTURE_INTERVAL_SECONDS = 5.0
MAX_PHOTOS = 60  # 60 photos = 5 min
EVIDENCE_CAMERA_INDEX = 0
JPEG_QUALITY = 80

# Manual SOS countdown
SOS_COUNTDOWN_SECONDS = 5.0
SOS_COUNTDOWN_TICK_SECONDS = 1.0

# Safe Walk
WALK_MIN_MINUTES = 5
WALK_MAX_MINUTES = 60
WALK_DEFAULT_MINUTES = 15
WALK_SHARE_INTERVAL_SECONDS = 2 * 60  # Location broadcast every 2 min
WALK_TICK_SECONDS = 1.0
WALK_WARNING_SECONDS = 61.0  # "1 minute left" warning

# Volume Keys
VOLUME_PRESSES = 4  # Rapid volume changes required
VOLUME_WINDOW_SECONDS = 2.0  # Max gap between consecutive changes
VOLUME_REARM_SECONDS = 10.0

# Shake
SHAKE_DELTA = 18.0  # m/s^2 summed over the three axes
SHAKE_SPACING_SECONDS = 0.35
SHAKE_RESET_SECONDS = 2.5
SHAKE_COUNT = 3

# Alert Messages
APP_SIGNATURE = "Sent via SaveSouls Safety App"
MAPS_URL = "https://maps.google.com/?q={lat},{lng}"

# Storage
DATA_DIR = os.environ.get("SAVESOULS_DATA_DIR", "data")
EVIDENCE_DIR = os.path.join(DATA_DIR, "SaveSouls_Evidence")
CONTACTS_FILE = os.path.join(DATA_DIR, "contacts.json")
PREFERENCES_FILE = os.path.join(DATA_DIR, "preferences.json")

PREF_SCREAM_ENABLED = "scream_detection_enabled"
PREF_GESTURE_ENABLED = "hand_gesture_enabled"

# Logging
LOG_FILE = "emergency_log.txt"
