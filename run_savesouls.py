#!/usr/bin/env python3
"""
Run script for the SaveSouls personal safety engine

Usage:
    python run_savesouls.py run                    # Resume enabled detectors and monitor
    python run_savesouls.py run --sensors -        # Also read "volume <level>" / "accel <x> <y> <z>" lines from stdin
    python run_savesouls.py status                 # Alarm, safe walk and detector state
    python run_savesouls.py sos [--now]            # SOS after a 5 second countdown
    python run_savesouls.py walk --minutes 20      # Safe walk with check-ins
    python run_savesouls.py scream on|off          # Scream detection switch
    python run_savesouls.py gesture on|off         # Hand gesture detection switch
    python run_savesouls.py contacts list          # Emergency contacts

Make sure to install the package first:
    pip install -e .
"""

from savesouls.main import main

if __name__ == '__main__':
    main()
