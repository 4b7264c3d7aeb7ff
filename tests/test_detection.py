"""Tests for the per-sample detectors."""

import random

import pytest

from savesouls.detection import (
    AdaptiveThresholdDetector,
    DebounceConfirmer,
    Edge,
    HoldState,
    PresenceDetector,
    ShakeDetector,
    VolumeKeyPatternDetector,
)
from savesouls.video_capture import LumaReading


def make_detector(**overrides):
    params = dict(initial_floor=500, absolute_threshold=18000, multiplier=2.8,
                  confirm_count=3, lockout_seconds=30.0)
    params.update(overrides)
    return AdaptiveThresholdDetector(**params)


class TestAdaptiveThresholdDetector:
    """Test cases for AdaptiveThresholdDetector."""

    def test_scream_scenario(self):
        """Three qualifying windows confirm exactly one detection."""
        detector = make_detector()
        samples = [500, 500, 500, 20000, 21000, 22000, 500]

        results = [detector.process(rms, i * 0.1) for i, rms in enumerate(samples)]

        assert results == [False, False, False, False, False, True, False]
        assert detector.detections == 1
        assert detector.confirm_streak == 0

    def test_lockout_suppresses_later_screams(self):
        """Qualifying windows inside the lockout are ignored."""
        detector = make_detector()
        for i, rms in enumerate([20000, 21000, 22000]):
            detector.process(rms, i * 0.1)
        assert detector.detections == 1

        now = 0.3
        for _ in range(50):
            now += 0.1
            assert detector.process(25000, now) is False
        assert detector.in_lockout(now)

    def test_detects_again_after_lockout(self):
        """Once the lockout has passed a new scream is confirmed."""
        detector = make_detector()
        for i in range(3):
            detector.process(20000, i * 0.1)
        for _ in range(200):
            detector.process(500, 10.0)

        fired = [detector.process(rms, 31.0 + i * 0.1)
                 for i, rms in enumerate([20000, 21000, 22000])]
        assert fired[-1] is True
        assert detector.detections == 2

    def test_quiet_room_never_triggers(self):
        """Spikes below the absolute threshold do not count, however relative."""
        detector = make_detector(initial_floor=50)
        assert not any(detector.process(5000, i * 0.1) for i in range(100))

    def test_streak_decays_on_non_qualifying_window(self):
        """A quiet window takes one off the streak instead of clearing it."""
        detector = make_detector()
        detector.process(20000, 0.0)
        detector.process(20000, 0.1)
        assert detector.confirm_streak == 2
        detector.process(500, 0.2)
        assert detector.confirm_streak == 1
        assert detector.process(20000, 0.3) is False
        assert detector.process(20000, 0.4) is True

    def test_floor_falls_fast_and_rises_slow(self):
        """The floor moves 5% towards quieter samples and 0.5% towards louder ones."""
        detector = make_detector(initial_floor=1000)
        detector.process(0, 0.0)
        assert detector.background_floor == pytest.approx(950.0)

        detector = make_detector(initial_floor=1000)
        detector.process(2000, 0.0)
        assert detector.background_floor == pytest.approx(1005.0)

    def test_reset_keeps_lockout(self):
        """reset() clears the floor and streak but not the lockout."""
        detector = make_detector()
        for i in range(3):
            detector.process(20000, i * 0.1)
        detector.process(100, 1.0)
        detector.reset()

        assert detector.background_floor == 500
        assert detector.confirm_streak == 0
        assert detector.in_lockout(5.0)

    def test_detections_never_closer_than_lockout(self):
        """Random sample streams never produce two detections within the lockout."""
        rng = random.Random(7)
        for _ in range(20):
            detector = make_detector(lockout_seconds=3.0)
            fired_at = []
            for i in range(2000):
                now = i * 0.1
                rms = rng.choice([300, 800, 19000, 25000, 30000])
                if detector.process(rms, now):
                    fired_at.append(now)
            gaps = [b - a for a, b in zip(fired_at, fired_at[1:])]
            assert all(gap >= 3.0 for gap in gaps)


class TestPresenceDetector:
    """Test cases for PresenceDetector."""

    def test_brighter_zone_is_present(self):
        """Zone 20% brighter than the frame and above the floor counts."""
        detector = PresenceDetector(presence_ratio=1.15, min_zone_luma=40)
        assert detector.is_present(LumaReading(frame_avg=50, zone_avg=60))

    def test_dark_zone_is_not_present(self):
        """A zone below the minimum luma never counts."""
        detector = PresenceDetector(presence_ratio=1.15, min_zone_luma=40)
        assert not detector.is_present(LumaReading(frame_avg=50, zone_avg=30))
        assert not detector.is_present(LumaReading(frame_avg=20, zone_avg=35))

    def test_uniform_frame_is_not_present(self):
        """Bright but even lighting is not a hand."""
        detector = PresenceDetector()
        assert not detector.is_present(LumaReading(frame_avg=180, zone_avg=190))

    def test_ratio(self):
        detector = PresenceDetector()
        assert detector.ratio(LumaReading(frame_avg=50, zone_avg=60)) == pytest.approx(1.2)


class TestDebounceConfirmer:
    """Test cases for DebounceConfirmer."""

    def test_constant_true_confirms_within_threshold(self):
        """Steady presence confirms at the threshold and stays confirmed."""
        confirmer = DebounceConfirmer(threshold=5, cap=15)
        edges = [confirmer.update(True) for _ in range(5)]

        assert edges == [None, None, None, None, Edge.RISING]
        for _ in range(100):
            assert confirmer.update(True) is None
            assert confirmer.confirmed
        assert confirmer.streak == 15

    def test_constant_false_never_confirms(self):
        """Steady absence never confirms."""
        confirmer = DebounceConfirmer(threshold=5)
        for _ in range(100):
            assert confirmer.update(False) is None
        assert not confirmer.confirmed
        assert confirmer.state is HoldState.NOT_HELD

    def test_momentary_miss_does_not_release(self):
        """One false sample at the cap does not drop a held gesture."""
        confirmer = DebounceConfirmer(threshold=5, cap=15)
        for _ in range(15):
            confirmer.update(True)
        assert confirmer.update(False) is None
        assert confirmer.held

    def test_sustained_absence_releases(self):
        """False samples decay twice as fast and produce a falling edge."""
        confirmer = DebounceConfirmer(threshold=5, cap=8)
        for _ in range(8):
            confirmer.update(True)
        edges = [confirmer.update(False) for _ in range(2)]
        assert edges == [None, Edge.FALLING]
        assert confirmer.streak == 4

    def test_reset(self):
        confirmer = DebounceConfirmer(threshold=2)
        confirmer.update(True)
        confirmer.update(True)
        confirmer.reset()
        assert confirmer.streak == 0
        assert not confirmer.held


class TestVolumeKeyPatternDetector:
    """Test cases for VolumeKeyPatternDetector."""

    def test_four_rapid_changes_fire(self):
        """Four changes each within the window fire once."""
        detector = VolumeKeyPatternDetector(presses=4, window=2.0, rearm=10.0, initial_level=5)
        results = [detector.on_volume_change(level, t)
                   for level, t in [(6, 0.0), (5, 0.5), (6, 1.0), (5, 1.5)]]
        assert results == [False, False, False, True]

    def test_unchanged_level_is_ignored(self):
        detector = VolumeKeyPatternDetector(initial_level=5)
        assert detector.on_volume_change(5, 0.0) is False
        assert detector.on_volume_change(5, 0.1) is False

    def test_slow_changes_restart_the_count(self):
        """A gap longer than the window starts counting from one again."""
        detector = VolumeKeyPatternDetector(presses=4, window=2.0, initial_level=5)
        detector.on_volume_change(6, 0.0)
        detector.on_volume_change(5, 0.5)
        detector.on_volume_change(6, 1.0)
        assert detector.on_volume_change(5, 4.0) is False
        assert detector.on_volume_change(6, 4.5) is False

    def test_first_reading_sets_baseline(self):
        """Without a known level the first report is only a baseline."""
        detector = VolumeKeyPatternDetector(presses=2, window=2.0)
        assert detector.on_volume_change(3, 0.0) is False
        assert detector.on_volume_change(4, 0.5) is False
        assert detector.on_volume_change(3, 1.0) is True

    def test_disarmed_after_firing(self):
        """Another burst inside the rearm period does not fire."""
        detector = VolumeKeyPatternDetector(presses=2, window=2.0, rearm=10.0, initial_level=0)
        detector.on_volume_change(1, 0.0)
        assert detector.on_volume_change(0, 0.5) is True
        detector.on_volume_change(1, 1.0)
        assert detector.on_volume_change(0, 1.5) is False
        detector.on_volume_change(1, 11.0)
        assert detector.on_volume_change(0, 11.5) is True


class TestShakeDetector:
    """Test cases for ShakeDetector."""

    def test_three_spaced_shakes_fire(self):
        detector = ShakeDetector(delta_threshold=18.0, spacing=0.35, reset_after=2.5, required=3)
        assert detector.on_acceleration(0, 0, 9.8, 0.0) is False
        assert detector.on_acceleration(20, 0, 9.8, 0.5) is False
        assert detector.on_acceleration(0, 0, 9.8, 1.0) is False
        assert detector.on_acceleration(20, 0, 9.8, 1.5) is True

    def test_small_movements_ignored(self):
        detector = ShakeDetector()
        detector.on_acceleration(0, 0, 9.8, 0.0)
        assert not any(detector.on_acceleration(i % 2 * 5, 0, 9.8, i * 0.5) for i in range(1, 20))

    def test_jolts_too_close_count_once(self):
        """Jolts inside the spacing interval are one shake."""
        detector = ShakeDetector(spacing=0.35, required=3)
        detector.on_acceleration(0, 0, 0, 0.0)
        detector.on_acceleration(20, 0, 0, 0.5)
        detector.on_acceleration(0, 0, 0, 0.6)
        assert detector.on_acceleration(20, 0, 0, 0.7) is False

    def test_count_resets_after_pause(self):
        """Shakes spread beyond the reset period do not add up."""
        detector = ShakeDetector(reset_after=2.5, required=3)
        detector.on_acceleration(0, 0, 0, 0.0)
        detector.on_acceleration(20, 0, 0, 0.5)
        detector.on_acceleration(0, 0, 0, 1.0)
        assert detector.on_acceleration(20, 0, 0, 4.0) is False
