"""
Unit Tests for Finger Detection

Tests for the amplitude and rhythm sources and the unified detector.
"""
import pytest
import numpy as np

from finger.amplitude import AmplitudeDetector, SourceReading
from finger.rhythm import RhythmPatternDetector
from finger.unified import UnifiedFingerDetector, brightness_reading


def _pulse(bpm: float, seconds: float, fs: float = 30.0, amplitude: float = 1.0):
    t = np.arange(int(seconds * fs)) / fs
    return t * 1000.0, amplitude * np.sin(2 * np.pi * bpm / 60.0 * t)


class TestAmplitudeDetector:
    def test_requires_positive_threshold(self):
        with pytest.raises(ValueError):
            AmplitudeDetector(threshold=0)

    def test_detects_after_three_strong_frames(self):
        det = AmplitudeDetector()
        readings = [det.update(v) for v in (0.0, 1.0, -1.0, 1.0)]
        assert not readings[1].detected
        assert readings[3].detected

    def test_lost_after_five_weak_frames(self):
        det = AmplitudeDetector()
        for v in (0.0, 1.0, -1.0, 1.0):
            det.update(v)
        # The last pulse stays inside the 30-sample window for 29 more frames
        for _ in range(29):
            reading = det.update(0.0)
        assert reading.detected
        for _ in range(4):
            reading = det.update(0.0)
        assert reading.detected
        reading = det.update(0.0)
        assert not reading.detected

    def test_should_process(self):
        det = AmplitudeDetector()
        assert det.should_process(0.5, 50.0)
        assert not det.should_process(0.5, 10.0)
        assert not det.should_process(0.1, 50.0)


class TestRhythmPatternDetector:
    def test_periodic_signal_detected(self):
        det = RhythmPatternDetector()
        times, values = _pulse(72, 8)
        for t, v in zip(times, values):
            reading = det.update(float(v), float(t))
        assert reading.detected
        assert reading.confidence == pytest.approx(1.0)

    def test_flat_signal_not_detected(self):
        det = RhythmPatternDetector()
        for i in range(240):
            reading = det.update(0.0, i * 33.3)
        assert not reading.detected
        assert reading.confidence == 0.0

    def test_too_slow_rhythm_rejected(self):
        det = RhythmPatternDetector()
        times, values = _pulse(30, 8)
        for t, v in zip(times, values):
            reading = det.update(float(v), float(t))
        assert not reading.detected

    def test_reset(self):
        det = RhythmPatternDetector()
        times, values = _pulse(72, 8)
        for t, v in zip(times, values):
            det.update(float(v), float(t))
        det.reset()
        assert not det.is_finger_detected
        assert det.consistent_patterns == 0.0


class TestBrightness:
    def test_centre_is_most_confident(self):
        assert brightness_reading(145.0).confidence == pytest.approx(1.0)

    def test_outside_window(self):
        assert brightness_reading(10.0) == SourceReading(False, 0.0)
        assert brightness_reading(255.0).detected is False


class TestUnifiedFingerDetector:
    def _feed(self, det, readings, start_ms, seconds, step_ms=33.3):
        state = None
        t = start_ms
        while t < start_ms + seconds * 1000.0:
            state = det.update_sources(readings, t)
            t += step_ms
        return state, t

    def test_all_sources_agree(self):
        det = UnifiedFingerDetector()
        strong = {
            "amplitude": SourceReading(True, 1.0),
            "rhythm": SourceReading(True, 1.0),
            "quality": SourceReading(True, 0.8),
            "brightness": SourceReading(True, 0.9),
        }
        state, _ = self._feed(det, strong, 0.0, 2.0)
        assert state.is_finger_detected
        assert state.consensus_level == pytest.approx(1.0)
        assert 0.0 <= state.confidence <= 1.0

    def test_hysteresis_delays_detection(self):
        det = UnifiedFingerDetector()
        strong = {"amplitude": SourceReading(True, 1.0), "rhythm": SourceReading(True, 1.0)}
        state, _ = self._feed(det, strong, 0.0, 0.5)
        assert not state.is_finger_detected

    def test_zero_hysteresis_reacts_immediately(self):
        det = UnifiedFingerDetector(hysteresis_ms=0)
        strong = {"amplitude": SourceReading(True, 1.0), "rhythm": SourceReading(True, 1.0)}
        state, _ = self._feed(det, strong, 0.0, 0.2)
        assert state.is_finger_detected

    def test_brightness_alone_never_detects(self):
        det = UnifiedFingerDetector(hysteresis_ms=0)
        readings = {
            "brightness": SourceReading(True, 1.0),
            "quality": SourceReading(True, 1.0),
        }
        state, _ = self._feed(det, readings, 0.0, 3.0)
        assert not state.is_finger_detected
        assert state.confidence == 0.0

    def test_loss_after_dwell(self):
        det = UnifiedFingerDetector()
        strong = {"amplitude": SourceReading(True, 1.0), "rhythm": SourceReading(True, 1.0)}
        weak = {"amplitude": SourceReading(False, 0.0), "rhythm": SourceReading(False, 0.0)}
        state, t = self._feed(det, strong, 0.0, 3.0)
        assert state.is_finger_detected
        state, t = self._feed(det, weak, t, 0.5)
        assert state.is_finger_detected
        state, _ = self._feed(det, weak, t, 2.0)
        assert not state.is_finger_detected
        assert det.get_statistics()["state_changes"] == 2

    def test_stale_sources_ignored(self):
        det = UnifiedFingerDetector(hysteresis_ms=0)
        det.update_source("rhythm", True, 1.0, 0.0)
        state = det.update_source("brightness", True, 1.0, 20000.0)
        assert state.consensus_level == pytest.approx(1.0)
        assert det.get_statistics()["sources"]["rhythm"]["age_ms"] == 20000.0

    def test_update_brightness(self):
        det = UnifiedFingerDetector()
        state = det.update_brightness(145.0, 0.0)
        assert state.sources["brightness"]["detected"] is True

    def test_weights_and_hysteresis_clamped(self):
        det = UnifiedFingerDetector()
        det.set_source_weight("rhythm", 10.0)
        det.set_hysteresis(60000)
        stats = det.get_statistics()
        assert stats["sources"]["rhythm"]["weight"] == 2.0
        assert stats["hysteresis_ms"] == 5000.0
        det.set_source_weight("rhythm", 0.0)
        assert det.get_statistics()["sources"]["rhythm"]["weight"] == 0.1

    def test_reset(self):
        det = UnifiedFingerDetector(hysteresis_ms=0)
        det.update_sources({"amplitude": SourceReading(True, 1.0)}, 0.0)
        det.reset()
        state = det.get_state()
        assert not state.is_finger_detected
        assert state.confidence == 0.0
