"""
Unit Tests for Vital-Sign Extractors

Tests for waveform helpers, SpO2, blood pressure, glucose, lipids,
hydration and the aggregating processor.
"""
import re

import pytest
import numpy as np

from features.heartbeat import RRIntervalData
from ppg.filters import bandpass_filter
from vitals.waveform import (
    ac_component,
    dc_component,
    perfusion_index,
    standard_deviation,
    find_peaks_and_valleys,
    peak_to_valley_times,
    rise_fall_slopes,
)
from vitals.spo2 import SpO2Estimator
from vitals.blood_pressure import BPEstimator, format_pressure
from vitals.glucose import GlucoseEstimator
from vitals.lipids import LipidsEstimator, LipidsResult
from vitals.hydration import HydrationEstimator
from vitals.processor import VitalSignsProcessor, VitalSignsResult


@pytest.fixture
def filtered_values(raw_values, fs):
    return list(bandpass_filter(np.asarray(raw_values), fs))


@pytest.fixture(scope="module")
def bp_estimator():
    return BPEstimator()


class TestWaveform:
    def test_empty_input(self):
        assert ac_component([]) == 0.0
        assert dc_component([]) == 0.0
        assert standard_deviation([]) == 0.0
        assert perfusion_index([0.0, 0.0]) == 0.0
        peaks, valleys = find_peaks_and_valleys([1.0, 2.0])
        assert len(peaks) == 0 and len(valleys) == 0

    def test_ac_dc(self):
        assert ac_component([148.0, 152.0, 150.0]) == pytest.approx(4.0)
        assert dc_component([148.0, 152.0, 150.0]) == pytest.approx(150.0)
        assert perfusion_index([148.0, 152.0, 150.0]) == pytest.approx(4.0 / 150.0)

    def test_peaks_valleys_and_slopes(self, pulse_wave):
        peaks, valleys = find_peaks_and_valleys(pulse_wave)
        assert 11 <= len(peaks) <= 12
        assert 11 <= len(valleys) <= 12

        rise_times = peak_to_valley_times(peaks, valleys)
        assert all(12 <= t <= 13 for t in rise_times)

        rise, fall = rise_fall_slopes(pulse_wave, peaks, valleys)
        assert rise > 0 and fall > 0
        assert rise / fall == pytest.approx(1.0, abs=0.1)


class TestSpO2:
    def test_not_enough_samples(self):
        assert SpO2Estimator().estimate([150.0] * 19) == 0

    def test_clean_signal(self, raw_values):
        spo2 = SpO2Estimator().estimate(raw_values)
        assert 95 <= spo2 <= 100

    def test_always_clamped(self):
        rng = np.random.default_rng(0)
        est = SpO2Estimator()
        for _ in range(20):
            value = est.estimate(list(rng.uniform(1, 255, size=60)))
            assert 70 <= value <= 100

    def test_low_perfusion(self, raw_values):
        est = SpO2Estimator()
        assert est.estimate([150.0] * 40) == 0
        first = est.estimate(raw_values)
        assert est.estimate([150.0] * 40) == first - 2

    def test_calibration(self):
        est = SpO2Estimator()
        intercept, slope = est.calibrate([0.01, 0.02, 0.03], [97.0, 95.0, 93.0])
        assert intercept == pytest.approx(99.0)
        assert slope == pytest.approx(200.0)

    def test_calibration_needs_two_points(self):
        with pytest.raises(ValueError):
            SpO2Estimator().calibrate([0.02], [97.0])
        with pytest.raises(ValueError):
            SpO2Estimator().calibrate([0.01, 0.02], [97.0])


class TestBloodPressure:
    def test_too_few_intervals(self, bp_estimator):
        assert bp_estimator.predict([800.0, 800.0]) is None

    def test_resting_prediction(self, bp_estimator, regular_rr):
        bp = bp_estimator.predict(regular_rr)
        assert bp["unit"] == "mmHg"
        assert bp["systolic"] > bp["diastolic"]
        assert 110 <= bp["systolic"] <= 135
        assert 70 <= bp["diastolic"] <= 90

    def test_format(self):
        assert format_pressure(None) == "--/--"
        assert format_pressure({"systolic": 121.4, "diastolic": 80.6}) == "121/81"


class TestGlucose:
    def test_not_enough_samples(self):
        assert GlucoseEstimator().estimate([150.0] * 10, [0.0] * 10) == (0, 0.0)

    def test_deterministic_and_bounded(self, raw_values, filtered_values):
        first = GlucoseEstimator().estimate(raw_values, filtered_values)
        second = GlucoseEstimator().estimate(raw_values, filtered_values)
        assert first == second
        glucose, confidence = first
        assert 60 <= glucose <= 200
        assert 0.5 < confidence <= 0.9

    def test_flat_signal_has_no_confidence(self):
        _, confidence = GlucoseEstimator().estimate([150.0] * 60, [0.0] * 60)
        assert confidence == 0.0

    def test_uses_processor_sample_rate(self):
        assert VitalSignsProcessor(fs=60.0).glucose.fs == 60.0

    def test_high_sample_rate_signal(self):
        t = np.arange(600) / 60.0
        pulse = np.sin(2 * np.pi * 1.2 * t)
        glucose, confidence = GlucoseEstimator(fs=60.0).estimate(list(150.0 + 2.0 * pulse), list(pulse))
        assert 60 <= glucose <= 200
        assert confidence > 0.5


class TestLipids:
    def test_not_enough_samples(self):
        assert LipidsEstimator().estimate([150.0] * 30, [0.0] * 30) == LipidsResult(0, 0)

    def test_ranges(self, raw_values, filtered_values):
        est = LipidsEstimator()
        result = est.estimate(raw_values, filtered_values)
        assert 120 <= result.total_cholesterol <= 300
        assert 80 <= result.triglycerides <= 220
        assert 0.0 < est.confidence <= 1.0


class TestHydration:
    def test_not_enough_samples(self):
        assert HydrationEstimator().estimate([150.0] * 30, [0.0] * 30) == (0, 0.0)

    def test_neutral_without_peaks(self):
        hydration, _ = HydrationEstimator().estimate([150.0] * 60, [0.0] * 60)
        assert hydration == 50

    def test_range(self, raw_values, filtered_values):
        hydration, confidence = HydrationEstimator().estimate(raw_values, filtered_values)
        assert 30 <= hydration <= 70
        assert confidence > 0


class TestVitalSignsProcessor:
    def test_sentinels_with_short_buffers(self):
        result = VitalSignsProcessor().process([150.0] * 5, [0.0] * 5, RRIntervalData(), 0.0)
        assert result == VitalSignsResult()
        assert result.pressure == "--/--"
        assert result.arrhythmia_status == "--"
        assert result.spo2 == 0

    def test_full_snapshot(self, raw_values, filtered_values, regular_rr):
        proc = VitalSignsProcessor()
        result = proc.process(
            raw_values, filtered_values, RRIntervalData(regular_rr, 19000.0), 19000.0, heart_rate=72,
        )
        assert 70 <= result.spo2 <= 100
        assert re.fullmatch(r"\d+/\d+", result.pressure)
        assert result.arrhythmia_status == "NORMAL RHYTHM|0"
        assert result.heart_rate == 72
        assert set(result.confidence) == {"glucose", "lipids", "hydration"}
        assert result.to_dict()["lipids"]["total_cholesterol"] > 0

    def test_reset_returns_empty(self, raw_values, filtered_values, regular_rr):
        proc = VitalSignsProcessor()
        proc.process(raw_values, filtered_values, RRIntervalData(regular_rr, 1.0), 1.0)
        assert proc.reset() == VitalSignsResult()
        assert proc.full_reset().arrhythmia_status == "--"
