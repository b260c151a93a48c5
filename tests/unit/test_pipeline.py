"""
Unit Tests for the PPG Pipeline

End-to-end behaviour of the per-sample orchestration on synthetic traces.
"""
import pytest
import numpy as np

from ppg.pipeline import PPGPipeline, Sample
from ppg.synthetic import synthetic_ppg
from vitals.processor import VitalSignsResult


class TestPipeline:
    def test_clean_pulse_end_to_end(self, ppg_72bpm):
        pipeline = PPGPipeline()
        result = pipeline.process_samples(ppg_72bpm)

        assert result.finger.is_finger_detected
        assert result.finger.confidence > 0.6
        assert result.heartbeat.bpm == pytest.approx(72, abs=3)
        assert 95 <= result.vitals.spo2 <= 100
        assert result.vitals.pressure != "--/--"
        assert result.vitals.arrhythmia_status.startswith("NORMAL RHYTHM|")
        assert result.vitals.heart_rate > 0
        assert pipeline.buffer_length == 300

    def test_flat_signal_never_detected(self, flat_signal):
        pipeline = PPGPipeline()
        results = [pipeline.process_sample(s) for s in flat_signal]
        assert not any(r.finger.is_finger_detected for r in results)
        assert results[-1].finger.confidence < 0.05
        assert results[-1].vitals == VitalSignsResult()
        assert results[-1].heartbeat.bpm == 0

    def test_vitals_cleared_when_finger_lost(self, ppg_72bpm):
        pipeline = PPGPipeline()
        pipeline.process_samples(ppg_72bpm)
        flat = synthetic_ppg(duration_s=10.0, amplitude=0.0, start_ms=ppg_72bpm[-1].timestamp_ms + 33.3)
        result = pipeline.process_samples(flat)
        assert not result.finger.is_finger_detected
        assert result.vitals == VitalSignsResult()

    def test_rejects_non_finite(self):
        pipeline = PPGPipeline()
        with pytest.raises(ValueError):
            pipeline.process_sample(Sample(0.0, float("nan")))
        with pytest.raises(ValueError):
            pipeline.process_sample(Sample(float("inf"), 150.0))

    def test_rejects_non_increasing_timestamps(self):
        pipeline = PPGPipeline()
        pipeline.process_sample(Sample(100.0, 150.0))
        with pytest.raises(ValueError):
            pipeline.process_sample(Sample(100.0, 150.0))
        with pytest.raises(ValueError):
            pipeline.process_sample(Sample(50.0, 150.0))

    def test_process_frame(self):
        pipeline = PPGPipeline()
        frame = np.zeros((20, 20, 3), dtype=np.uint8)
        frame[:, :, 0] = 140
        result = pipeline.process_frame(frame, 0.0)
        assert result.raw_value == pytest.approx(140.0)

    def test_analyze(self, ppg_72bpm):
        pipeline = PPGPipeline()
        with pytest.raises(ValueError):
            pipeline.analyze()
        pipeline.process_samples(ppg_72bpm)
        analysis = pipeline.analyze()
        assert analysis["hr_bpm"] == pytest.approx(72, abs=3)
        assert analysis["fs"] == pytest.approx(30.0, abs=0.1)
        assert analysis["num_samples"] == 300
        assert analysis["hrv"]["valid"]

    def test_reset(self, ppg_72bpm):
        pipeline = PPGPipeline()
        pipeline.process_samples(ppg_72bpm)
        pipeline.reset()
        assert pipeline.buffer_length == 0
        assert pipeline.last_timestamp is None
        assert pipeline.last_result is None
        # Timestamps may start over after a reset
        pipeline.process_sample(Sample(0.0, 150.0))


class TestSynthetic:
    def test_shape(self):
        samples = synthetic_ppg(bpm=60, duration_s=2.0, fs=30.0)
        assert len(samples) == 60
        assert samples[1].timestamp_ms == pytest.approx(1000.0 / 30.0)

    def test_invalid(self):
        with pytest.raises(ValueError):
            synthetic_ppg(duration_s=0)
