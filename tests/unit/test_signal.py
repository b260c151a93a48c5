"""
Unit Tests for Signal Conditioning

Tests for bandpass filtering, frame extraction and the adaptive amplifier.
"""
import warnings

import pytest
import numpy as np

from ppg.filters import design_bandpass, bandpass_filter, min_filter_samples, StreamingBandpass
from ppg.extraction import central_roi, extract_red_mean
from ppg.amplifier import SignalAmplifier, normalize_signal, amplify_signal


class TestBandpass:
    """Tests for Butterworth filtering."""

    def test_design_rejects_bad_rate(self):
        with pytest.raises(ValueError):
            design_bandpass(0)

    def test_low_rate_clamps_upper_edge(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            sos = design_bandpass(6.0)
        assert len(caught) == 1
        assert sos.shape[1] == 6

    def test_zero_phase_removes_dc(self, fs):
        t = np.arange(300) / fs
        signal = 150 + 2 * np.sin(2 * np.pi * 1.2 * t)
        out = bandpass_filter(signal, fs)
        assert abs(out[50:-50].mean()) < 0.1
        assert 1.5 < out[50:-50].max() < 2.5

    def test_too_short_signal_raises(self, fs):
        sos = design_bandpass(fs)
        with pytest.raises(ValueError):
            bandpass_filter(np.ones(min_filter_samples(sos) - 1), fs)

    def test_streaming_constant_input_stays_at_zero(self, fs):
        bp = StreamingBandpass(fs)
        outputs = [bp.process(128.0) for _ in range(60)]
        assert max(abs(o) for o in outputs) < 1e-6

    def test_streaming_passes_cardiac_band(self, fs):
        bp = StreamingBandpass(fs)
        t = np.arange(600) / fs
        out = np.array([bp.process(v) for v in 150 + 2 * np.sin(2 * np.pi * 1.2 * t)])
        assert np.ptp(out[300:]) > 3.0


class TestExtraction:
    """Tests for frame → scalar reduction."""

    def test_red_channel_of_central_roi(self):
        frame = np.zeros((40, 40, 3), dtype=np.uint8)
        frame[:, :, 0] = 200
        frame[:, :, 1] = 50
        assert extract_red_mean(frame) == pytest.approx(200.0)

    def test_only_centre_counts(self):
        frame = np.zeros((40, 40, 4), dtype=np.uint8)
        frame[10:30, 10:30, 0] = 180
        assert extract_red_mean(frame) == pytest.approx(180.0)

    def test_grayscale_frame(self):
        assert extract_red_mean(np.full((10, 10), 90, dtype=np.uint8)) == pytest.approx(90.0)

    def test_bad_shapes(self):
        with pytest.raises(ValueError):
            extract_red_mean(np.zeros((10, 10, 2)))
        with pytest.raises(ValueError):
            central_roi(np.zeros((10, 10)), fraction=0)


class TestAmplifier:
    """Tests for normalisation and adaptive gain."""

    def test_normalize_short_history_passthrough(self):
        assert normalize_signal(0.7, [0.1, 0.2]) == 0.7

    def test_normalize_flat_history(self):
        assert normalize_signal(5.0, [5.0, 5.0, 5.0]) == 0.0

    def test_normalize_bounds(self):
        assert normalize_signal(10.0, [0.0, 1.0, 2.0]) == 0.5
        assert amplify_signal(0.5, factor=4.0) == 1.0

    def test_gain_within_limits(self, fs):
        amp = SignalAmplifier()
        t = np.arange(300) / fs
        for v in 2 * np.sin(2 * np.pi * 1.2 * t):
            result = amp.process_value(float(v))
        assert 1.5 * 0.8 <= result.gain <= 1.5 * 5.0
        assert 0.0 <= result.quality <= 1.0

    def test_weak_signal_raises_gain(self):
        amp = SignalAmplifier()
        start = amp.current_gain
        for i in range(30):
            amp.process_value(0.01 * (-1) ** i)
        assert amp.current_gain > start

    def test_reset(self):
        amp = SignalAmplifier()
        for i in range(30):
            amp.process_value(float(i % 3))
        amp.reset()
        assert amp.current_gain == pytest.approx(1.5)
        assert amp.quality == 0.0
