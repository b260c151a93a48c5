"""
vitals/hydration.py — Hydration trend indicator
================================================
Well-hydrated tissue shows a faster systolic upstroke and a lower
pulsatile fraction:

    hydration = 55 + 10 · (rise/fall − 0.8) + 20 · (0.3 − AC/DC)

clamped to [30, 70] % and smoothed 0.7 / 0.3 across calls.  Without
enough peaks and valleys the neutral value of 50 % is reported.
"""

import numpy as np

from config import LIPIDS_MIN_SAMPLES, LIPIDS_WINDOW, SAMPLE_RATE_HZ
from vitals.waveform import find_peaks_and_valleys, perfusion_index, rise_fall_slopes

NEUTRAL_HYDRATION = 50.0


class HydrationEstimator:
    def __init__(self, fs: float = SAMPLE_RATE_HZ):
        self.fs = fs
        self.reset()

    def reset(self) -> None:
        self._hydration = 0.0
        self.confidence = 0.0

    def estimate(self, raw_values, filtered_values) -> tuple[float, float]:
        """Return `(hydration_percent, confidence)`; `(0, 0.0)` below 45 samples."""
        if len(raw_values) < LIPIDS_MIN_SAMPLES or len(filtered_values) < LIPIDS_MIN_SAMPLES:
            self.confidence = 0.0
            return 0, 0.0

        raw = list(raw_values)[-LIPIDS_WINDOW:]
        filtered = np.asarray(list(filtered_values)[-LIPIDS_WINDOW:], dtype=np.float64)
        peaks, valleys = find_peaks_and_valleys(filtered, self.fs)

        if len(peaks) < 3 or len(valleys) < 3:
            self.confidence = 0.1
            value = NEUTRAL_HYDRATION
        else:
            rise, fall = rise_fall_slopes(filtered, peaks, valleys)
            ratio = rise / fall if fall > 0 else 1.0
            value = 55.0 + 10.0 * (ratio - 0.8) + 20.0 * (0.3 - perfusion_index(raw))
            value = float(np.clip(value, 30, 70))
            self.confidence = 0.5

        self._hydration = self._hydration * 0.7 + value * 0.3 if self._hydration > 0 else value
        return round(self._hydration), self.confidence
