"""
vitals/glucose.py — Glucose trend indicator (very low confidence)
=================================================================
There is no validated way to read blood glucose from a single-wavelength
camera PPG.  This estimator only maps two waveform-shape features onto a
plausible range around a fasting baseline:

    glucose = 90 + 15 · (rise/fall − 1) − 400 · (AC/DC − 0.02)

clamped to [60, 200] mg/dL.  The same waveform always gives the same
number.  Confidence reflects beat-to-beat amplitude stability and never
exceeds 0.9.
"""

import numpy as np

from config import MIN_VITALS_SAMPLES, SAMPLE_RATE_HZ, SPO2_WINDOW
from vitals.waveform import find_peaks_and_valleys, perfusion_index, rise_fall_slopes

BASE_GLUCOSE = 90.0
GLUCOSE_MIN = 60.0
GLUCOSE_MAX = 200.0
MAX_CONFIDENCE = 0.9


class GlucoseEstimator:
    def __init__(self, fs: float = SAMPLE_RATE_HZ):
        self.fs = fs
        self.confidence = 0.0

    def reset(self) -> None:
        self.confidence = 0.0

    def estimate(self, raw_values, filtered_values) -> tuple[float, float]:
        """Return `(glucose_mg_dl, confidence)`; `(0, 0.0)` below 20 samples."""
        if len(raw_values) < MIN_VITALS_SAMPLES or len(filtered_values) < MIN_VITALS_SAMPLES:
            self.confidence = 0.0
            return 0, 0.0

        filtered = np.asarray(filtered_values, dtype=np.float64)
        peaks, valleys = find_peaks_and_valleys(filtered, self.fs)
        rise, fall = rise_fall_slopes(filtered, peaks, valleys)
        ratio = rise / fall if fall > 0 else 1.0
        pi = perfusion_index(list(raw_values)[-SPO2_WINDOW:])

        glucose = BASE_GLUCOSE + 15.0 * (ratio - 1.0) - 400.0 * (pi - 0.02)
        glucose = round(float(np.clip(glucose, GLUCOSE_MIN, GLUCOSE_MAX)))

        if len(peaks) >= 2:
            heights = filtered[peaks]
            cv = heights.std() / (abs(heights.mean()) + 1e-9)
            self.confidence = float(np.clip(1.0 - cv, 0.0, MAX_CONFIDENCE))
        else:
            self.confidence = 0.0

        return glucose, self.confidence
