"""
vitals/lipids.py — Lipid trend indicator (very low confidence)
==============================================================
Blood viscosity changes how fast the pulse wave rises, and pulse amplitude
relative to baseline tracks vascular compliance.  Neither is a validated
lipid measurement; the two are mapped onto plausible ranges:

    cholesterol   = 150 + 80 · (1 − min(1, 20 · AC/DC)) + 100 · (rise_s − 0.25)
    triglycerides = 150 − 2000 · (AC/DC − 0.02)

clamped to [120, 300] and [80, 220] mg/dL and smoothed 0.7 / 0.3 across
calls.
"""

from dataclasses import dataclass

import numpy as np

from config import LIPIDS_MIN_SAMPLES, LIPIDS_WINDOW, SAMPLE_RATE_HZ
from vitals.waveform import find_peaks_and_valleys, peak_to_valley_times, perfusion_index


@dataclass
class LipidsResult:
    total_cholesterol: int = 0
    triglycerides: int = 0


class LipidsEstimator:
    def __init__(self, fs: float = SAMPLE_RATE_HZ):
        self.fs = fs
        self.reset()

    def reset(self) -> None:
        self._cholesterol = 0.0
        self._triglycerides = 0.0
        self.confidence = 0.0

    def estimate(self, raw_values, filtered_values) -> LipidsResult:
        if len(raw_values) < LIPIDS_MIN_SAMPLES or len(filtered_values) < LIPIDS_MIN_SAMPLES:
            self.confidence = 0.0
            return LipidsResult()

        raw = list(raw_values)[-LIPIDS_WINDOW:]
        filtered = np.asarray(list(filtered_values)[-LIPIDS_WINDOW:], dtype=np.float64)

        pi = perfusion_index(raw)
        peaks, valleys = find_peaks_and_valleys(filtered, self.fs)
        rise_times = peak_to_valley_times(peaks, valleys)
        rise_s = float(np.mean(rise_times)) / self.fs if rise_times else 0.25

        cholesterol = 150.0 + 80.0 * (1.0 - min(1.0, 20.0 * pi)) + 100.0 * (rise_s - 0.25)
        cholesterol = float(np.clip(cholesterol, 120, 300))
        triglycerides = float(np.clip(150.0 - 2000.0 * (pi - 0.02), 80, 220))

        self._cholesterol = self._smooth(self._cholesterol, cholesterol)
        self._triglycerides = self._smooth(self._triglycerides, triglycerides)

        self.confidence = float(
            (0.9 if 0.001 < pi < 0.2 else 0.1)
            * (0.9 if len(peaks) >= 2 else 0.1)
            * min(1.0, len(raw) / LIPIDS_WINDOW)
        )

        return LipidsResult(
            total_cholesterol=round(self._cholesterol),
            triglycerides=round(self._triglycerides),
        )

    @staticmethod
    def _smooth(previous: float, current: float) -> float:
        return previous * 0.7 + current * 0.3 if previous > 0 else current
