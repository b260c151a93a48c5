"""
vitals/spo2.py — Oxygen saturation estimate
============================================
Pulse oximeters compare the pulsatile/baseline ratio of red and infrared
light.  A phone camera only has the red channel, so the estimate collapses
to a single-wavelength "ratio of ratios":

    R     = AC / DC                    over the last 30 raw samples
    SpO2  = intercept − slope · R      (98 − 15·R by default)

nudged by perfusion quality and averaged over the last 10 estimates.

Calibration
-----------
`calibrate(ratios, references)` fits intercept and slope against reference
oximeter readings with an ordinary least-squares `LinearRegression`.

⚠️  Without an infrared channel this is a wellness indicator only.
    Every computed estimate is clamped to [70, 100] %; 0 means "no data".
"""

from collections import deque

import numpy as np
from sklearn.linear_model import LinearRegression

from config import (
    MIN_VITALS_SAMPLES,
    SPO2_WINDOW,
    SPO2_INTERCEPT,
    SPO2_SLOPE,
    SPO2_MIN,
    SPO2_MAX,
    SPO2_MIN_PERFUSION,
    SPO2_AVERAGE_SIZE,
)
from utils.logger import get_logger
from vitals.waveform import ac_component, dc_component

logger = get_logger("vitals.spo2")

# Perfusion indices treated as very good / barely usable
HIGH_PERFUSION = 0.05
LOW_PERFUSION = 0.005


class SpO2Estimator:
    def __init__(self, intercept: float = SPO2_INTERCEPT, slope: float = SPO2_SLOPE):
        self.intercept = intercept
        self.slope = slope
        self._estimates: deque[float] = deque(maxlen=SPO2_AVERAGE_SIZE)

    def reset(self) -> None:
        self._estimates.clear()

    def estimate(self, raw_values) -> float:
        """
        SpO2 in % from the raw intensity buffer.

        Returns 0 with fewer than 20 samples.  A window with too little
        perfusion repeats the last estimate minus one point, or 0 when there
        is none yet.
        """
        if len(raw_values) < MIN_VITALS_SAMPLES:
            return 0

        window = list(raw_values)[-SPO2_WINDOW:]
        dc = dc_component(window)
        if dc <= 0:
            return self._last_valid(decay=1)

        ratio = ac_component(window) / dc
        if ratio < SPO2_MIN_PERFUSION:
            logger.warning("Perfusion index %.4f below %.4f; SpO2 held.", ratio, SPO2_MIN_PERFUSION)
            return self._last_valid(decay=2)

        spo2 = self.intercept - self.slope * ratio
        if ratio > HIGH_PERFUSION:
            spo2 += 1
        elif ratio < LOW_PERFUSION:
            spo2 -= 1

        self._estimates.append(self._clamp(round(spo2)))
        return self._clamp(round(float(np.mean(self._estimates))))

    def calibrate(self, ratios, references) -> tuple[float, float]:
        """
        Fit `SpO2 = intercept − slope · R` to reference readings.

        Parameters
        ----------
        ratios     : sequence of float   Measured AC/DC ratios.
        references : sequence of float   Reference SpO2 values (%).

        Returns
        -------
        (intercept, slope)
        """
        x = np.asarray(ratios, dtype=np.float64).reshape(-1, 1)
        y = np.asarray(references, dtype=np.float64)
        if len(x) != len(y):
            raise ValueError(f"Got {len(x)} ratios but {len(y)} references.")
        if len(x) < 2:
            raise ValueError("Calibration needs at least 2 reference points.")
        if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
            raise ValueError("Calibration data must be finite.")
        if np.ptp(x) == 0:
            raise ValueError("Calibration ratios must not all be equal.")

        model = LinearRegression().fit(x, y)
        self.intercept = float(model.intercept_)
        self.slope = float(-model.coef_[0])
        self._estimates.clear()
        logger.info("SpO2 calibrated: intercept=%.2f slope=%.2f", self.intercept, self.slope)
        return self.intercept, self.slope

    # ── Private ──────────────────────────────────────────────────────────────

    @staticmethod
    def _clamp(value: float) -> float:
        return float(min(SPO2_MAX, max(SPO2_MIN, value)))

    def _last_valid(self, decay: int) -> float:
        if not self._estimates:
            return 0
        return self._clamp(self._estimates[-1] - decay)
