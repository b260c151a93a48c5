"""
ppg/amplifier.py — Adaptive signal amplifier & normaliser
==========================================================
The bandpassed camera signal is tiny (a fraction of an intensity unit) and
its amplitude depends on finger pressure, skin tone and torch power.  The
amplifier keeps a short history and steers a gain so that beats come out at
a roughly constant size:

    variation  = mean |x − mean(x)|  over the last 5 samples

    0.08 < variation < 5   →  healthy signal; move the gain toward
                              1.7 / clamp(variation, 0.4, 2.0), boosted
                              further when the last 10 samples look like a
                              heartbeat
    variation ≤ 0.08       →  too weak; raise the gain by 15 %
    variation ≥ 5          →  probably motion; lower the gain by 8 %

Sharp sample-to-sample changes receive a small signed emphasis so that
systolic upstrokes stand out for the peak detector downstream.

`normalize_signal()` / `amplify_signal()` provide the bounded display
representation in [-1, 1].
"""

from collections import deque
from dataclasses import dataclass

import numpy as np

from config import (
    AMP_HISTORY_SIZE,
    AMP_BASE_GAIN,
    AMP_MIN_GAIN,
    AMP_MAX_GAIN,
    AMP_ADAPTATION_RATE,
    AMP_HEARTBEAT_BOOST,
    AMP_PEAK_EMPHASIS,
)


def normalize_signal(value: float, recent_values) -> float:
    """
    Map `value` into [-0.5, 0.5] relative to the range of `recent_values`.

    Fewer than 3 history points → value unchanged; flat history → 0.
    """
    if len(recent_values) < 3:
        return value

    lo = min(recent_values)
    hi = max(recent_values)
    span = hi - lo
    if span < 1e-4:
        return 0.0

    centre = (hi + lo) / 2.0
    return float(np.clip((value - centre) / span, -0.5, 0.5))


def amplify_signal(normalized_value: float, factor: float = 1.0) -> float:
    """Scale a normalised value and clamp it to [-1, 1]."""
    return float(np.clip(normalized_value * factor, -1.0, 1.0))


@dataclass
class AmplifierResult:
    amplified_value: float
    quality: float        # 0–1, smoothed
    gain: float


class SignalAmplifier:
    """Adaptive-gain amplifier for the bandpassed PPG signal."""

    def __init__(self):
        self._history: deque[float] = deque(maxlen=AMP_HISTORY_SIZE)
        self.reset()

    def reset(self) -> None:
        self._gain = AMP_BASE_GAIN
        self._adaptive_gain = 1.0
        self._quality = 0.0
        self._history.clear()

    @property
    def current_gain(self) -> float:
        return self._gain * self._adaptive_gain

    @property
    def quality(self) -> float:
        return self._quality

    def process_value(self, value: float) -> AmplifierResult:
        self._history.append(value)
        history = list(self._history)

        quality = 0.0
        amplified = value * self._gain

        if len(history) >= 5:
            recent = np.asarray(history[-5:])
            variation = float(np.mean(np.abs(recent - recent.mean())))

            beat_confidence = 0.0
            if len(history) >= 10:
                beat_confidence = self._heartbeat_confidence(history[-10:])
            is_beat = beat_confidence > 0.5

            if 0.08 < variation < 5.0:
                target = 1.7 / max(0.4, min(2.0, variation))
                if is_beat:
                    target *= AMP_HEARTBEAT_BOOST * (0.8 + beat_confidence * 0.4)
                self._adaptive_gain = (
                    self._adaptive_gain * (1 - AMP_ADAPTATION_RATE)
                    + target * AMP_ADAPTATION_RATE
                )
                quality = min(1.0, (0.2 + variation) / 2.0)
            elif variation <= 0.08:
                quality = max(0.1, variation)
                self._adaptive_gain *= 1.15
            else:
                quality = max(0.1, 5.0 / variation)
                self._adaptive_gain *= 0.92

            self._adaptive_gain = float(np.clip(self._adaptive_gain, AMP_MIN_GAIN, AMP_MAX_GAIN))
            amplified = value * self.current_gain

            # Emphasise direction changes so peaks stand out
            if len(history) >= 3:
                change = value - history[-2]
                if abs(change) > 0.04:
                    amplified += np.sign(change) * min(abs(change) * AMP_PEAK_EMPHASIS, 0.8)
                    if is_beat and change > 0:
                        amplified += change * 0.3 * beat_confidence

            if is_beat:
                slope = float(np.mean(np.diff(recent)))
                if slope > 0.05:
                    amplified += slope * 0.4

        self._quality = self._quality * 0.7 + quality * 0.3

        return AmplifierResult(
            amplified_value=float(amplified),
            quality=self._quality,
            gain=self.current_gain,
        )

    # ── Private ──────────────────────────────────────────────────────────────

    @staticmethod
    def _heartbeat_confidence(values: list[float]) -> float:
        """Score in [0, 1] of how much a short window resembles a pulse."""
        x = np.asarray(values, dtype=np.float64)
        diffs = np.diff(x)

        # Direction reversals (peaks and troughs)
        sign_changes = int(np.sum(diffs[1:] * diffs[:-1] < 0))

        rhythm_score = 0.0
        if sign_changes >= 2:
            peaks = [i for i in range(1, len(x) - 1) if x[i] > x[i - 1] and x[i] > x[i + 1]]
            if len(peaks) >= 2:
                intervals = np.diff(peaks).astype(np.float64)
                avg = intervals.mean()
                rhythm_score = max(0.0, 1.0 - float(np.mean(np.abs(intervals - avg) / avg)))

        variance = float(x.var())
        sign_score = min(sign_changes / 3.0, 1.0)
        variance_score = 1.0 if 0.01 < variance < 0.7 else 0.1

        return sign_score * 0.4 + variance_score * 0.3 + rhythm_score * 0.3
