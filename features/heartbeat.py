"""
features/heartbeat.py — Real-time heartbeat detection
======================================================
Sample-by-sample peak detector for the amplified PPG signal.

A sample is declared a systolic peak once the *next* sample arrives and
shows it was a local maximum:

    x[n-1] > x[n-2]   and   x[n-1] ≥ x[n]
    x[n-1] > min(last 20) + 0.5 · range(last 20)     (adaptive threshold)
    t[n-1] − t_last_peak ≥ 300 ms                    (refractory period)

Consecutive peaks give RR intervals; intervals outside the physiological
range [250, 2000] ms (240–30 BPM) are discarded before they ever reach the
BPM estimate.
"""

from collections import deque
from dataclasses import dataclass, field

import numpy as np

from config import (
    HB_BUFFER_SIZE,
    HB_THRESHOLD_WINDOW,
    HB_THRESHOLD_RATIO,
    MIN_PEAK_DISTANCE_MS,
    MIN_RR_MS,
    MAX_RR_MS,
    RR_WINDOW,
    MIN_BPM,
    MAX_BPM,
)
from utils.logger import get_logger

logger = get_logger("features.heartbeat")

# Intervals further than this fraction from the median are treated as
# missed / extra beats and left out of the BPM average.
OUTLIER_FRACTION = 0.30
MIN_INTERVALS_FOR_BPM = 3


@dataclass
class RRIntervalData:
    intervals: list[float] = field(default_factory=list)   # ms, oldest first
    last_peak_time: float | None = None


@dataclass
class HeartBeatResult:
    bpm: float
    confidence: float
    is_peak: bool
    arrhythmia_count: int
    rr_data: RRIntervalData


def compute_bpm(intervals: list[float]) -> tuple[float, float]:
    """
    Heart rate from RR intervals.

    Parameters
    ----------
    intervals : list[float]   RR intervals in ms, oldest first.

    Returns
    -------
    bpm        : float   Rounded, clipped to [30, 240]; 0 if not enough data.
    confidence : float   1 − coefficient of variation, in [0, 1].
    """
    rr = np.asarray([i for i in intervals if MIN_RR_MS <= i <= MAX_RR_MS], dtype=np.float64)
    if len(rr) < MIN_INTERVALS_FOR_BPM:
        return 0, 0.0

    median = np.median(rr)
    rr = rr[np.abs(rr - median) <= OUTLIER_FRACTION * median]
    if len(rr) < MIN_INTERVALS_FOR_BPM:
        return 0, 0.0

    # Newer beats weigh more: 1, 2, … n
    weights = np.arange(1, len(rr) + 1, dtype=np.float64)
    weighted_mean = float(np.average(rr, weights=weights))

    bpm = float(np.clip(round(60000.0 / weighted_mean), MIN_BPM, MAX_BPM))
    confidence = float(np.clip(1.0 - rr.std() / rr.mean(), 0.0, 1.0))
    return bpm, confidence


class HeartBeatProcessor:
    """Streaming peak detector that maintains the RR-interval window."""

    def __init__(self):
        self._values: deque[float] = deque(maxlen=HB_BUFFER_SIZE)
        self._times: deque[float] = deque(maxlen=HB_BUFFER_SIZE)
        self._intervals: deque[float] = deque(maxlen=RR_WINDOW)
        self.reset()

    def reset(self) -> None:
        self._values.clear()
        self._times.clear()
        self._intervals.clear()
        self._last_peak_time: float | None = None
        self._bpm = 0
        self._confidence = 0.0
        self.rejected_intervals = 0

    @property
    def bpm(self) -> float:
        return self._bpm

    def get_rr_data(self) -> RRIntervalData:
        return RRIntervalData(intervals=list(self._intervals), last_peak_time=self._last_peak_time)

    def process_sample(self, value: float, timestamp_ms: float) -> HeartBeatResult:
        self._values.append(float(value))
        self._times.append(float(timestamp_ms))

        is_peak = False
        if len(self._values) > 10 and self._is_peak():
            peak_time = self._times[-2]
            if self._last_peak_time is None or peak_time - self._last_peak_time >= MIN_PEAK_DISTANCE_MS:
                is_peak = True
                self._register_peak(peak_time)

        return HeartBeatResult(
            bpm=self._bpm,
            confidence=self._confidence,
            is_peak=is_peak,
            arrhythmia_count=0,
            rr_data=self.get_rr_data(),
        )

    # ── Private ──────────────────────────────────────────────────────────────

    def _is_peak(self) -> bool:
        prev2, prev, current = self._values[-3], self._values[-2], self._values[-1]
        if not (prev > prev2 and prev >= current):
            return False

        window = list(self._values)[-HB_THRESHOLD_WINDOW:]
        lo, hi = min(window), max(window)
        if hi - lo <= 1e-9:
            return False
        return prev > lo + HB_THRESHOLD_RATIO * (hi - lo)

    def _register_peak(self, peak_time: float) -> None:
        if self._last_peak_time is not None:
            interval = peak_time - self._last_peak_time
            if MIN_RR_MS <= interval <= MAX_RR_MS:
                self._intervals.append(interval)
                self._bpm, self._confidence = compute_bpm(list(self._intervals))
            else:
                self.rejected_intervals += 1
                logger.debug("Rejected implausible RR interval of %.0f ms", interval)
        self._last_peak_time = peak_time
