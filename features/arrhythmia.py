"""
features/arrhythmia.py — Rhythm irregularity detection
=======================================================
Two layers look at the RR-interval window:

ArrhythmiaPatternDetector
    Keeps the last 10 *variation ratios* (|RR_new − mean(last 5)| / mean)
    and fires on
        • a sudden change  (the newest ratio differs from the one before by > 0.2)
        • a couplet        (the newest two ratios both > 0.2)
        • a high average   (mean ratio > 0.15)

ArrhythmiaProcessor
    Runs once per new RR window.  The newest beat is arrhythmic when the
    maximum deviation of the last 3 intervals from their mean exceeds 20 %,
    or the pattern detector or one of the interval-level patterns fires on
    it (premature beat followed by a compensatory pause, missed beat,
    irregular rhythm).  Consecutive arrhythmic beats form one episode and
    the counter rises once per episode.  It persists across `reset()`.

⚠️  A 30 fps camera cannot resolve what an ECG does.  Statuses are a
    wellness hint, never a diagnosis.
"""

from collections import deque
from dataclasses import dataclass

import numpy as np

from config import (
    ARRHYTHMIA_BUFFER_SIZE,
    ARRHYTHMIA_PATTERN_THRESHOLD,
    ARRHYTHMIA_VARIATION_THRESHOLD,
    PREMATURE_BEAT_THRESHOLD_PCT,
    MISSED_BEAT_THRESHOLD_PCT,
)
from features.heartbeat import RRIntervalData
from features.hrv import rmssd, rr_variation
from utils.logger import get_logger

logger = get_logger("features.arrhythmia")

NO_DATA_STATUS = "--"
MIN_PATTERN_ENTRIES = 5
MIN_INTERVALS = 3


@dataclass
class ArrhythmiaEvent:
    timestamp_ms: float
    rmssd: float           # ms
    rr_variation: float    # max relative deviation of the last 3 intervals
    kind: str              # premature_beat | missed_beat | irregular_rhythm | high_variation


# ── Interval-level patterns ──────────────────────────────────────────────────

def detect_premature_beats(intervals: list[float]) -> list[bool]:
    """Per interval: more than 20 % shorter than the mean."""
    if not intervals:
        return []
    mean = float(np.mean(intervals))
    limit = mean * (1 - PREMATURE_BEAT_THRESHOLD_PCT / 100.0)
    return [i < limit for i in intervals]


def detect_missed_beats(intervals: list[float]) -> list[bool]:
    """Per interval: more than 40 % longer than the mean."""
    if not intervals:
        return []
    mean = float(np.mean(intervals))
    limit = mean * (1 + MISSED_BEAT_THRESHOLD_PCT / 100.0)
    return [i > limit for i in intervals]


def detect_premature_pairs(intervals: list[float]) -> list[bool]:
    """
    Per interval from the second on: it is a compensatory pause (> 1.2 · mean)
    following a short interval (< 0.7 · mean).
    """
    if len(intervals) < MIN_INTERVALS:
        return []
    mean = float(np.mean(intervals))
    return [a < 0.7 * mean and b > 1.2 * mean for a, b in zip(intervals, intervals[1:])]


def has_premature_pattern(intervals: list[float]) -> bool:
    """A short interval followed by a compensatory one anywhere in the window."""
    return any(detect_premature_pairs(intervals))


def is_irregular_rhythm(intervals: list[float]) -> bool:
    """More than 60 % of intervals deviate by over 20 % from the mean."""
    if len(intervals) < MIN_INTERVALS:
        return False
    rr = np.asarray(intervals, dtype=np.float64)
    deviating = np.abs(rr - rr.mean()) / rr.mean() > 0.2
    return float(deviating.mean()) > 0.6


class ArrhythmiaPatternDetector:
    """Rolling buffer of RR variation ratios."""

    def __init__(self, buffer_size: int = ARRHYTHMIA_BUFFER_SIZE):
        self._buffer: deque[float] = deque(maxlen=buffer_size)

    def __len__(self) -> int:
        return len(self._buffer)

    def update(self, variation_ratio: float) -> None:
        self._buffer.append(float(variation_ratio))

    def reset(self) -> None:
        self._buffer.clear()

    def detect(self) -> bool:
        if len(self._buffer) < MIN_PATTERN_ENTRIES:
            return False

        ratios = list(self._buffer)
        previous, newest = ratios[-2], ratios[-1]
        t = ARRHYTHMIA_VARIATION_THRESHOLD

        sudden_change = abs(newest - previous) > t
        couplet = previous > t and newest > t
        high_mean = float(np.mean(ratios)) > ARRHYTHMIA_PATTERN_THRESHOLD

        return sudden_change or couplet or high_mean


class ArrhythmiaProcessor:
    """Turns the RR window into the `"NORMAL RHYTHM|n"` style status."""

    def __init__(self):
        self.pattern_detector = ArrhythmiaPatternDetector()
        self.arrhythmia_count = 0
        self.reset()

    def reset(self) -> None:
        """Clear buffers; the arrhythmia counter is kept."""
        self.pattern_detector.reset()
        self._last_window: tuple[float, ...] | None = None
        self._in_episode = False
        self._status = NO_DATA_STATUS
        self.last_event: ArrhythmiaEvent | None = None

    def full_reset(self) -> None:
        self.reset()
        self.arrhythmia_count = 0

    @property
    def status(self) -> str:
        return self._status

    def process_rr(self, rr_data: RRIntervalData, timestamp_ms: float) -> str:
        """
        Evaluate the RR window.  Only a window that gained an interval
        triggers an evaluation; a peak whose interval was rejected leaves the
        window unchanged and the previous status is returned.
        """
        intervals = list(rr_data.intervals)
        if len(intervals) < MIN_INTERVALS:
            self._status = NO_DATA_STATUS
            return self._status

        window = tuple(intervals)
        if window == self._last_window:
            return self._status
        self._last_window = window

        recent = intervals[-5:]
        mean_recent = float(np.mean(recent))
        self.pattern_detector.update(abs(intervals[-1] - mean_recent) / mean_recent)

        last3 = np.asarray(intervals[-3:], dtype=np.float64)
        max_variation = float(np.max(np.abs(last3 - last3.mean()) / last3.mean()))

        kind = None
        if detect_premature_pairs(intervals)[-1]:
            kind = "premature_beat"
        elif detect_missed_beats(intervals)[-1]:
            kind = "missed_beat"
        elif is_irregular_rhythm(intervals):
            kind = "irregular_rhythm"
        elif max_variation > ARRHYTHMIA_VARIATION_THRESHOLD or self.pattern_detector.detect():
            kind = "high_variation"

        if kind is None:
            self._in_episode = False
            self._status = f"NORMAL RHYTHM|{self.arrhythmia_count}"
            return self._status

        self.last_event = ArrhythmiaEvent(
            timestamp_ms=timestamp_ms,
            rmssd=rmssd(intervals),
            rr_variation=max_variation,
            kind=kind,
        )
        if self._in_episode:
            logger.debug("Arrhythmia #%d continues (%s)", self.arrhythmia_count, kind)
        else:
            self._in_episode = True
            self.arrhythmia_count += 1
            logger.info(
                "Arrhythmia #%d (%s): max variation %.2f, RMSSD %.1f ms, CV %.1f%%",
                self.arrhythmia_count, kind, max_variation,
                self.last_event.rmssd, rr_variation(intervals),
            )
        self._status = f"ARRHYTHMIA DETECTED|{self.arrhythmia_count}"
        return self._status
