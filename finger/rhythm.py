"""
finger/rhythm.py — Rhythm-based finger presence
================================================
Amplitude alone is fooled by a hand waving in front of the lens.  A real
fingertip produces *periodic* peaks at a physiological rate, so this source
looks for a run of peaks with plausible, mutually consistent spacing.

Per sample:
    1. Keep (timestamp, value) history for twice the pattern window.
    2. In the last window, find 5-point local maxima above the adjusted
       threshold, at least MIN_PEAK_DISTANCE_MS apart.
    3. With ≥ 3 peaks, keep intervals in [333, 1500] ms (40–180 BPM); at
       least 70 % of intervals must survive.
    4. Count neighbouring intervals that differ by < 200 ms; ≥ 2 such pairs
       make a "pattern".
    5. A counter rises by 1 per pattern (max 10) and decays by 0.5
       otherwise; presence is confirmed once it reaches the required count
       and revoked when peaks stop for the timeout and the counter runs out.
"""

from collections import deque

from config import (
    RHYTHM_PEAK_THRESHOLD,
    RHYTHM_PATTERN_WINDOW_MS,
    RHYTHM_PATTERN_TIMEOUT_MS,
    RHYTHM_MIN_INTERVAL_MS,
    RHYTHM_MAX_INTERVAL_MS,
    RHYTHM_MAX_DEVIATION_MS,
    MIN_PEAK_DISTANCE_MS,
    FINGER_SENSITIVITY,
)
from finger.amplitude import SourceReading
from utils.logger import get_logger

logger = get_logger("finger.rhythm")

MIN_PEAKS_FOR_PATTERN = 3
MAX_CONSISTENT_PATTERNS = 10


class RhythmPatternDetector:
    """Detects sustained heartbeat-like periodicity in the amplified signal."""

    def __init__(
        self,
        threshold: float = RHYTHM_PEAK_THRESHOLD,
        sensitivity: float = FINGER_SENSITIVITY,
    ):
        self.threshold = threshold
        self.sensitivity = min(1.0, max(0.0, sensitivity))
        self.required_patterns = round(3 + (1 - self.sensitivity) * 2)
        self._history: deque[tuple[float, float]] = deque()
        self.reset()

    def reset(self) -> None:
        self._history.clear()
        self._last_peak_times: list[float] = []
        self.consistent_patterns = 0.0
        self.is_finger_detected = False

    @property
    def confidence(self) -> float:
        return min(1.0, self.consistent_patterns / self.required_patterns)

    def update(self, value: float, timestamp_ms: float) -> SourceReading:
        """Feed one amplified sample and return the current reading."""
        if self.is_finger_detected and not self._pattern_still_valid(timestamp_ms):
            self.consistent_patterns = max(0.0, self.consistent_patterns - 1)
            if self.consistent_patterns < 1:
                self.is_finger_detected = False
                logger.debug("Rhythm source: pattern lost at %.0f ms", timestamp_ms)

        self._history.append((timestamp_ms, value))
        horizon = timestamp_ms - RHYTHM_PATTERN_WINDOW_MS * 2
        while self._history and self._history[0][0] < horizon:
            self._history.popleft()

        has_pattern = self._detect_pattern(timestamp_ms)
        if has_pattern:
            self.consistent_patterns = min(MAX_CONSISTENT_PATTERNS, self.consistent_patterns + 1)
            if not self.is_finger_detected and self.consistent_patterns >= self.required_patterns:
                self.is_finger_detected = True
                logger.debug(
                    "Rhythm source: confirmed after %d consistent patterns",
                    int(self.consistent_patterns),
                )
        else:
            self.consistent_patterns = max(0.0, self.consistent_patterns - 0.5)

        return SourceReading(self.is_finger_detected, self.confidence)

    # ── Private ──────────────────────────────────────────────────────────────

    def _detect_pattern(self, now_ms: float) -> bool:
        if len(self._history) < 15:
            return False

        recent = [p for p in self._history if now_ms - p[0] < RHYTHM_PATTERN_WINDOW_MS]
        if len(recent) < 10:
            return False

        adjusted_threshold = self.threshold * (1.2 - self.sensitivity)
        peaks: list[float] = []
        for i in range(2, len(recent) - 2):
            t, v = recent[i]
            neighbours = (recent[i - 2][1], recent[i - 1][1], recent[i + 1][1], recent[i + 2][1])
            if v > adjusted_threshold and all(v > n for n in neighbours):
                if not peaks or t - peaks[-1] >= MIN_PEAK_DISTANCE_MS:
                    peaks.append(t)

        if len(peaks) < MIN_PEAKS_FOR_PATTERN:
            return False

        intervals = [b - a for a, b in zip(peaks, peaks[1:])]
        valid = [i for i in intervals if RHYTHM_MIN_INTERVAL_MS <= i <= RHYTHM_MAX_INTERVAL_MS]
        if len(valid) < int(len(intervals) * 0.7) or len(valid) < 2:
            return False

        consistent = sum(
            1 for a, b in zip(valid, valid[1:]) if abs(b - a) < RHYTHM_MAX_DEVIATION_MS
        )
        if consistent >= MIN_PEAKS_FOR_PATTERN - 1:
            self._last_peak_times = peaks
            return True
        return False

    def _pattern_still_valid(self, now_ms: float) -> bool:
        if not self._last_peak_times:
            return False
        return now_ms - self._last_peak_times[-1] <= RHYTHM_PATTERN_TIMEOUT_MS
