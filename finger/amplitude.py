"""
finger/amplitude.py — Amplitude-based finger presence
======================================================
A fingertip over the lens turns the frame into a pulsing red field; an
uncovered lens shows a scene whose bandpassed brightness barely moves.  The
peak-to-peak amplitude of the amplified signal over the last second is
therefore a cheap first presence cue.

Hysteresis is done with consecutive-frame counters:

    3 strong frames in a row  →  detected
    5 weak frames in a row    →  lost
"""

from collections import deque
from dataclasses import dataclass

from config import (
    AMPLITUDE_THRESHOLD,
    AMPLITUDE_WINDOW,
    AMPLITUDE_REQUIRED_STRONG,
    AMPLITUDE_REQUIRED_WEAK,
    MIN_QUALITY_PERCENT,
)
from utils.logger import get_logger

logger = get_logger("finger.amplitude")


@dataclass
class SourceReading:
    """What a single detection source reports to the unified detector."""
    detected: bool
    confidence: float


class AmplitudeDetector:
    """Peak-to-peak amplitude detector with frame-count hysteresis."""

    def __init__(self, threshold: float = AMPLITUDE_THRESHOLD):
        if threshold <= 0:
            raise ValueError(f"Amplitude threshold must be positive, got {threshold}.")
        self.threshold = threshold
        self._window: deque[float] = deque(maxlen=AMPLITUDE_WINDOW)
        self.reset()

    def reset(self) -> None:
        self._window.clear()
        self.is_finger_detected = False
        self.signal_strength = 0.0
        self.confidence = 0.0
        self._consecutive_strong = 0
        self._consecutive_weak = 0

    def update(self, value: float) -> SourceReading:
        """Feed one amplified sample and return the current reading."""
        self._window.append(value)
        self.signal_strength = max(self._window) - min(self._window)

        if self.signal_strength >= self.threshold:
            self._consecutive_strong += 1
            self._consecutive_weak = 0
        else:
            self._consecutive_weak += 1
            self._consecutive_strong = 0

        if not self.is_finger_detected and self._consecutive_strong >= AMPLITUDE_REQUIRED_STRONG:
            self.is_finger_detected = True
            logger.debug("Amplitude source: detected (p2p=%.3f)", self.signal_strength)
        elif self.is_finger_detected and self._consecutive_weak >= AMPLITUDE_REQUIRED_WEAK:
            self.is_finger_detected = False
            logger.debug("Amplitude source: lost (p2p=%.3f)", self.signal_strength)

        if self.is_finger_detected:
            self.confidence = min(1.0, self.signal_strength / (self.threshold * 2))
        else:
            self.confidence = max(0.0, 1.0 - self.signal_strength / self.threshold)

        return SourceReading(self.is_finger_detected, self.confidence)

    def should_process(self, value: float, quality_percent: float) -> bool:
        """True when a sample is strong enough and clean enough to trust."""
        return abs(value) >= self.threshold and quality_percent >= MIN_QUALITY_PERCENT
