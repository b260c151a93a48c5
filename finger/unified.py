"""
finger/unified.py — Unified finger detector
============================================
Single authority on "is a finger on the lens?".  Independent heuristic
sources report `(detected, confidence)` readings; this module fuses them
into one decision.

Fusion
------
    weight_s   = base_weight_s × max(0.1, 1 − age_s / 10 s)
    target     = Σ weight_s · (confidence_s if detected_s else 0) / Σ weight_s
    confidence ← 0.7 · confidence + 0.3 · target

Sources older than 10 s are ignored.  Brightness and amplifier quality can
only corroborate a pulsatile source: a lit, covered lens with no pulse (or
a flat test signal) must never count as a finger, so with neither the
amplitude nor the rhythm source detected the target is 0.

Hysteresis
----------
The candidate decision `confidence ≥ 0.5 · (2 − sensitivity)` must hold
continuously for the dwell time (default 1 s) before the published state
flips.  A candidate that reverts early restarts the timer.
"""

from dataclasses import dataclass, field

from config import (
    BRIGHTNESS_MIN,
    BRIGHTNESS_MAX,
    FINGER_SENSITIVITY,
    FINGER_HYSTERESIS_MS,
    FINGER_SOURCE_MAX_AGE_S,
    FINGER_SOURCE_WEIGHTS,
    FINGER_CONFIDENCE_SMOOTHING,
)
from finger.amplitude import SourceReading
from utils.logger import get_logger

logger = get_logger("finger.unified")

PULSATILE_SOURCES = ("amplitude", "rhythm")


@dataclass
class _SourceState:
    detected: bool = False
    confidence: float = 0.0
    last_update_ms: float | None = None


@dataclass
class DetectionState:
    """Snapshot of the fused decision."""
    is_finger_detected: bool = False
    confidence: float = 0.0
    consensus_level: float = 0.0
    sources: dict[str, dict] = field(default_factory=dict)
    last_update_ms: float | None = None


def brightness_reading(brightness: float) -> SourceReading:
    """
    Brightness source: inside the [min, max] window the confidence peaks at
    the window centre and falls to 0 at its edges.
    """
    if not BRIGHTNESS_MIN <= brightness <= BRIGHTNESS_MAX:
        return SourceReading(False, 0.0)
    centre = (BRIGHTNESS_MIN + BRIGHTNESS_MAX) / 2.0
    half = (BRIGHTNESS_MAX - BRIGHTNESS_MIN) / 2.0
    return SourceReading(True, max(0.0, 1.0 - abs(brightness - centre) / half))


class UnifiedFingerDetector:
    """
    Weighted, time-decayed fusion of finger-detection sources with dwell-time
    hysteresis.

    Parameters
    ----------
    sensitivity   : float   0 (strict) … 1 (permissive); sets the threshold.
    hysteresis_ms : float   Dwell time before a state change is published.
    """

    def __init__(
        self,
        sensitivity: float = FINGER_SENSITIVITY,
        hysteresis_ms: float = FINGER_HYSTERESIS_MS,
    ):
        self.sensitivity = min(1.0, max(0.0, sensitivity))
        self._weights = dict(FINGER_SOURCE_WEIGHTS)
        self._sources: dict[str, _SourceState] = {}
        self.set_hysteresis(hysteresis_ms)
        self.reset()

    # ── Public API ───────────────────────────────────────────────────────────

    @property
    def threshold(self) -> float:
        return 0.5 * (2.0 - self.sensitivity)

    def reset(self) -> None:
        self._sources = {name: _SourceState() for name in self._weights}
        self._detected = False
        self._confidence = 0.0
        self._consensus = 0.0
        self._now_ms: float | None = None
        self._pending_since_ms: float | None = None
        self._last_change_ms: float | None = None
        self.state_changes = 0
        logger.info("Finger detector reset.")

    def update_source(
        self,
        source: str,
        detected: bool,
        confidence: float,
        timestamp_ms: float,
    ) -> DetectionState:
        """Record one source reading and recompute the fused state."""
        self._store(source, detected, confidence, timestamp_ms)
        self._recalculate()
        return self.get_state()

    def update_sources(
        self,
        readings: dict[str, SourceReading],
        timestamp_ms: float,
    ) -> DetectionState:
        """Record several readings taken at the same instant, then fuse once."""
        for source, reading in readings.items():
            self._store(source, reading.detected, reading.confidence, timestamp_ms)
        self._recalculate()
        return self.get_state()

    def update_brightness(self, brightness: float, timestamp_ms: float) -> DetectionState:
        reading = brightness_reading(brightness)
        return self.update_source("brightness", reading.detected, reading.confidence, timestamp_ms)

    def get_state(self) -> DetectionState:
        return DetectionState(
            is_finger_detected=self._detected,
            confidence=self._confidence,
            consensus_level=self._consensus,
            sources={
                name: {"detected": s.detected, "confidence": s.confidence}
                for name, s in self._sources.items()
            },
            last_update_ms=self._now_ms,
        )

    def get_statistics(self) -> dict:
        now = self._now_ms
        return {
            "is_finger_detected": self._detected,
            "confidence": self._confidence,
            "threshold": self.threshold,
            "hysteresis_ms": self.hysteresis_ms,
            "state_changes": self.state_changes,
            "last_change_ms": self._last_change_ms,
            "sources": {
                name: {
                    "detected": s.detected,
                    "confidence": s.confidence,
                    "weight": self._weights.get(name, 1.0),
                    "age_ms": (
                        now - s.last_update_ms
                        if now is not None and s.last_update_ms is not None
                        else None
                    ),
                }
                for name, s in self._sources.items()
            },
        }

    def set_source_weight(self, source: str, weight: float) -> None:
        self._weights[source] = min(2.0, max(0.1, weight))
        logger.debug("Weight of source '%s' set to %.2f", source, self._weights[source])

    def set_hysteresis(self, milliseconds: float) -> None:
        self.hysteresis_ms = min(5000.0, max(0.0, milliseconds))

    # ── Private ──────────────────────────────────────────────────────────────

    def _store(self, source: str, detected: bool, confidence: float, timestamp_ms: float) -> None:
        state = self._sources.setdefault(source, _SourceState())
        state.detected = bool(detected)
        state.confidence = min(1.0, max(0.0, float(confidence)))
        state.last_update_ms = timestamp_ms
        self._now_ms = timestamp_ms if self._now_ms is None else max(self._now_ms, timestamp_ms)

    def _recalculate(self) -> None:
        now = self._now_ms
        weighted_sum = 0.0
        total_weight = 0.0
        active = 0
        recent = 0
        pulsatile = False

        for name, s in self._sources.items():
            if s.last_update_ms is None:
                continue
            age_s = (now - s.last_update_ms) / 1000.0
            if age_s > FINGER_SOURCE_MAX_AGE_S:
                continue

            weight = self._weights.get(name, 1.0) * max(0.1, 1.0 - age_s / FINGER_SOURCE_MAX_AGE_S)
            weighted_sum += (s.confidence if s.detected else 0.0) * weight
            total_weight += weight
            recent += 1
            if s.detected:
                active += 1
                if name in PULSATILE_SOURCES:
                    pulsatile = True

        target = weighted_sum / total_weight if total_weight > 0 else 0.0
        if not pulsatile:
            target = 0.0

        alpha = FINGER_CONFIDENCE_SMOOTHING
        self._confidence = self._confidence * (1 - alpha) + target * alpha
        self._consensus = active / recent if recent else 0.0

        candidate = self._confidence >= self.threshold
        if candidate == self._detected:
            self._pending_since_ms = None
            return

        if self._pending_since_ms is None:
            self._pending_since_ms = now
        if now - self._pending_since_ms >= self.hysteresis_ms:
            self._detected = candidate
            self._pending_since_ms = None
            self._last_change_ms = now
            self.state_changes += 1
            logger.info(
                "Finger %s (confidence=%.2f, active sources %d/%d)",
                "DETECTED" if candidate else "LOST",
                self._confidence, active, recent,
            )
