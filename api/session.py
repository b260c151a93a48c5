"""
api/session.py — Monitoring Session Manager
=============================================
Owns one `PPGPipeline` and feeds it the sample batches posted by the
client.  The FastAPI routes interact with this object to push samples,
read the latest snapshot, run the batch analysis and reset.

Thread safety
-------------
FastAPI may serve requests concurrently; every access to the pipeline and
to the cached snapshot happens under `_lock`.

Atomicity
---------
A batch is validated as a whole (finite values, strictly increasing
timestamps continuing from the last accepted sample) before any sample
reaches the pipeline, so a rejected request leaves the session untouched.
"""

import math
import threading

from ppg.pipeline import PPGPipeline, PipelineResult, Sample
from utils.logger import get_logger

logger = get_logger("api.session")

# ── Disclaimer string injected into every response ──────────────────────────
DISCLAIMER = (
    "⚠️ This is a WELLNESS ESTIMATION tool — NOT a medical device. "
    "Heart rate, SpO2, blood pressure, glucose, lipids, hydration and rhythm "
    "status are ESTIMATES derived from a phone-camera PPG signal. "
    "They have NOT been validated for clinical use. "
    "Do NOT make medical decisions based on these readings. "
    "Consult a qualified healthcare professional for diagnosis or treatment."
)


def validate_samples(samples: list[Sample], last_timestamp: float | None) -> None:
    """Raise ValueError if any sample is non-finite or out of order."""
    previous = last_timestamp
    for i, s in enumerate(samples):
        if not (math.isfinite(s.raw_value) and math.isfinite(s.timestamp_ms)):
            raise ValueError(f"Sample {i} is not finite (t={s.timestamp_ms}, value={s.raw_value}).")
        if previous is not None and s.timestamp_ms <= previous:
            raise ValueError(
                f"Sample {i}: timestamp {s.timestamp_ms} ms does not follow {previous} ms."
            )
        previous = s.timestamp_ms


def snapshot(result: PipelineResult, samples_processed: int) -> dict:
    """JSON-ready view of a pipeline result."""
    vitals = result.vitals.to_dict()
    return {
        "disclaimer": DISCLAIMER,
        "timestamp_ms": result.timestamp_ms,
        "samples_processed": samples_processed,
        "signal": {
            "raw_value": result.raw_value,
            "filtered_value": round(result.filtered_value, 4),
            "amplified_value": round(result.amplified_value, 4),
            "quality": round(result.quality, 1),
        },
        "finger": {
            "is_finger_detected": result.finger.is_finger_detected,
            "confidence": round(result.finger.confidence, 3),
            "consensus_level": round(result.finger.consensus_level, 3),
            "sources": result.finger.sources,
        },
        "heartbeat": {
            "bpm": result.heartbeat.bpm,
            "confidence": round(result.heartbeat.confidence, 3),
            "is_peak": result.heartbeat.is_peak,
            "arrhythmia_count": result.heartbeat.arrhythmia_count,
            "rr_intervals": list(result.heartbeat.rr_data.intervals),
        },
        "vitals": vitals,
    }


class MonitoringSession:
    """
    Manages one continuous monitoring stream.

    Instantiate once at application startup and reuse across requests.
    The pipeline (and with it the BP model) is created on the first batch.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pipeline: PPGPipeline | None = None
        self._samples_processed = 0
        self._state: dict | None = None
        logger.info("MonitoringSession initialised.")

    # ── Public API ─────────────────────────────────────────────────────────

    @property
    def status(self) -> str:
        with self._lock:
            return "monitoring" if self._samples_processed else "idle"

    def add_samples(self, samples: list[Sample]) -> dict:
        """
        Feed a batch into the pipeline and return the latest snapshot.

        Raises
        ------
        ValueError
            If the batch is empty or contains invalid samples; nothing is
            processed in that case.
        """
        if not samples:
            raise ValueError("A batch needs at least one sample.")

        with self._lock:
            if self._pipeline is None:
                self._pipeline = PPGPipeline()
            validate_samples(samples, self._pipeline.last_timestamp)

            result = self._pipeline.process_samples(samples)
            self._samples_processed += len(samples)
            self._state = snapshot(result, self._samples_processed)
            state = self._state

        logger.debug("Processed %d samples (total %d).", len(samples), self._samples_processed)
        return state

    def get_state(self) -> dict | None:
        with self._lock:
            return self._state

    def analyze(self) -> dict:
        """
        Batch analysis of the buffered signal.

        Raises
        ------
        ValueError
            If too few samples have been buffered.
        """
        with self._lock:
            if self._pipeline is None:
                raise ValueError("No samples have been received yet.")
            result = self._pipeline.analyze()
        return {"disclaimer": DISCLAIMER, **result}

    def reset(self) -> None:
        with self._lock:
            if self._pipeline is not None:
                self._pipeline.reset()
            self._samples_processed = 0
            self._state = None
        logger.info("Session reset.")
