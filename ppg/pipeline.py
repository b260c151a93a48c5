"""
ppg/pipeline.py — Per-sample PPG → vital-signs pipeline
========================================================
Orchestrates the full chain for each incoming sample:

    raw intensity  →  streaming bandpass  →  adaptive amplifier
                   →  finger sources (amplitude, rhythm, brightness, quality)
                   →  unified finger detector
                   →  heartbeat detector  →  arrhythmia (per beat)
                   →  vital signs (every 15 samples, finger present only)

Raw and filtered samples are kept in bounded buffers (10 s at 30 fps).
When the finger is lost the vital signs fall back to the empty snapshot.

`analyze()` re-filters the raw buffer zero-phase and runs the batch
FFT / peak-detection heart-rate cross-check plus HRV on it.
"""

import math
from collections import deque
from dataclasses import dataclass, field, asdict

import numpy as np

from config import (
    SAMPLE_RATE_HZ,
    SIGNAL_BUFFER_SIZE,
    VITALS_UPDATE_EVERY,
    MIN_QUALITY_PERCENT,
)
from features.heartbeat import HeartBeatProcessor, HeartBeatResult, RRIntervalData
from features.hr import estimate_hr
from features.hrv import compute_hrv
from finger.amplitude import AmplitudeDetector, SourceReading
from finger.rhythm import RhythmPatternDetector
from finger.unified import DetectionState, UnifiedFingerDetector, brightness_reading
from ppg.amplifier import SignalAmplifier
from ppg.extraction import extract_red_mean
from ppg.filters import StreamingBandpass, bandpass_filter
from utils.logger import get_logger
from vitals.processor import VitalSignsProcessor, VitalSignsResult

logger = get_logger("ppg.pipeline")

# Batch analysis needs a few beats: 3 s at 30 fps
MIN_ANALYSIS_SAMPLES = 90


@dataclass
class Sample:
    timestamp_ms: float
    raw_value: float


@dataclass
class PipelineResult:
    timestamp_ms: float
    raw_value: float
    filtered_value: float
    amplified_value: float
    quality: float                 # 0–100
    finger: DetectionState
    heartbeat: HeartBeatResult
    vitals: VitalSignsResult = field(default_factory=VitalSignsResult)

    def to_dict(self) -> dict:
        return asdict(self)


class PPGPipeline:
    """
    Stateful single-stream pipeline.  Not thread-safe; callers sharing one
    instance must serialise access (see `api.session.MonitoringSession`).

    Parameters
    ----------
    fs : float   Nominal sampling rate in Hz.
    """

    def __init__(self, fs: float = SAMPLE_RATE_HZ):
        self.fs = fs
        self._bandpass = StreamingBandpass(fs)
        self._amplifier = SignalAmplifier()
        self._amplitude = AmplitudeDetector()
        self._rhythm = RhythmPatternDetector()
        self.finger_detector = UnifiedFingerDetector()
        self._heartbeat = HeartBeatProcessor()
        self.vitals = VitalSignsProcessor(fs)

        self._raw: deque[float] = deque(maxlen=SIGNAL_BUFFER_SIZE)
        self._filtered: deque[float] = deque(maxlen=SIGNAL_BUFFER_SIZE)
        self._times: deque[float] = deque(maxlen=SIGNAL_BUFFER_SIZE)
        self._last_timestamp: float | None = None
        self._samples_with_finger = 0
        self._last_vitals = VitalSignsResult()
        self.last_result: PipelineResult | None = None
        logger.info("PPGPipeline created — fs=%.1f Hz", fs)

    # ── Public API ───────────────────────────────────────────────────────────

    @property
    def buffer_length(self) -> int:
        return len(self._raw)

    @property
    def last_timestamp(self) -> float | None:
        return self._last_timestamp

    def process_sample(self, sample: Sample) -> PipelineResult:
        raw = float(sample.raw_value)
        ts = float(sample.timestamp_ms)
        if not (math.isfinite(raw) and math.isfinite(ts)):
            raise ValueError(f"Sample must be finite, got value={raw} at t={ts}.")
        if self._last_timestamp is not None and ts <= self._last_timestamp:
            raise ValueError(
                f"Timestamps must increase: {ts} ms follows {self._last_timestamp} ms."
            )
        self._last_timestamp = ts

        filtered = self._bandpass.process(raw)
        amp = self._amplifier.process_value(filtered)
        quality = amp.quality * 100.0

        finger = self.finger_detector.update_sources(
            {
                "amplitude": self._amplitude.update(amp.amplified_value),
                "rhythm": self._rhythm.update(amp.amplified_value, ts),
                "quality": SourceReading(quality >= MIN_QUALITY_PERCENT, amp.quality),
                "brightness": brightness_reading(raw),
            },
            ts,
        )

        beat = self._heartbeat.process_sample(amp.amplified_value, ts)
        if beat.is_peak and finger.is_finger_detected:
            self.vitals.arrhythmia.process_rr(beat.rr_data, ts)
        beat.arrhythmia_count = self.vitals.arrhythmia.arrhythmia_count

        self._raw.append(raw)
        self._filtered.append(filtered)
        self._times.append(ts)

        if finger.is_finger_detected:
            self._samples_with_finger += 1
            if self._samples_with_finger % VITALS_UPDATE_EVERY == 0:
                self._last_vitals = self.vitals.process(
                    self._raw, self._filtered, beat.rr_data, ts, heart_rate=beat.bpm,
                )
        elif self._samples_with_finger:
            logger.info("Finger lost — vital signs cleared.")
            self._samples_with_finger = 0
            self._last_vitals = self.vitals.reset()

        self.last_result = PipelineResult(
            timestamp_ms=ts,
            raw_value=raw,
            filtered_value=filtered,
            amplified_value=amp.amplified_value,
            quality=quality,
            finger=finger,
            heartbeat=beat,
            vitals=self._last_vitals,
        )
        return self.last_result

    def process_frame(self, frame: np.ndarray, timestamp_ms: float) -> PipelineResult:
        """Reduce an RGB(A) frame to its red-channel mean and process it."""
        return self.process_sample(Sample(timestamp_ms, extract_red_mean(frame)))

    def process_samples(self, samples) -> PipelineResult | None:
        result = None
        for sample in samples:
            result = self.process_sample(sample)
        return result

    def get_rr_data(self) -> RRIntervalData:
        return self._heartbeat.get_rr_data()

    def analyze(self) -> dict:
        """
        Batch heart-rate cross-check over the buffered raw signal.

        Raises
        ------
        ValueError
            With fewer than 90 buffered samples.
        """
        if len(self._raw) < MIN_ANALYSIS_SAMPLES:
            raise ValueError(
                f"Need at least {MIN_ANALYSIS_SAMPLES} samples for analysis, "
                f"have {len(self._raw)}."
            )

        fs = self._effective_rate()
        pulse = bandpass_filter(np.asarray(self._raw), fs)
        hr = estimate_hr(pulse, fs)
        hrv = compute_hrv(list(self._heartbeat.get_rr_data().intervals))

        return {
            **hr,
            "hrv": hrv,
            "fs": round(fs, 2),
            "num_samples": len(self._raw),
            "duration_s": round((self._times[-1] - self._times[0]) / 1000.0, 2),
        }

    def reset(self) -> None:
        self._bandpass.reset()
        self._amplifier.reset()
        self._amplitude.reset()
        self._rhythm.reset()
        self.finger_detector.reset()
        self._heartbeat.reset()
        self.vitals.full_reset()
        self._raw.clear()
        self._filtered.clear()
        self._times.clear()
        self._last_timestamp = None
        self._samples_with_finger = 0
        self._last_vitals = VitalSignsResult()
        self.last_result = None
        logger.info("Pipeline reset.")

    # ── Private ──────────────────────────────────────────────────────────────

    def _effective_rate(self) -> float:
        """Sampling rate implied by the buffered timestamps."""
        span_ms = self._times[-1] - self._times[0]
        if span_ms <= 0:
            return self.fs
        return (len(self._times) - 1) / span_ms * 1000.0
