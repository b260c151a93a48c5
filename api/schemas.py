"""
api/schemas.py — Pydantic request & response models
=====================================================
Centralises all data-transfer objects so that FastAPI can auto-generate
OpenAPI docs and perform input validation for free.
"""

from pydantic import BaseModel, Field
from typing import Optional

from config import API_MAX_BATCH


# ── Request Models ───────────────────────────────────────────────────────────


class SampleIn(BaseModel):
    """One PPG intensity sample (one camera frame)."""
    timestamp_ms: float = Field(..., description="Capture time in milliseconds, strictly increasing.")
    raw_value: float = Field(..., description="Frame intensity, e.g. mean red channel (0–255).")


class SamplesRequest(BaseModel):
    samples: list[SampleIn] = Field(..., min_length=1, max_length=API_MAX_BATCH)


# ── Response Models ──────────────────────────────────────────────────────────


class SignalData(BaseModel):
    raw_value: float
    filtered_value: float
    amplified_value: float
    quality: float                      # 0–100


class FingerData(BaseModel):
    is_finger_detected: bool
    confidence: float
    consensus_level: float
    sources: dict[str, dict]


class HeartBeatData(BaseModel):
    bpm: float
    confidence: float
    is_peak: bool
    arrhythmia_count: int
    rr_intervals: list[float]


class LipidsData(BaseModel):
    total_cholesterol: int
    triglycerides: int


class ArrhythmiaEventData(BaseModel):
    timestamp_ms: float
    rmssd: float
    rr_variation: float
    kind: str


class VitalsData(BaseModel):
    spo2: float
    pressure: str                       # "SYS/DIA" | "--/--"
    arrhythmia_status: str              # "NORMAL RHYTHM|n" | "ARRHYTHMIA DETECTED|n" | "--"
    glucose: float
    lipids: LipidsData
    hydration: float
    heart_rate: float
    confidence: dict[str, float]
    last_arrhythmia: Optional[ArrhythmiaEventData] = None


class StateResponse(BaseModel):
    """Latest pipeline snapshot."""
    disclaimer: str
    timestamp_ms: float
    samples_processed: int
    signal: SignalData
    finger: FingerData
    heartbeat: HeartBeatData
    vitals: VitalsData


class HRVData(BaseModel):
    sdnn_ms: Optional[float] = None
    rmssd_ms: Optional[float] = None
    pnn50: Optional[float] = None
    mean_rr_ms: Optional[float] = None
    num_beats: int
    valid: bool


class AnalysisResponse(BaseModel):
    """Batch heart-rate cross-check over the buffered signal."""
    disclaimer: str
    hr_bpm: float
    hr_fft: float
    hr_peaks: float
    confidence_fft: float
    confidence_peaks: float
    rr_intervals: list[float]
    hrv: HRVData
    fs: float
    num_samples: int
    duration_s: float
