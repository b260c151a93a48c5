"""
config.py — Centralised configuration & hyper-parameters
=========================================================
Every tunable constant in the project lives here so that the rest of the
codebase can import from a single source of truth.
"""

# ─── Sampling ────────────────────────────────────────────────────────────────
SAMPLE_RATE_HZ: float = 30.0     # Nominal camera frame rate feeding the pipeline
SIGNAL_BUFFER_SIZE: int = 300    # Raw / filtered samples kept (10 s at 30 fps)

# Central square used when a whole frame is reduced to a single intensity
# value.  Expressed as a fraction of the frame width.
FRAME_ROI_FRACTION: float = 0.5

# ─── Filtering ───────────────────────────────────────────────────────────────
# Butterworth bandpass filter band (Hz).
# 0.5 Hz  →  30 BPM   (lower physiological limit)
# 4.0 Hz  → 240 BPM   (upper safety margin)
BP_LOW_HZ: float = 0.5
BP_HIGH_HZ: float = 4.0
FILTER_ORDER: int = 2          # Butterworth order (per band edge)

# ─── Signal Amplifier ────────────────────────────────────────────────────────
AMP_HISTORY_SIZE: int = 20
AMP_BASE_GAIN: float = 1.5
AMP_MIN_GAIN: float = 0.8
AMP_MAX_GAIN: float = 5.0
AMP_ADAPTATION_RATE: float = 0.2
AMP_HEARTBEAT_BOOST: float = 1.5
AMP_PEAK_EMPHASIS: float = 1.2

# ─── Finger Detection ────────────────────────────────────────────────────────
AMPLITUDE_THRESHOLD: float = 0.3      # Peak-to-peak of the amplified signal
AMPLITUDE_WINDOW: int = 30            # Samples used for the peak-to-peak
AMPLITUDE_REQUIRED_STRONG: int = 3    # Consecutive strong frames → detected
AMPLITUDE_REQUIRED_WEAK: int = 5      # Consecutive weak frames → lost

RHYTHM_PEAK_THRESHOLD: float = 0.1    # Minimum height of a rhythm peak
RHYTHM_PATTERN_WINDOW_MS: float = 5000.0
RHYTHM_PATTERN_TIMEOUT_MS: float = 5000.0
RHYTHM_MIN_INTERVAL_MS: float = 333.0   # 180 BPM
RHYTHM_MAX_INTERVAL_MS: float = 1500.0  #  40 BPM
RHYTHM_MAX_DEVIATION_MS: float = 200.0

FINGER_SENSITIVITY: float = 0.8       # 0 (strict) … 1 (permissive)
FINGER_HYSTERESIS_MS: float = 1000.0  # Dwell time before the state flips
FINGER_SOURCE_MAX_AGE_S: float = 10.0
FINGER_CONFIDENCE_SMOOTHING: float = 0.3

# Base weights of each detection source in the fused confidence
FINGER_SOURCE_WEIGHTS: dict[str, float] = {
    "amplitude": 1.0,
    "rhythm": 1.3,
    "quality": 0.9,
    "brightness": 0.6,
}

# Raw intensity window consistent with a finger pressed on a lit lens
BRIGHTNESS_MIN: float = 40.0
BRIGHTNESS_MAX: float = 250.0

# Amplifier quality (0–100 scale) below which samples are not trusted
MIN_QUALITY_PERCENT: float = 20.0

# ─── Heartbeat / Peak Detection ──────────────────────────────────────────────
HB_BUFFER_SIZE: int = 100
HB_THRESHOLD_WINDOW: int = 20
HB_THRESHOLD_RATIO: float = 0.5
MIN_PEAK_DISTANCE_MS: float = 300.0
MIN_RR_MS: float = 250.0       # 240 BPM
MAX_RR_MS: float = 2000.0      #  30 BPM
RR_WINDOW: int = 10            # RR intervals kept for BPM / arrhythmia
MIN_BPM: float = 30.0
MAX_BPM: float = 240.0

# ─── HRV ─────────────────────────────────────────────────────────────────────
# Minimum number of RR intervals needed to compute HRV metrics
HRV_MIN_INTERVALS: int = 5

# ─── Arrhythmia ──────────────────────────────────────────────────────────────
ARRHYTHMIA_BUFFER_SIZE: int = 10
ARRHYTHMIA_PATTERN_THRESHOLD: float = 0.15
ARRHYTHMIA_VARIATION_THRESHOLD: float = 0.2
PREMATURE_BEAT_THRESHOLD_PCT: float = 20.0
MISSED_BEAT_THRESHOLD_PCT: float = 40.0

# ─── Vital Signs ─────────────────────────────────────────────────────────────
MIN_VITALS_SAMPLES: int = 20    # Below this every extractor returns its sentinel
VITALS_UPDATE_EVERY: int = 15   # Recompute vitals every N samples (0.5 s)

# SpO2 regression  SpO2 = intercept − slope · R   with R = AC / DC
SPO2_WINDOW: int = 30
SPO2_INTERCEPT: float = 98.0
SPO2_SLOPE: float = 15.0
SPO2_MIN: float = 70.0
SPO2_MAX: float = 100.0
SPO2_MIN_PERFUSION: float = 0.002
SPO2_AVERAGE_SIZE: int = 10

LIPIDS_MIN_SAMPLES: int = 45
LIPIDS_WINDOW: int = 90        # 3 s at 30 fps

# The BP model is a RandomForest regression trained on *synthetic* data.
# See vitals/blood_pressure.py for the full disclaimer.
BP_MODEL_PATH: str | None = None   # Serialised sklearn pipeline (optional)
BP_USE_PRETRAINED: bool = False    # Set True if a .pkl file exists

# ─── API ─────────────────────────────────────────────────────────────────────
API_TITLE = "PPG Vital-Signs Estimation API"
API_VERSION = "0.1.0"
API_MAX_BATCH: int = 900        # 30 s of samples per request
API_HOST: str = "0.0.0.0"
API_PORT: int = 8000
