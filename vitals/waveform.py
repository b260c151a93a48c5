"""
vitals/waveform.py — Shared PPG waveform measurements
======================================================
Small helpers used by every vital-sign extractor:

    AC   peak-to-peak amplitude (pulsatile part)
    DC   mean level (baseline)
    PI   perfusion index = AC / DC

plus peak/valley detection and the slopes and rise times of the pulse
wave.  Every function returns 0 or an empty result for input too short to
measure; none of them raise.
"""

import numpy as np
from scipy.signal import find_peaks

from config import SAMPLE_RATE_HZ

# Minimum spacing between two systolic peaks (s): 240 BPM
_MIN_PEAK_SPACING_S = 0.25
# Prominence relative to the window range
_RELATIVE_PROMINENCE = 0.1


def ac_component(values) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.ptp(np.asarray(values, dtype=np.float64)))


def dc_component(values) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def perfusion_index(values) -> float:
    dc = dc_component(values)
    if abs(dc) < 1e-9:
        return 0.0
    return ac_component(values) / abs(dc)


def standard_deviation(values) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.std(values))


def find_peaks_and_valleys(values, fs: float = SAMPLE_RATE_HZ) -> tuple[np.ndarray, np.ndarray]:
    """
    Indices of systolic peaks and diastolic valleys.

    Returns two empty arrays for fewer than 3 samples or a flat window.
    """
    x = np.asarray(values, dtype=np.float64)
    empty = np.array([], dtype=int)
    if len(x) < 3:
        return empty, empty

    span = float(np.ptp(x))
    if span < 1e-9:
        return empty, empty

    distance = max(1, int(fs * _MIN_PEAK_SPACING_S))
    prominence = _RELATIVE_PROMINENCE * span
    peaks, _ = find_peaks(x, distance=distance, prominence=prominence)
    valleys, _ = find_peaks(-x, distance=distance, prominence=prominence)
    return peaks, valleys


def peak_to_valley_times(peaks, valleys) -> list[int]:
    """Rise times in samples: each peak minus the closest valley before it."""
    times = []
    valleys = np.asarray(valleys)
    for p in peaks:
        before = valleys[valleys < p]
        if len(before):
            times.append(int(p - before[-1]))
    return times


def rise_fall_slopes(values, peaks, valleys) -> tuple[float, float]:
    """
    Mean rise slope (valley → next peak) and mean fall slope
    (peak → next valley), both positive, in units per sample.
    """
    x = np.asarray(values, dtype=np.float64)
    valleys = np.asarray(valleys)
    rises, falls = [], []

    for p in peaks:
        before = valleys[valleys < p]
        after = valleys[valleys > p]
        if len(before):
            v = before[-1]
            rises.append((x[p] - x[v]) / (p - v))
        if len(after):
            v = after[0]
            falls.append((x[p] - x[v]) / (v - p))

    rise = float(np.mean(rises)) if rises else 0.0
    fall = float(np.mean(falls)) if falls else 0.0
    return rise, fall
