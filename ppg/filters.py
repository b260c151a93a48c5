"""
ppg/filters.py — Butterworth bandpass filtering
================================================
Isolates the cardiac-frequency band (0.5–4.0 Hz by default) from the raw
per-frame intensity series.

Two flavours are provided:

* `bandpass_filter()` — zero-phase (forward-backward) filtering of a whole
  buffer, used for batch analysis where group delay would bias peak timing.
* `StreamingBandpass` — causal, sample-by-sample filtering for the live
  pipeline.  Filter state is carried between calls and seeded from the
  first sample so the DC level of the camera signal does not ring through
  the filter as a step.

Coefficients are produced as second-order sections (SOS), which stay
numerically stable at the low normalised cut-off a 0.5 Hz edge implies at
30 fps.
"""

import warnings

import numpy as np
from scipy.signal import butter, sosfilt, sosfilt_zi, sosfiltfilt

from config import BP_LOW_HZ, BP_HIGH_HZ, FILTER_ORDER


def design_bandpass(fs: float) -> np.ndarray:
    """
    Return second-order sections for a Butterworth bandpass filter tuned to
    the cardiac-frequency band at the given sampling rate.

    Parameters
    ----------
    fs : float
        Sampling frequency in Hz (typically the camera FPS).

    Returns
    -------
    sos : ndarray, shape (n_sections, 6)
    """
    if fs <= 0:
        raise ValueError(f"Sampling rate must be positive, got {fs}.")

    nyq = fs / 2.0
    low = BP_LOW_HZ / nyq
    high = BP_HIGH_HZ / nyq

    # A low frame rate pushes the upper edge past Nyquist; clamp it.
    if high >= 1.0:
        high = 0.95
        warnings.warn(
            f"Sampling rate ({fs} Hz) is too low for the requested upper cutoff "
            f"({BP_HIGH_HZ} Hz).  Clamping to {high * nyq:.2f} Hz.",
            stacklevel=2,
        )
    if low >= high:
        raise ValueError(
            f"Sampling rate ({fs} Hz) leaves no usable band above {BP_LOW_HZ} Hz."
        )

    return butter(FILTER_ORDER, [low, high], btype="band", output="sos")


def min_filter_samples(sos: np.ndarray) -> int:
    """Shortest buffer `sosfiltfilt` accepts for these coefficients."""
    return 3 * (2 * len(sos) + 1) + 1


def bandpass_filter(signal: np.ndarray, fs: float) -> np.ndarray:
    """
    Apply a zero-phase Butterworth bandpass filter to a 1-D signal.

    Parameters
    ----------
    signal : ndarray, shape (N,)
        Raw intensity time-series.
    fs     : float
        Sampling frequency in Hz.

    Returns
    -------
    filtered : ndarray, shape (N,)
    """
    signal = np.asarray(signal, dtype=np.float64)
    sos = design_bandpass(fs)

    min_samples = min_filter_samples(sos)
    if len(signal) < min_samples:
        raise ValueError(
            f"Signal too short for zero-phase filtering: need >= {min_samples} "
            f"samples, got {len(signal)}."
        )

    return sosfiltfilt(sos, signal)


class StreamingBandpass:
    """
    Causal bandpass filter that consumes one sample per call.

    Parameters
    ----------
    fs : float   Sampling rate in Hz.
    """

    def __init__(self, fs: float):
        self._sos = design_bandpass(fs)
        self._zi: np.ndarray | None = None

    def process(self, value: float) -> float:
        """Filter a single sample and return the filtered value."""
        if self._zi is None:
            # Steady state for a constant input equal to the first sample
            self._zi = sosfilt_zi(self._sos) * value

        out, self._zi = sosfilt(self._sos, [value], zi=self._zi)
        return float(out[0])

    def reset(self) -> None:
        self._zi = None
