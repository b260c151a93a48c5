"""
features/hr.py — Batch heart-rate cross-check
==============================================
The streaming peak detector in `features.heartbeat` reacts beat by beat.
For a recorded buffer we can afford a slower, more robust look, and two
complementary methods are combined:

1. **FFT (frequency-domain)**
   Zero-pad the filtered signal, compute the power spectrum and take the
   dominant frequency in the cardiac band (0.5–4.0 Hz).

2. **Peak detection (time-domain)**
   `scipy.signal.find_peaks` on the filtered signal; the median inter-peak
   interval is converted to BPM.

The final estimate is the confidence-weighted average of both (spectral SNR
for FFT, 1 − CV of the intervals for peaks), clipped to [30, 240] BPM.
"""

import numpy as np
from scipy.signal import find_peaks
from config import BP_LOW_HZ, BP_HIGH_HZ, MIN_BPM, MAX_BPM
from utils.logger import get_logger

logger = get_logger("features.hr")

# Minimum spacing between peaks (s): 0.25 s → 240 BPM
MIN_PEAK_SPACING_S = 0.25


def _detect_peaks(pulse: np.ndarray, fs: float) -> np.ndarray:
    # 0.3× the signal range keeps small beats in low-amplitude recordings
    prominence_threshold = 0.3 * (pulse.max() - pulse.min())
    peaks, _ = find_peaks(
        pulse,
        prominence=prominence_threshold,
        distance=max(1, int(fs * MIN_PEAK_SPACING_S)),
    )
    return peaks


def estimate_hr_fft(pulse: np.ndarray, fs: float) -> tuple[float, float]:
    """
    Estimate heart rate from the dominant frequency in the pulse spectrum.

    Parameters
    ----------
    pulse : ndarray, shape (N,)   Bandpass-filtered pulse waveform.
    fs    : float                 Sampling frequency (Hz).

    Returns
    -------
    hr_bpm     : float   0 when the band holds no energy.
    confidence : float   Spectral SNR in [0, 1].
    """
    n_fft = max(1024, 1 << (len(pulse) - 1).bit_length())   # next power of 2 ≥ len
    freqs = np.fft.rfftfreq(n_fft, d=1.0 / fs)
    spectrum = np.abs(np.fft.rfft(pulse - pulse.mean(), n=n_fft)) ** 2

    cardiac_mask = (freqs >= BP_LOW_HZ) & (freqs <= BP_HIGH_HZ)
    total_cardiac = spectrum[cardiac_mask].sum() if cardiac_mask.any() else 0.0
    if total_cardiac <= 0:
        return 0.0, 0.0

    cardiac_power = np.where(cardiac_mask, spectrum, 0.0)
    peak_idx = int(np.argmax(cardiac_power))
    hr_bpm = float(np.clip(freqs[peak_idx] * 60.0, MIN_BPM, MAX_BPM))

    # Ratio of the peak (and its two neighbouring bins) to the whole band
    lo, hi = max(0, peak_idx - 2), peak_idx + 3
    snr = float(cardiac_power[lo:hi].sum() / total_cardiac)
    return hr_bpm, min(1.0, snr)


def estimate_hr_peaks(pulse: np.ndarray, fs: float) -> tuple[float, float]:
    """
    Estimate heart rate from inter-peak intervals in the time domain.

    Returns
    -------
    hr_bpm     : float   0 when fewer than 2 peaks are found.
    confidence : float   Regularity score in [0, 1].
    """
    peaks = _detect_peaks(pulse, fs)
    if len(peaks) < 2:
        return 0.0, 0.0

    rr_intervals = np.diff(peaks) / fs
    hr_bpm = 60.0 / (np.median(rr_intervals) + 1e-8)

    # 1 − coefficient of variation: a perfectly regular signal scores 1
    cv = rr_intervals.std() / (rr_intervals.mean() + 1e-8)
    confidence = float(np.clip(1.0 - cv, 0.0, 1.0))

    return float(np.clip(hr_bpm, MIN_BPM, MAX_BPM)), confidence


def estimate_hr(pulse: np.ndarray, fs: float) -> dict:
    """
    Fuse FFT and peak-detection HR estimates into a single best estimate.

    Returns
    -------
    dict with keys:
        hr_bpm          : float   Final estimate (0 if both methods failed).
        hr_fft          : float
        hr_peaks        : float
        confidence_fft  : float
        confidence_peaks: float
        rr_intervals    : list[float]   RR intervals in ms from peak detection.
    """
    pulse = np.asarray(pulse, dtype=np.float64)
    if pulse.ndim != 1 or len(pulse) < 2:
        raise ValueError(f"Expected a 1-D signal with at least 2 samples, got shape {pulse.shape}.")
    if fs <= 0:
        raise ValueError(f"Sampling rate must be positive, got {fs}.")

    hr_fft, conf_fft = estimate_hr_fft(pulse, fs)
    hr_peaks, conf_peaks = estimate_hr_peaks(pulse, fs)

    peaks = _detect_peaks(pulse, fs)
    rr_intervals = list(np.diff(peaks) / fs * 1000.0) if len(peaks) >= 2 else []

    total_conf = conf_fft + conf_peaks
    if total_conf > 0:
        hr_bpm = float(np.clip((hr_fft * conf_fft + hr_peaks * conf_peaks) / total_conf, MIN_BPM, MAX_BPM))
    else:
        hr_bpm = 0.0
        logger.warning("Both HR methods failed on a %d-sample buffer.", len(pulse))

    logger.info(
        "HR estimate: %.1f BPM  (FFT=%.1f [conf=%.2f], Peaks=%.1f [conf=%.2f])",
        hr_bpm, hr_fft, conf_fft, hr_peaks, conf_peaks,
    )

    return {
        "hr_bpm": round(hr_bpm, 1),
        "hr_fft": round(hr_fft, 1),
        "hr_peaks": round(hr_peaks, 1),
        "confidence_fft": round(conf_fft, 3),
        "confidence_peaks": round(conf_peaks, 3),
        "rr_intervals": [round(float(x), 1) for x in rr_intervals],
    }
