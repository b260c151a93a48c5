"""
ppg/synthetic.py — Synthetic fingertip PPG generator
=====================================================
Produces a clean periodic intensity trace for demos and tests:

    raw(t) = DC + A · sin(2π · f · t) + noise        f = BPM / 60

Timestamps are in milliseconds at the requested sampling rate.  A fixed
seed keeps the noise reproducible.
"""

import numpy as np

from config import SAMPLE_RATE_HZ
from ppg.pipeline import Sample


def synthetic_ppg(
    bpm: float = 72.0,
    duration_s: float = 20.0,
    fs: float = SAMPLE_RATE_HZ,
    dc: float = 150.0,
    amplitude: float = 2.0,
    noise_std: float = 0.0,
    start_ms: float = 0.0,
    seed: int = 42,
) -> list[Sample]:
    """
    Parameters
    ----------
    bpm        : float   Heart rate of the generated pulse.
    duration_s : float   Length of the trace in seconds.
    fs         : float   Sampling rate in Hz.
    dc         : float   Baseline intensity (0–255 scale).
    amplitude  : float   Pulse amplitude; 0 gives a flat trace.
    noise_std  : float   Standard deviation of additive Gaussian noise.
    """
    if fs <= 0 or duration_s <= 0:
        raise ValueError("Sampling rate and duration must be positive.")

    rng = np.random.default_rng(seed)
    n = int(round(duration_s * fs))
    t = np.arange(n) / fs
    values = dc + amplitude * np.sin(2 * np.pi * (bpm / 60.0) * t)
    if noise_std > 0:
        values += rng.normal(0, noise_std, size=n)

    return [Sample(start_ms + ti * 1000.0, float(v)) for ti, v in zip(t, values)]
