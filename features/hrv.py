"""
features/hrv.py — Heart Rate Variability (HRV) time-domain features
=====================================================================
Computes the most commonly used *time-domain* HRV metrics from a sequence
of RR intervals (the time between consecutive heartbeats, in ms):

    SDNN  — Standard Deviation of NN intervals
    RMSSD — Root Mean Square of Successive Differences
    pNN50 — Percentage of successive differences > 50 ms

SDNN feeds the blood-pressure estimator; RMSSD and the RR coefficient of
variation are attached to arrhythmia events.

⚠️  The real-time window only holds the last 10 intervals.  These numbers
    are suitable for *trend* comparisons, not clinical assessment, which
    uses 5-minute recordings.
"""

import numpy as np
from utils.logger import get_logger
from config import HRV_MIN_INTERVALS

logger = get_logger("features.hrv")


def rmssd(intervals: list[float]) -> float:
    """RMSSD in ms; 0 for fewer than 2 intervals."""
    if len(intervals) < 2:
        return 0.0
    diffs = np.diff(np.asarray(intervals, dtype=np.float64))
    return float(np.sqrt(np.mean(diffs ** 2)))


def rr_variation(intervals: list[float]) -> float:
    """Coefficient of variation of the intervals in %; 0 for fewer than 2."""
    if len(intervals) < 2:
        return 0.0
    rr = np.asarray(intervals, dtype=np.float64)
    mean = rr.mean()
    if mean <= 0:
        return 0.0
    return float(rr.std() / mean * 100.0)


def compute_hrv(rr_intervals: list[float]) -> dict:
    """
    Compute time-domain HRV features from RR intervals.

    Parameters
    ----------
    rr_intervals : list[float]
        Successive RR intervals in **milliseconds**, as kept by
        `features.heartbeat.HeartBeatProcessor`.

    Returns
    -------
    dict with keys:
        sdnn_ms   : float | None   SDNN in milliseconds.
        rmssd_ms  : float | None   RMSSD in milliseconds.
        pnn50     : float | None   pNN50 as a percentage [0, 100].
        mean_rr_ms: float | None   Mean RR interval in ms.
        num_beats : int            Number of RR intervals used.
        valid     : bool           True if enough intervals were available.
    """
    num_beats = len(rr_intervals)

    if num_beats < HRV_MIN_INTERVALS:
        logger.warning(
            "Only %d RR intervals available (need %d for HRV). Returning None values.",
            num_beats,
            HRV_MIN_INTERVALS,
        )
        return {
            "sdnn_ms": None,
            "rmssd_ms": None,
            "pnn50": None,
            "mean_rr_ms": None,
            "num_beats": num_beats,
            "valid": False,
        }

    rr_ms = np.asarray(rr_intervals, dtype=np.float64)

    sdnn_ms = float(np.std(rr_ms, ddof=1))   # sample std
    mean_rr_ms = float(np.mean(rr_ms))

    successive_diffs = np.diff(rr_ms)
    rmssd_ms = float(np.sqrt(np.mean(successive_diffs ** 2)))
    pnn50 = float(np.sum(np.abs(successive_diffs) > 50.0) / len(successive_diffs) * 100.0)

    logger.debug(
        "HRV — SDNN=%.1f ms, RMSSD=%.1f ms, pNN50=%.1f%%, mean_RR=%.1f ms (%d beats)",
        sdnn_ms, rmssd_ms, pnn50, mean_rr_ms, num_beats,
    )

    return {
        "sdnn_ms": round(sdnn_ms, 2),
        "rmssd_ms": round(rmssd_ms, 2),
        "pnn50": round(pnn50, 2),
        "mean_rr_ms": round(mean_rr_ms, 2),
        "num_beats": num_beats,
        "valid": True,
    }
