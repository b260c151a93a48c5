"""
ppg/extraction.py — Frame → intensity sample
=============================================
With a fingertip pressed over the lens and the torch on, the red channel
carries most of the pulsatile signal: haemoglobin absorbs strongly in
green/blue, so almost all light reaching the sensor is red, and its level
breathes with blood volume.

Only the central part of the frame is averaged.  Frame edges are often
vignetted or not covered by the fingertip, which dilutes the pulse with
ambient light.
"""

import numpy as np

from config import FRAME_ROI_FRACTION


def central_roi(frame: np.ndarray, fraction: float = FRAME_ROI_FRACTION) -> np.ndarray:
    """
    Return the centred square crop whose side is `fraction` × frame width.

    Parameters
    ----------
    frame    : ndarray, shape (H, W) or (H, W, C)
    fraction : float   Side of the crop relative to the frame width, (0, 1].
    """
    if frame.ndim not in (2, 3) or frame.shape[0] == 0 or frame.shape[1] == 0:
        raise ValueError(f"Expected an (H, W[, C]) image, got shape {frame.shape}.")
    if not 0.0 < fraction <= 1.0:
        raise ValueError(f"ROI fraction must be in (0, 1], got {fraction}.")

    h, w = frame.shape[:2]
    half = max(1, int(w * fraction) // 2)
    cy, cx = h // 2, w // 2

    y0, y1 = max(0, cy - half), min(h, cy + half)
    x0, x1 = max(0, cx - half), min(w, cx + half)
    return frame[y0:y1, x0:x1]


def extract_red_mean(frame: np.ndarray) -> float:
    """
    Mean red intensity of the central ROI of an RGB(A) frame.

    Single-channel frames are averaged as they are.

    Parameters
    ----------
    frame : ndarray, shape (H, W), (H, W, 3) or (H, W, 4)
        RGB(A) order, as delivered by canvas `ImageData` or most decoders.

    Returns
    -------
    float   Mean value in the frame's native range (0–255 for uint8).
    """
    frame = np.asarray(frame)
    if frame.ndim == 3 and frame.shape[2] not in (3, 4):
        raise ValueError(f"Expected 3 or 4 colour channels, got {frame.shape[2]}.")

    roi = central_roi(frame)
    if roi.ndim == 3:
        roi = roi[:, :, 0]
    return float(roi.mean())
