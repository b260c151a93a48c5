"""
vitals/blood_pressure.py — Blood Pressure Estimation (ML)
==========================================================

⚠️⚠️⚠️  CRITICAL DISCLAIMER ⚠️⚠️⚠️
This module provides an *ESTIMATED* blood pressure, NOT a measured one.
The model is trained on *synthetically generated* data that follows a
simple heart-rate / variability heuristic.  It has NOT been validated on
real clinical blood-pressure measurements.

USE THIS OUTPUT ONLY AS A ROUGH WELLNESS INDICATOR.
⚠️⚠️⚠️

Synthetic data generation
--------------------------
Subjects are simulated from the RR window alone (no demographics are
available from a fingertip):

    adj       = (HR − 70) · 0.1
    Systolic  ≈ 120 + 2·adj + 0.05·SDNN + noise      σ = 4 mmHg
    Diastolic ≈  80 +   adj + 0.02·SDNN + noise      σ = 3 mmHg

A RandomForest behind a StandardScaler learns this mapping; the noise
term keeps it from reproducing the formula exactly.

Feature vector (input)
-----------------------
    [HR, SDNN]      both derived from the last RR intervals (ms)
"""

import os
import pickle
from functools import lru_cache

import numpy as np
from sklearn.ensemble import RandomForestRegressor
from sklearn.preprocessing import StandardScaler
from sklearn.pipeline import Pipeline

from config import BP_MODEL_PATH, BP_USE_PRETRAINED, MIN_RR_MS, MAX_RR_MS
from utils.logger import get_logger

logger = get_logger("vitals.bp")

FEATURE_NAMES = ["hr", "sdnn"]
N_SYNTHETIC = 2000
RANDOM_SEED = 42
MIN_INTERVALS = 3
NO_PRESSURE = "--/--"


def _generate_synthetic_data() -> tuple[np.ndarray, np.ndarray]:
    """
    Synthetic training set of ([hr, sdnn], [systolic, diastolic]).

    Returns
    -------
    X : ndarray, shape (N_SYNTHETIC, 2)
    y : ndarray, shape (N_SYNTHETIC, 2)
    """
    rng = np.random.default_rng(RANDOM_SEED)

    hr = np.clip(rng.normal(loc=75, scale=15, size=N_SYNTHETIC), 35, 200)
    sdnn = np.clip(rng.gamma(shape=2.0, scale=25.0, size=N_SYNTHETIC), 2, 250)

    adj = (hr - 70.0) * 0.1
    systolic = 120.0 + 2.0 * adj + 0.05 * sdnn + rng.normal(0, 4.0, size=N_SYNTHETIC)
    diastolic = 80.0 + adj + 0.02 * sdnn + rng.normal(0, 3.0, size=N_SYNTHETIC)

    X = np.column_stack([hr, sdnn])
    y = np.column_stack([systolic, diastolic])
    return X, y


def _train_model() -> Pipeline:
    logger.info("Generating %d synthetic training samples…", N_SYNTHETIC)
    X, y = _generate_synthetic_data()

    pipeline = Pipeline([
        ("scaler", StandardScaler()),
        ("rf", RandomForestRegressor(
            n_estimators=50,
            max_depth=8,
            min_samples_leaf=10,
            random_state=RANDOM_SEED,
            n_jobs=-1,
        )),
    ])

    logger.info("Training RandomForest BP model…")
    pipeline.fit(X, y)
    logger.info("Training complete.")

    if BP_MODEL_PATH:
        try:
            os.makedirs(os.path.dirname(BP_MODEL_PATH) or ".", exist_ok=True)
            with open(BP_MODEL_PATH, "wb") as f:
                pickle.dump(pipeline, f)
            logger.info("Model saved to %s", BP_MODEL_PATH)
        except OSError as e:
            logger.warning("Could not save model to disk: %s", e)

    return pipeline


@lru_cache(maxsize=1)
def load_or_train_model() -> Pipeline:
    """
    Load a persisted model if configured, otherwise train from scratch.
    The result is shared by every estimator in the process.
    """
    if BP_USE_PRETRAINED and BP_MODEL_PATH and os.path.exists(BP_MODEL_PATH):
        logger.info("Loading pre-trained BP model from %s …", BP_MODEL_PATH)
        with open(BP_MODEL_PATH, "rb") as f:
            return pickle.load(f)

    return _train_model()


def format_pressure(bp: dict | None) -> str:
    """`"SYS/DIA"` (rounded mmHg) or `"--/--"`."""
    if not bp:
        return NO_PRESSURE
    return f"{round(bp['systolic'])}/{round(bp['diastolic'])}"


class BPEstimator:
    """
    Holds the trained model and exposes `predict(rr_intervals)`.

    ⚠️  The returned values are ESTIMATES, not clinical measurements.
    """

    def __init__(self):
        self._model = load_or_train_model()

    def predict(self, rr_intervals: list[float]) -> dict | None:
        """
        Estimate systolic and diastolic blood pressure.

        Parameters
        ----------
        rr_intervals : list[float]   RR intervals in ms.

        Returns
        -------
        dict | None
            {"systolic": float, "diastolic": float, "unit": "mmHg"}, or None
            with fewer than 3 plausible intervals.
        """
        rr = np.asarray([i for i in rr_intervals if MIN_RR_MS <= i <= MAX_RR_MS], dtype=np.float64)
        if len(rr) < MIN_INTERVALS:
            return None

        hr = 60000.0 / rr.mean()
        sdnn = float(rr.std(ddof=1))

        preds = self._model.predict(np.array([[hr, sdnn]]))[0]   # shape (2,)

        systolic = float(np.clip(round(preds[0], 1), 80, 200))
        diastolic = float(np.clip(round(preds[1], 1), 50, 130))

        if systolic <= diastolic:
            systolic = diastolic + 15.0

        logger.debug("BP estimate: %s/%s mmHg (HR=%.1f, SDNN=%.1f)", systolic, diastolic, hr, sdnn)

        return {
            "systolic": systolic,
            "diastolic": diastolic,
            "unit": "mmHg",
        }
