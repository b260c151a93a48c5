"""
Pytest Configuration and Fixtures

Shared synthetic PPG fixtures for the pipeline tests.
"""
import pytest
import numpy as np
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ppg.synthetic import synthetic_ppg  # noqa: E402


@pytest.fixture
def fs() -> float:
    return 30.0


@pytest.fixture
def ppg_72bpm():
    """20 s clean fingertip trace at 72 BPM (list of Sample)."""
    return synthetic_ppg(bpm=72.0, duration_s=20.0)


@pytest.fixture
def flat_signal():
    """15 s of constant intensity: a covered lens with no pulse."""
    return synthetic_ppg(bpm=72.0, duration_s=15.0, amplitude=0.0)


@pytest.fixture
def raw_values(ppg_72bpm) -> list[float]:
    return [s.raw_value for s in ppg_72bpm]


@pytest.fixture
def pulse_wave(fs) -> np.ndarray:
    """10 s zero-mean sine at 1.2 Hz (72 BPM)."""
    t = np.arange(int(10 * fs)) / fs
    return np.sin(2 * np.pi * 1.2 * t)


@pytest.fixture
def regular_rr() -> list[float]:
    """Ten RR intervals around 833 ms (72 BPM) with camera-rate jitter."""
    return [833.0, 800.0, 867.0, 833.0, 833.0, 800.0, 867.0, 833.0, 833.0, 833.0]
