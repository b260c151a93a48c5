#!/usr/bin/env python3
"""
demo_cli.py — Standalone command-line demo
============================================
Replays a recorded or synthetic PPG stream through the full pipeline
WITHOUT the FastAPI server.  Useful for quick testing, demos, and
debugging.

Usage:
    python demo_cli.py --csv recording.csv          (columns: timestamp_ms,raw_value)
    python demo_cli.py --synthetic --bpm 72 --duration 20

⚠️  DISCLAIMER: This is a WELLNESS ESTIMATION tool — NOT a medical device.
"""

import argparse
import csv
import logging
import sys

from ppg.pipeline import PPGPipeline, Sample
from ppg.synthetic import synthetic_ppg
from utils.logger import get_logger, set_level

logger = get_logger("demo_cli")


def load_csv(path: str) -> list[Sample]:
    """Read `timestamp_ms,raw_value` rows (header required)."""
    with open(path, newline="") as f:
        reader = csv.DictReader(f)
        missing = {"timestamp_ms", "raw_value"} - set(reader.fieldnames or [])
        if missing:
            raise ValueError(f"CSV is missing column(s): {', '.join(sorted(missing))}")
        return [Sample(float(row["timestamp_ms"]), float(row["raw_value"])) for row in reader]


def pretty_print(label: str, value, unit: str = "") -> None:
    """Colourised terminal output."""
    print(f"  \033[1;36m{label:<28}\033[0m \033[1;33m{value}\033[0m {unit}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="PPG Vital Signs CLI Demo")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--csv", type=str, help="Recording with timestamp_ms,raw_value columns")
    source.add_argument("--synthetic", action="store_true", help="Generate a synthetic pulse")
    parser.add_argument("--bpm", type=float, default=72.0, help="Synthetic heart rate")
    parser.add_argument("--duration", type=float, default=20.0, help="Synthetic length (seconds)")
    parser.add_argument("--noise", type=float, default=0.0, help="Synthetic noise std")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    if args.verbose:
        set_level(logging.DEBUG)

    print("\n" + "=" * 60)
    print("  PPG VITAL SIGNS ESTIMATION — CLI DEMO")
    print("=" * 60)
    print("  ⚠️  This is a WELLNESS ESTIMATION tool — NOT medical grade.")
    print("=" * 60 + "\n")

    try:
        if args.csv:
            samples = load_csv(args.csv)
        else:
            samples = synthetic_ppg(bpm=args.bpm, duration_s=args.duration, noise_std=args.noise)
    except (OSError, ValueError) as e:
        print(f"  ERROR: {e}")
        return 1

    if not samples:
        print("  ERROR: no samples to replay.")
        return 1

    pipeline = PPGPipeline()
    try:
        result = pipeline.process_samples(samples)
    except ValueError as e:
        print(f"  ERROR: {e}")
        return 1

    try:
        analysis = pipeline.analyze()
    except ValueError as e:
        logger.warning("Skipping batch cross-check: %s", e)
        analysis = None

    vitals = result.vitals
    print("=" * 60)
    print("  RESULTS")
    print("=" * 60)
    pretty_print("Samples", len(samples))
    pretty_print("Finger detected", result.finger.is_finger_detected)
    pretty_print("  Detector confidence", round(result.finger.confidence, 2))

    print("\n  ── Heart Rate ──")
    pretty_print("Heart Rate (beat-to-beat)", result.heartbeat.bpm, "BPM")
    if analysis is not None:
        pretty_print("  (FFT)", analysis["hr_fft"], "BPM")
        pretty_print("  (Peak detect)", analysis["hr_peaks"], "BPM")
    pretty_print("Rhythm", vitals.arrhythmia_status)

    hrv = analysis["hrv"] if analysis is not None else None
    print("\n  ── Heart Rate Variability ──")
    if hrv is not None and hrv["valid"]:
        pretty_print("SDNN", hrv["sdnn_ms"], "ms")
        pretty_print("RMSSD", hrv["rmssd_ms"], "ms")
        pretty_print("pNN50", hrv["pnn50"], "%")
    else:
        print("    ⚠️  Insufficient beats for HRV calculation.")

    print("\n  ── Vital Signs (ESTIMATED) ──")
    pretty_print("SpO2", vitals.spo2, "%")
    pretty_print("Blood pressure", vitals.pressure, "mmHg")
    pretty_print("Glucose", vitals.glucose, "mg/dL")
    pretty_print("Total cholesterol", vitals.lipids.total_cholesterol, "mg/dL")
    pretty_print("Triglycerides", vitals.lipids.triglycerides, "mg/dL")
    pretty_print("Hydration", vitals.hydration, "%")

    print("\n" + "=" * 60)
    print("  ⚠️  DISCLAIMER: All values above are ESTIMATES.")
    print("      Do NOT use for medical diagnosis or treatment.")
    print("=" * 60 + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
