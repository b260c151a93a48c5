"""
vitals/processor.py — Vital-signs aggregation
==============================================
Runs every extractor over the current buffers and assembles one
`VitalSignsResult` snapshot.  Results are recomputed on each call and never
persisted; with fewer than 20 samples every field carries its sentinel:

    spo2 0 · pressure "--/--" · arrhythmia "--" · glucose 0
    lipids 0/0 · hydration 0 · heart_rate 0
"""

from dataclasses import dataclass, field, asdict

from config import MIN_VITALS_SAMPLES, SAMPLE_RATE_HZ
from features.arrhythmia import ArrhythmiaEvent, ArrhythmiaProcessor, NO_DATA_STATUS
from features.heartbeat import RRIntervalData
from utils.logger import get_logger
from vitals.blood_pressure import BPEstimator, format_pressure, NO_PRESSURE
from vitals.glucose import GlucoseEstimator
from vitals.hydration import HydrationEstimator
from vitals.lipids import LipidsEstimator, LipidsResult
from vitals.spo2 import SpO2Estimator

logger = get_logger("vitals.processor")


@dataclass
class VitalSignsResult:
    spo2: float = 0
    pressure: str = NO_PRESSURE
    arrhythmia_status: str = NO_DATA_STATUS
    glucose: float = 0
    lipids: LipidsResult = field(default_factory=LipidsResult)
    hydration: float = 0
    heart_rate: float = 0
    confidence: dict[str, float] = field(default_factory=dict)
    last_arrhythmia: ArrhythmiaEvent | None = None

    def to_dict(self) -> dict:
        return asdict(self)


class VitalSignsProcessor:
    def __init__(self, fs: float = SAMPLE_RATE_HZ):
        self.arrhythmia = ArrhythmiaProcessor()
        self.spo2 = SpO2Estimator()
        self.bp = BPEstimator()
        self.glucose = GlucoseEstimator(fs)
        self.lipids = LipidsEstimator(fs)
        self.hydration = HydrationEstimator(fs)

    def process(
        self,
        raw_values,
        filtered_values,
        rr_data: RRIntervalData,
        timestamp_ms: float,
        heart_rate: float = 0,
    ) -> VitalSignsResult:
        """
        Parameters
        ----------
        raw_values      : sequence of float   Unfiltered intensity (AC/DC source).
        filtered_values : sequence of float   Bandpassed signal (shape source).
        rr_data         : RRIntervalData      Current RR window.
        timestamp_ms    : float               Time of the newest sample.
        heart_rate      : float               Current BPM from the beat detector.
        """
        if len(raw_values) < MIN_VITALS_SAMPLES:
            return VitalSignsResult()

        arrhythmia_status = self.arrhythmia.process_rr(rr_data, timestamp_ms)
        spo2 = self.spo2.estimate(raw_values)
        pressure = format_pressure(self.bp.predict(rr_data.intervals))
        glucose, glucose_conf = self.glucose.estimate(raw_values, filtered_values)
        lipids = self.lipids.estimate(raw_values, filtered_values)
        hydration, hydration_conf = self.hydration.estimate(raw_values, filtered_values)

        result = VitalSignsResult(
            spo2=spo2,
            pressure=pressure,
            arrhythmia_status=arrhythmia_status,
            glucose=glucose,
            lipids=lipids,
            hydration=hydration,
            heart_rate=heart_rate,
            confidence={
                "glucose": round(glucose_conf, 3),
                "lipids": round(self.lipids.confidence, 3),
                "hydration": round(hydration_conf, 3),
            },
            last_arrhythmia=self.arrhythmia.last_event,
        )
        logger.debug(
            "Vitals: HR=%s SpO2=%s BP=%s %s", heart_rate, spo2, pressure, arrhythmia_status,
        )
        return result

    def reset(self) -> VitalSignsResult:
        self.arrhythmia.reset()
        self.spo2.reset()
        self.glucose.reset()
        self.lipids.reset()
        self.hydration.reset()
        return VitalSignsResult()

    def full_reset(self) -> VitalSignsResult:
        result = self.reset()
        self.arrhythmia.full_reset()
        return result
