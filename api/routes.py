"""
api/routes.py — FastAPI route definitions
==========================================
All HTTP endpoints are defined here and wired into the app via
`app.include_router(router)` in `api/app.py`.

Endpoint summary
----------------
    GET  /health              — Liveness check
    POST /session/samples     — Push a batch of PPG samples (1–900)
    GET  /session/state       — Latest finger / heartbeat / vitals snapshot
    GET  /session/analysis    — Batch heart-rate cross-check + HRV
    POST /session/reset       — Clear the session
    GET  /docs                — Auto-generated Swagger UI (FastAPI built-in)

Session handlers are plain `def`: they do blocking numpy and scikit-learn
work and FastAPI runs them in its threadpool.  `MonitoringSession` holds
the lock that serialises them.
"""

from fastapi import APIRouter, HTTPException
from api.schemas import SamplesRequest, StateResponse, AnalysisResponse
from api.session import MonitoringSession
from ppg.pipeline import Sample
from utils.logger import get_logger

logger = get_logger("api.routes")

router = APIRouter()

# ── Global session instance ──────────────────────────────────────────────────
# One monitoring stream for the entire application lifetime.
_session = MonitoringSession()


# ── Health ────────────────────────────────────────────────────────────────────

@router.get("/health")
async def health():
    """Simple liveness check."""
    return {"status": "ok", "service": "PPG Vital Signs Estimator", "session": _session.status}


# ── Session ──────────────────────────────────────────────────────────────────

@router.post("/session/samples", response_model=StateResponse)
def push_samples(request: SamplesRequest):
    """
    Feed samples into the pipeline.

    Body (JSON):
        samples : [{"timestamp_ms": float, "raw_value": float}, …]   (1–900)

    Returns 422 on non-finite values or timestamps that do not increase.
    """
    samples = [Sample(s.timestamp_ms, s.raw_value) for s in request.samples]
    try:
        return _session.add_samples(samples)
    except ValueError as e:
        logger.warning("Rejected sample batch: %s", e)
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/session/state", response_model=StateResponse)
def session_state():
    """Latest snapshot.  Returns 404 before any sample was received."""
    state = _session.get_state()
    if state is None:
        raise HTTPException(status_code=404, detail="No samples received yet.")
    return state


@router.get("/session/analysis", response_model=AnalysisResponse)
def session_analysis():
    """Batch analysis of the buffered signal.  Returns 409 with too little data."""
    try:
        return _session.analyze()
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/session/reset")
def session_reset():
    """Clear buffers, detector state and vitals."""
    _session.reset()
    return {"status": "ok", "message": "Session reset. Ready for new samples."}
