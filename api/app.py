"""
api/app.py — FastAPI application factory
==========================================
Builds the PPG monitoring service: one process-wide sample session behind
the `/session/*` routes plus a `/health` check.

Startup
-------
The blood-pressure RandomForest is trained (or loaded from `BP_MODEL_PATH`)
during the lifespan startup phase, off the event loop, so the first sample
batch does not pay for it.  Pass `warm_model=False` to skip this, e.g. in
tests that drive the app through an ASGI transport.

CORS is open to every origin for local dashboards; restrict `allow_origins`
when the service is exposed.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from config import API_TITLE, API_VERSION
from utils.logger import get_logger
from vitals.blood_pressure import load_or_train_model

logger = get_logger("api.app")


def create_app(warm_model: bool = True) -> FastAPI:
    """Return a configured app; each call gives an independent instance."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if warm_model:
            await run_in_threadpool(load_or_train_model)
            logger.info("BP model ready.")
        yield

    app = FastAPI(
        title=API_TITLE,
        version=API_VERSION,
        description=(
            "Streams fingertip-camera PPG samples into a monitoring session and "
            "returns finger presence, heart rate, rhythm status and estimated "
            "SpO2, blood pressure, glucose, lipids and hydration. "
            "⚠️ WELLNESS TOOL ONLY — not a medical device."
        ),
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app
