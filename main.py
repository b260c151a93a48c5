#!/usr/bin/env python3
"""
Serve the PPG monitoring API.

    python main.py                 (binds API_HOST:API_PORT from config.py)
    python main.py --port 9000

Clients POST `timestamp_ms,raw_value` batches to /session/samples and read
the latest snapshot from /session/state.  See /docs for the schema.

⚠️  Every vital sign served here is a wellness ESTIMATE from a fingertip
    camera signal, not a clinical measurement.
"""

import argparse

import uvicorn

from api.app import create_app
from config import API_HOST, API_PORT


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="PPG vital-signs API server")
    parser.add_argument("--host", default=API_HOST)
    parser.add_argument("--port", type=int, default=API_PORT)
    parser.add_argument("--no-warmup", action="store_true",
                        help="Train the BP model lazily on the first batch")
    args = parser.parse_args(argv)

    uvicorn.run(
        create_app(warm_model=not args.no_warmup),
        host=args.host,
        port=args.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
