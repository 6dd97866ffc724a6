# src/outbreakmap/api/app.py
"""
FastAPI application wiring.

Creates the `FastAPI` instance for the map frontend. Routes live in `outbreakmap.api.routes`;
the spatial work happens in `outbreakmap.spatial` and `outbreakmap.dashboard`.

CORS is driven by env:
- `OUTBREAKMAP_CORS_ORIGINS`: comma-separated explicit origins,
- `OUTBREAKMAP_CORS_ALLOW_LOCAL=0`: drop the default localhost allowance (any port).
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from outbreakmap.core.logging import configure_logging

from .routes import router

_LOCAL_ORIGIN_REGEX = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def _cors_options() -> dict | None:
    origins = [o.strip() for o in os.getenv("OUTBREAKMAP_CORS_ORIGINS", "").split(",") if o.strip()]
    if origins:
        return {"allow_origins": origins}
    if os.getenv("OUTBREAKMAP_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}:
        return {"allow_origin_regex": _LOCAL_ORIGIN_REGEX}
    return None


def create_app() -> FastAPI:
    configure_logging()
    application = FastAPI(title="OutbreakMap API", version="0.1.0")

    cors = _cors_options()
    if cors is not None:
        # The map only reads; no cookies cross origins.
        application.add_middleware(
            CORSMiddleware, allow_credentials=False, allow_methods=["*"], allow_headers=["*"], **cors
        )

    application.include_router(router)

    @application.get("/healthz")
    def healthz() -> dict:
        return {"status": "ok"}

    return application


app = create_app()
