from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.adapters.api.controllers.buses import router as buses_router
from src.adapters.api.dependencies import build_tracking_coordinator


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the periodic bus refresh for as long as the app is serving."""

    coordinator = getattr(app.state, "tracking_coordinator", None)
    if coordinator is None:
        coordinator = build_tracking_coordinator()
        app.state.tracking_coordinator = coordinator

    if _env_flag("AUTO_REFRESH", True):
        coordinator.start()
    try:
        yield
    finally:
        await coordinator.stop()


app = FastAPI(title="Bus Tracker", lifespan=lifespan)
app.include_router(buses_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Ensure API errors are JSON so display clients can show them."""

    logging.getLogger("uvicorn.error").exception(
        "Unhandled exception", extra={"path": str(request.url.path)}
    )

    if _env_flag("BUSTRACKER_REVEAL_ERRORS", False) or isinstance(
        exc, (RuntimeError, ValueError)
    ):
        detail = str(exc) or exc.__class__.__name__
    else:
        detail = "Internal Server Error"

    return JSONResponse(status_code=500, content={"detail": detail})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
