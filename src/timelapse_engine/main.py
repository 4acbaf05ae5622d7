"""
Timelapse Collaborator Service
==============================

FastAPI application serving the engine's external collaborators from a
local frame directory: the existence oracle, the resource locator's
image route and the location catalog.

Endpoints:
    GET  /                                   - Service information
    GET  /health                             - Liveness probe
    GET  /api/locations                      - Location catalog
    GET  /api/check/{location}/{filename}    - Single existence check
    POST /api/check-batch                    - Batched existence check
    GET  /api/image/{location}/{filename}    - Frame bytes (immutable, cacheable)
"""

import asyncio
import logging
import mimetypes
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse

from timelapse_engine import __version__
from timelapse_engine.config import load_config, setup_logging
from timelapse_engine.models.oracle import BatchCheckRequest, CheckResponse
from timelapse_engine.storage.store import FrameStore


settings = load_config()
setup_logging(settings)

logger = logging.getLogger(__name__)


IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"


# =============================================================================
# Global State
# =============================================================================

_store: Optional[FrameStore] = None
_startup_time: float = 0.0


def get_store() -> FrameStore:
    global _store
    if _store is None:
        _store = FrameStore(settings.storage.base_dir)
    return _store


def set_store(store: Optional[FrameStore]) -> None:
    """Replace the frame store (None re-creates it from settings on next use)."""
    global _store
    _store = store


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    global _startup_time

    _startup_time = time.time()
    store = get_store()
    logger.info(f"Starting timelapse service {__version__}, serving {store.base_dir}")

    if not store.base_dir.is_dir():
        logger.warning(f"Frame directory does not exist: {store.base_dir}")

    yield

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Timelapse Engine",
    description="Frame existence, catalog and image service for timelapse viewers",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies get a 400 with a short error message."""
    logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse({"error": "Invalid request body"}, status_code=400)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "timelapse-engine",
        "version": __version__,
        "status": "running",
        "base_dir": str(get_store().base_dir),
    })


@app.get("/health")
async def health() -> JSONResponse:
    """Liveness probe - always 200 while the process runs."""
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/api/locations")
async def locations() -> JSONResponse:
    """List location directories with display labels."""
    try:
        entries = await get_store().list_locations()
    except OSError as e:
        logger.error(f"Failed to read locations: {e}")
        return JSONResponse({"error": "Failed to read locations"}, status_code=500)

    return JSONResponse([entry.model_dump() for entry in entries])


@app.get("/api/check/{location}/{filename}")
async def check(location: str, filename: str) -> JSONResponse:
    """Whether a single frame exists."""
    exists = await get_store().check(location, filename)
    return JSONResponse(CheckResponse(exists=exists).model_dump())


@app.post("/api/check-batch")
async def check_batch(body: BatchCheckRequest) -> JSONResponse:
    """Existence of many frames, one entry per requested filename in order."""
    entries = await get_store().check_batch(body.location, body.filenames)
    logger.debug(
        f"Batch check {body.location}: {sum(e.exists for e in entries)}/{len(entries)} exist"
    )
    return JSONResponse([entry.model_dump() for entry in entries])


@app.get("/api/image/{location}/{filename}", response_model=None)
async def image(location: str, filename: str):
    """Serve frame bytes with long-lived cache headers."""
    store = get_store()
    try:
        path = store.path_for(location, filename)
    except ValueError:
        return JSONResponse({"error": "Invalid parameters"}, status_code=400)

    if not await asyncio.to_thread(path.is_file):
        return JSONResponse({"error": "Image not found"}, status_code=404)

    media_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    return FileResponse(
        path,
        media_type=media_type,
        headers={"Cache-Control": IMMUTABLE_CACHE_CONTROL},
    )


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "timelapse_engine.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )
