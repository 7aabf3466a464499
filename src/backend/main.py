"""
Petube - Stream Coordination Backend
Hauptanwendung mit FastAPI
"""
import sys

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy import text

from utils.config import settings

# Logging konfigurieren
logger.remove()
logger.add(sys.stderr, level=settings.log_level, serialize=settings.log_json)

# Lokale Imports
from api.lifecycle import lifespan
from api.routes import devices, rooms
from api.websocket import stream_router
from services.database import AsyncSessionLocal
from services.errors import PetubeError

# FastAPI App erstellen
app = FastAPI(
    title="Petube Backend",
    description="Stream room coordination and device pairing",
    version="1.0.0",
    lifespan=lifespan
)

# CORS Middleware - configured via settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handling
@app.exception_handler(PetubeError)
async def petube_error_handler(request: Request, exc: PetubeError):
    """Map domain errors onto {"error": message} responses."""
    logger.warning(f"⚠️ {request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Invalid request bodies are answered with 400 and the first problem."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    logger.warning(f"⚠️ {request.method} {request.url.path} -> 400: {message}")
    return JSONResponse({"error": message}, status_code=400)


# Router einbinden
app.include_router(devices.router, tags=["Devices"])
app.include_router(stream_router)
app.include_router(rooms.router, tags=["Rooms"])


# Health Check Endpoints
@app.get("/health")
async def health_check():
    """Quick health check for load balancers."""
    return {"status": "healthy"}


@app.get("/health/ready")
async def readiness_check():
    """Readiness probe - checks the database."""
    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"❌ Readiness check failed: {e}")
        return JSONResponse(
            {"status": "unhealthy", "checks": {"database": {"status": "unhealthy", "error": str(e)}}},
            status_code=503,
        )
    return {"status": "healthy", "checks": {"database": {"status": "healthy"}}}


@app.get("/health/live")
async def liveness_check():
    """Liveness probe."""
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower()
    )
