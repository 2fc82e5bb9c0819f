"""
FastAPI REST API for PlateDashboard.

Hosts the data retention endpoints and owns the background retention
maintenance runner for the lifetime of the process.
"""

import logging
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api_models import API_VERSION, HealthResponse
from config import get_config
from database import close_db_manager, get_db_manager
from errors import ErrorCode, error_payload
from retention_maintenance import get_retention_maintenance_runner
from routers.retention_api import retention_router
from version import __version__

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan."""
    logger.info("Starting PlateDashboard API...")
    runner = get_retention_maintenance_runner()
    if runner.is_enabled():
        await runner.start()
    else:
        logger.info("Retention maintenance runner disabled by configuration")

    yield

    logger.info("Shutting down PlateDashboard API...")
    await runner.stop()
    close_db_manager()
    logger.info("Cleanup complete")


config = get_config()
app = FastAPI(
    title="PlateDashboard API",
    description="License plate detection dashboard: data retention and lifecycle",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

v1_router = APIRouter(prefix=f"/api/v{API_VERSION}")
v1_router.include_router(retention_router)
app.include_router(v1_router)


@app.get("/health", response_model=HealthResponse, tags=["General"])
async def health_check():
    """Health check endpoint."""
    try:
        db_health = get_db_manager().health_check()
    except Exception as e:
        logger.error("Health check failed: %s", e)
        db_health = {"status": "unhealthy", "error": str(e)}

    if db_health.get("status") != "healthy":
        return JSONResponse(
            status_code=ErrorCode.DATABASE_CONNECTION_ERROR.status_code,
            content=error_payload(ErrorCode.DATABASE_CONNECTION_ERROR, details=db_health),
        )

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        database=db_health,
    )


# Error handlers
@app.exception_handler(HTTPException)
async def structured_http_exception_handler(request, exc: HTTPException):
    """Flatten structured errors raised through errors.raise_api_error."""
    if isinstance(exc.detail, dict) and "error_code" in exc.detail:
        return JSONResponse(status_code=exc.status_code, content=exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(ErrorCode.INTERNAL_SERVER_ERROR, details={"error": str(exc)}),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api:app",
        host=config.api.host,
        port=config.api.port,
        reload=config.api.reload,
        log_level=config.api.log_level
    )
