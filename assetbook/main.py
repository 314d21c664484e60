from contextlib import asynccontextmanager
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from assetbook.config import settings
from assetbook.api.v1.router import api_router
from assetbook.database import init_db, async_session_factory
from assetbook.jobs.scheduler import start_scheduler, shutdown_scheduler


logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Ensure database tables exist
    - Start background scheduler (auto depreciation)
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()

    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    else:
        logger.info("Background scheduler disabled")

    yield

    # Shutdown
    shutdown_scheduler()
    logger.info("Shutting down...")


# OpenAPI Tags with detailed descriptions
OPENAPI_TAGS = [
    {"name": "Assets", "description": "Fixed asset register"},
    {"name": "Depreciation", "description": "Straight-line monthly depreciation ledger per asset"},
    {"name": "Depreciation Schedule", "description": "Automatic system-wide depreciation run"},
]

FULL_API_DESCRIPTION = """
## Assetbook Depreciation API

Fixed asset register with a monthly **straight-line depreciation ledger**.

### Ledger rules

- One entry per asset per monthly period, numbered 1..useful life
- Period dates are anchored on the purchase date (Jan 31 -> Feb 29 -> Mar 31)
- The final period absorbs rounding so cumulative depreciation equals the asset value
- Disposed and Lost assets never depreciate

### Dates

Every date-dependent endpoint accepts `?as_of=YYYY-MM-DD`; without it
"today" is taken in the configured business timezone.

### Error Codes

| Code | Description |
|------|-------------|
| 404 | Not Found - Asset doesn't exist |
| 409 | Conflict - Asset status does not allow depreciation / duplicate tag |
| 422 | Unprocessable Entity - Invalid target value or asset configuration |
| 500 | Internal Server Error |
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=FULL_API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


# Global exception handler for anything the endpoints didn't turn into an HTTPException
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return error information as JSON."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")

    error_detail = {
        "error": str(exc),
        "type": type(exc).__name__,
        "path": str(request.url.path),
        "method": request.method,
    }
    if settings.DEBUG:
        error_detail["traceback"] = traceback.format_exc()

    response = JSONResponse(
        status_code=500,
        content=error_detail
    )

    # Add CORS headers if origin is allowed
    origin = request.headers.get("origin", "")
    if origin in settings.cors_origins_list or "*" in settings.cors_origins_list:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"

    return response


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint with database validation."""
    from sqlalchemy import text
    from datetime import datetime, timezone
    from assetbook.jobs.scheduler import scheduler

    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown",
            "scheduler": "running" if scheduler.running else "stopped",
        }
    }

    # Check database connectivity
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
