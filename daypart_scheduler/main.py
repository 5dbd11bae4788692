from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from daypart_scheduler.core.config import get_settings
from daypart_scheduler.core.exceptions import DaypartError
from daypart_scheduler.routers.health import router as health_router
from daypart_scheduler.scheduler import start_scheduler, stop_scheduler

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.PUBLISH_SWEEP_ENABLED:
        start_scheduler()
    yield
    if settings.PUBLISH_SWEEP_ENABLED:
        stop_scheduler()


app = FastAPI(
    title=settings.APP_NAME,
    description="Daypart scheduling for digital menu boards - effective schedules, staged edits and deferred publishing.",
    version="0.1.0",
    debug=settings.DEBUG,
    lifespan=lifespan,
)


@app.exception_handler(DaypartError)
async def daypart_error_handler(request: Request, exc: DaypartError):
    """Domain errors that escape a router are reported as 422."""
    logger.warning(f"{type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=422,
        content={
            "error": "invalid_request",
            "message": str(exc),
        }
    )


# Global exception handler for unhandled errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected server errors with structured response."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "request_id": request.headers.get("X-Request-ID"),
        }
    )

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
from daypart_scheduler.routers.dayparts import router as dayparts_router
from daypart_scheduler.routers.publish import router as publish_router

app.include_router(health_router)
app.include_router(dayparts_router, prefix="/api")
app.include_router(publish_router, prefix="/api")


@app.get("/")
def read_root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "docs": "/docs",
        "health": "/health"
    }
