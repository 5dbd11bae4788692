"""
Health check router with database connectivity verification.
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from daypart_scheduler import scheduler
from daypart_scheduler.db.session import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic health check - always returns OK."""
    return {"status": "ok"}


@router.get("/api/health")
def api_health_check(db: Session = Depends(get_db)):
    """
    Health check verifying:
    - Database connectivity
    - Whether the publish sweep is running (informational)

    Returns 200 if the database is reachable, 503 otherwise.
    """
    health_status = {
        "status": "ok",
        "services": {}
    }
    is_healthy = True

    try:
        db.execute(text("SELECT 1"))
        health_status["services"]["database"] = {"status": "ok"}
    except Exception as e:
        health_status["services"]["database"] = {"status": "error", "message": str(e)}
        is_healthy = False

    # The sweep can be disabled on purpose, so it never fails the check
    if scheduler.scheduler is not None and scheduler.scheduler.running:
        health_status["services"]["publish_sweep"] = {"status": "ok"}
    else:
        health_status["services"]["publish_sweep"] = {"status": "disabled"}

    if not is_healthy:
        health_status["status"] = "unhealthy"
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=health_status
        )

    return health_status
