from fastapi import APIRouter, HTTPException

from app.core.config import settings
from app.database import check_database_health
from app.services.note_scheduler import get_note_scheduler
from app.utils.time_utils import utc_now

router = APIRouter()


@router.get("/health")
async def health_check():
    """Application health check endpoint"""
    try:
        db_health = await check_database_health()
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"Health check failed: {str(e)}"
        )

    scheduler = get_note_scheduler()

    return {
        "status": "healthy" if db_health["overall"] else "unhealthy",
        "timestamp": utc_now(),
        "databases": {
            "mongodb": "connected" if db_health["mongodb"] else "disconnected",
            "mongodb_latency_ms": db_health["mongodb_latency_ms"]
        },
        "scheduler": scheduler.status() if scheduler else {"running": False},
        "fast_mode": settings.fast_mode,
        "service": "love-notes-backend",
        "version": settings.version
    }


@router.get("/health/ready")
async def readiness_check():
    """Kubernetes readiness probe endpoint"""
    db_health = await check_database_health()

    if not db_health["overall"]:
        raise HTTPException(
            status_code=503,
            detail="Service not ready - database connection failed"
        )

    return {"status": "ready"}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes liveness probe endpoint"""
    return {"status": "alive", "timestamp": utc_now()}
