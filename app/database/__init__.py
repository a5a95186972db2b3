import logging
from .mongodb import init_mongodb, close_mongo_connection, ping_mongo, get_database

logger = logging.getLogger(__name__)


async def init_databases():
    """Initialize MongoDB (노트 저장소)"""
    try:
        await init_mongodb()
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


async def close_databases():
    try:
        await close_mongo_connection()
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")


async def check_database_health():
    """MongoDB 상태와 ping 지연시간"""
    latency_ms = await ping_mongo()
    connected = latency_ms is not None

    return {
        "mongodb": connected,
        "mongodb_latency_ms": round(latency_ms, 2) if connected else None,
        "overall": connected
    }

__all__ = [
    "init_databases",
    "close_databases",
    "check_database_health",
    "get_database"
]
