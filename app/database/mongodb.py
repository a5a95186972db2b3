import logging
import time
from typing import List, Optional, Type

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from beanie import init_beanie, Document

from app.core.config import settings
from app.models import NoteDocument, Room

logger = logging.getLogger(__name__)

# 노트는 읽기/쓰기, 방은 조회만 한다
DOCUMENT_MODELS: List[Type[Document]] = [
    NoteDocument,
    Room,
]

client: Optional[AsyncIOMotorClient] = None
database: Optional[AsyncIOMotorDatabase] = None


def create_client(url: str) -> AsyncIOMotorClient:
    """
    MongoDB 클라이언트 생성

    tz_aware=True로 읽어온 datetime이 항상 UTC aware가 되도록 한다.
    (발행/만료 시각 비교가 naive/aware 혼용으로 깨지지 않도록)
    """
    return AsyncIOMotorClient(
        url,
        tz_aware=True,
        maxPoolSize=10,
        minPoolSize=1,
        maxIdleTimeMS=30000,
        waitQueueTimeoutMS=5000,
        serverSelectionTimeoutMS=5000,
    )


async def init_mongodb(url: Optional[str] = None, db_name: Optional[str] = None):
    """클라이언트 연결 후 Beanie 초기화 (인덱스 생성 포함)"""
    global client, database
    db_name = db_name or settings.mongodb_db_name
    try:
        client = create_client(url or settings.mongo_url)
        database = client[db_name]
        await init_beanie(database=database, document_models=DOCUMENT_MODELS)
        logger.info(
            f"MongoDB initialized: db={db_name}, "
            f"collections={[model.Settings.name for model in DOCUMENT_MODELS]}"
        )
    except Exception as e:
        logger.error(f"Failed to initialize MongoDB: {e}")
        raise


async def ping_mongo() -> Optional[float]:
    """ping 왕복 시간(ms), 연결되지 않았거나 실패하면 None"""
    if client is None:
        return None
    started = time.perf_counter()
    try:
        await client.admin.command('ping')
    except Exception as e:
        logger.error(f"MongoDB connection check failed: {e}")
        return None
    return (time.perf_counter() - started) * 1000


async def check_mongo_connection() -> bool:
    return await ping_mongo() is not None


async def close_mongo_connection():
    global client, database
    if client:
        client.close()
        client = None
        database = None
        logger.info("MongoDB connection closed")


def get_database() -> AsyncIOMotorDatabase:
    """Get MongoDB database instance"""
    if database is None:
        raise RuntimeError("MongoDB not initialized. Call init_mongodb() first.")
    return database
