from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

import app.api as api_package
from app.api import include_routers
from app.core.config import settings, lifecycle_timing
from app.core.logging import setup_logging, get_logger
from app.database import init_databases, close_databases
from app.infrastructure.kafka.config import kafka_config
from app.infrastructure.kafka.producer import get_event_producer
from app.middleware.error_handler import ErrorHandlerMiddleware, create_http_exception_handler
from app.middleware.logging_middleware import LoggingMiddleware
from app.services.lifecycle_service import get_lifecycle_engine
from app.services.note_scheduler import NoteScheduler, set_note_scheduler

logger = get_logger(__name__)

NOTIFICATION_DRAIN_TIMEOUT_SECONDS = 5


async def start_event_producer():
    """알림용 Kafka Producer 시작 (실패해도 서버는 기동)"""
    if not kafka_config.enabled:
        logger.info("Kafka producer disabled, partner notifications will be skipped")
        return
    try:
        await get_event_producer().start()
    except Exception as e:
        logger.warning(f"Kafka unavailable, partner notifications will be skipped: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    await init_databases()
    await start_event_producer()

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = NoteScheduler(
            engine=get_lifecycle_engine(),
            interval_seconds=lifecycle_timing.sweep_interval.total_seconds(),
            startup_delay_seconds=lifecycle_timing.startup_delay.total_seconds(),
        )
        set_note_scheduler(scheduler)
        await scheduler.start()

    logger.info(
        f"{settings.app_name} started (fast mode: {settings.fast_mode}, "
        f"publish delay: {lifecycle_timing.publish_delay}, expiry delay: {lifecycle_timing.expiry_delay})"
    )
    yield
    # Shutdown
    if scheduler:
        await scheduler.stop()
        set_note_scheduler(None)
    # 발행 알림이 producer 종료 전에 전송되도록 대기
    await get_lifecycle_engine().drain_notifications(timeout=NOTIFICATION_DRAIN_TIMEOUT_SECONDS)
    await get_event_producer().stop()
    await close_databases()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    lifespan=lifespan
)
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,  # React 개발 서버
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(StarletteHTTPException, create_http_exception_handler())

# Include routers
include_routers(app, "api", api_package.__path__)


@app.get("/")
async def root():
    return {"message": settings.app_name, "health": "/health"}
