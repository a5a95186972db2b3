from dataclasses import dataclass
from datetime import timedelta
from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()  # .env 파일 로드


@dataclass(frozen=True)
class LifecycleTiming:
    """노트 라이프사이클 시간 설정 (프로세스 수명 동안 고정)"""
    publish_delay: timedelta
    expiry_delay: timedelta
    sweep_interval: timedelta
    startup_delay: timedelta


class Settings(BaseSettings):
    # Application
    app_name: str = "Love Notes API"
    version: str = "2.0.0"
    debug: bool = False

    # Database - MongoDB
    mongo_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "love_notes"

    # JWT
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_hours: int = 24 * 7

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]

    # Note lifecycle
    fast_mode: bool = Field(default=False, validation_alias=AliasChoices("fast_mode", "dev_mode"))
    publish_delay_hours: float = 24
    expiry_delay_days: float = 3
    sweep_interval_seconds: int = 600  # 10분

    # fast mode (개발/테스트용)
    fast_publish_delay_minutes: float = 2
    fast_expiry_delay_minutes: float = Field(
        default=5,
        validation_alias=AliasChoices("fast_expiry_delay_minutes", "dev_expiry_delay_minutes"),
    )
    fast_sweep_interval_seconds: int = 60

    scheduler_enabled: bool = True
    scheduler_startup_delay_seconds: float = 5

    note_content_max_length: int = 500

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # 추가 환경변수 무시

    def lifecycle_timing(self) -> LifecycleTiming:
        """현재 설정으로부터 라이프사이클 타이밍 계산"""
        if self.fast_mode:
            return LifecycleTiming(
                publish_delay=timedelta(minutes=self.fast_publish_delay_minutes),
                expiry_delay=timedelta(minutes=self.fast_expiry_delay_minutes),
                sweep_interval=timedelta(seconds=self.fast_sweep_interval_seconds),
                startup_delay=timedelta(seconds=self.scheduler_startup_delay_seconds),
            )
        return LifecycleTiming(
            publish_delay=timedelta(hours=self.publish_delay_hours),
            expiry_delay=timedelta(days=self.expiry_delay_days),
            sweep_interval=timedelta(seconds=self.sweep_interval_seconds),
            startup_delay=timedelta(seconds=self.scheduler_startup_delay_seconds),
        )


settings = Settings()

# 시작 시 한 번만 계산되어 프로세스 수명 동안 유지됨
lifecycle_timing = settings.lifecycle_timing()
