"""
노트 스윕 스케줄러

고정 간격으로 LifecycleEngine.run_sweep을 실행한다.
프로세스 시작 직후 짧은 지연 후 한 번 더 실행하여 오프라인 동안 도래한 노트를 처리한다.
"""

import asyncio
from datetime import datetime
from typing import Optional

from app.core.logging import get_logger
from app.services.lifecycle_service import LifecycleEngine, SweepResult

logger = get_logger(__name__)


class NoteScheduler:
    """주기적 노트 스윕 실행기"""

    def __init__(
        self,
        engine: LifecycleEngine,
        interval_seconds: float,
        startup_delay_seconds: float = 5,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.engine = engine
        self.interval_seconds = interval_seconds
        self.startup_delay_seconds = max(0.0, startup_delay_seconds)
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self.last_run_at: Optional[datetime] = None
        self.last_result: Optional[SweepResult] = None
        self.skipped_runs = 0
        self._lock = asyncio.Lock()

    async def start(self):
        """스케줄러 시작"""
        if self.running:
            logger.warning("Note scheduler is already running")
            return

        self.running = True
        self.task = asyncio.create_task(self._run_forever())
        logger.info(
            f"Note scheduler started (every {self.interval_seconds}s, "
            f"first run in {self.startup_delay_seconds}s)"
        )

    async def stop(self):
        """스케줄러 중지"""
        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None
        logger.info("Note scheduler stopped")

    async def run_once(self) -> Optional[SweepResult]:
        """
        스윕 1회 실행

        이미 스윕이 진행 중이면 겹쳐 실행하지 않고 건너뛴다.

        Returns:
            SweepResult 또는 건너뛴 경우 None
        """
        if self._lock.locked():
            self.skipped_runs += 1
            logger.warning("Previous sweep still running, skipping this run")
            return None

        async with self._lock:
            result = await self.engine.run_sweep()
            self.last_run_at = result.ran_at
            self.last_result = result
            return result

    def status(self) -> dict:
        return {
            "running": self.running,
            "interval_seconds": self.interval_seconds,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_result": self.last_result.summary() if self.last_result else None,
            "skipped_runs": self.skipped_runs,
        }

    def next_delay(self, elapsed: float) -> float:
        """다음 스윕까지 대기 시간. 스윕 소요 시간만큼 줄여 실행 간격을 고정한다."""
        return max(0.0, self.interval_seconds - elapsed)

    async def _run_forever(self):
        try:
            await asyncio.sleep(self.startup_delay_seconds)
            loop = asyncio.get_running_loop()
            while self.running:
                started = loop.time()
                await self._tick()
                await asyncio.sleep(self.next_delay(loop.time() - started))

        except asyncio.CancelledError:
            logger.info("Note scheduler cancelled")
            raise

    async def _tick(self):
        try:
            await self.run_once()
        except Exception as e:
            # 스토어 조회 실패 등은 다음 주기에 재시도
            logger.error(f"Scheduled sweep failed: {e}", exc_info=True)


# 싱글톤 인스턴스
_note_scheduler: Optional[NoteScheduler] = None


def get_note_scheduler() -> Optional[NoteScheduler]:
    """실행 중인 NoteScheduler 반환 (애플리케이션 시작 전에는 None)"""
    return _note_scheduler


def set_note_scheduler(scheduler: Optional[NoteScheduler]):
    global _note_scheduler
    _note_scheduler = scheduler
