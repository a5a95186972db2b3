"""
Note lifecycle service

노트 상태 전이(발행, 만료)와 이를 호출하는 두 경로를 담당한다.
- 자동: 주기적 스윕 (run_sweep)
- 수동: 발신자의 즉시 발행 요청 (publish_now)
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, List, Optional, Set

from app.core.config import LifecycleTiming, settings
from app.core.errors import (
    note_already_published_error,
    note_expired_error,
    note_not_found_error,
    not_note_sender_error,
)
from app.core.logging import get_logger, log_note_transition, log_sweep_summary
from app.core.validators import validate_note_creation
from app.domain.entities.note import Note, NoteState, NoteView, project
from app.services.note_store import NoteStore
from app.services.notification_service import NoteNotifier
from app.utils.time_utils import Clock, utc_now

logger = get_logger(__name__)

TRIGGER_MANUAL = "manual"
TRIGGER_SCHEDULE = "schedule"


@dataclass
class SweepResult:
    """스윕 1회 실행 결과"""
    ran_at: datetime
    published: List[str] = field(default_factory=list)
    expired: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    # 대상 조회 자체가 실패한 단계 ("publish", "expire")
    failed_phases: List[str] = field(default_factory=list)

    @property
    def transitions(self) -> int:
        return len(self.published) + len(self.expired)

    def summary(self) -> dict:
        return {
            "ran_at": self.ran_at.isoformat(),
            "published": len(self.published),
            "expired": len(self.expired),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
            "failed_phases": list(self.failed_phases),
        }


class LifecycleEngine:
    """노트 라이프사이클 상태 머신"""

    def __init__(
        self,
        store: NoteStore,
        timing: LifecycleTiming,
        notifier: Optional[NoteNotifier] = None,
        clock: Clock = utc_now,
        content_max_length: Optional[int] = None,
    ):
        self.store = store
        self.timing = timing
        self.notifier = notifier
        self.clock = clock
        self.content_max_length = content_max_length or settings.note_content_max_length
        self._notifications: Set[asyncio.Task] = set()

    # =========================================================================
    # Create
    # =========================================================================

    async def create_note(
        self,
        sender_id: str,
        room_id: str,
        content: Optional[str] = None,
        voice_message: Optional[str] = None,
        voice_duration: Optional[int] = None,
        image_data: Optional[str] = None,
    ) -> Note:
        """노트 생성 (publish_time = 생성 시각 + 발행 지연)"""
        cleaned, duration = validate_note_creation(
            content, voice_message, voice_duration, image_data, self.content_max_length
        )

        now = self.clock()
        note = Note(
            content=cleaned,
            voice_message=voice_message or "",
            voice_duration=duration,
            image_data=image_data or "",
            sender_id=sender_id,
            room_id=room_id,
            created_at=now,
            publish_time=now + self.timing.publish_delay,
        )

        note_id = await self.store.create(note)
        note = note.model_copy(update={"id": note_id})
        logger.info(
            f"Note {note_id} created, publishes at {note.publish_time.isoformat()}",
            extra={"event_type": "note_created", "note_id": note_id, "room_id": room_id}
        )

        self._notify_created(note)
        return note

    # =========================================================================
    # Manual publish
    # =========================================================================

    async def publish_now(self, note_id: str, user_id: str, room_id: Optional[str] = None) -> Note:
        """
        발신자의 즉시 발행

        Raises:
            ResourceNotFoundException: 노트가 없거나 다른 방의 노트
            AuthorizationException: 요청자가 발신자가 아님
            InvalidStateTransitionException: 이미 발행됐거나 만료됨 (동시 발행 경쟁에서 진 경우 포함)
        """
        note = await self.store.get(note_id)
        if note is None or (room_id is not None and note.room_id != room_id):
            raise note_not_found_error(note_id)

        if note.sender_id != user_id:
            raise not_note_sender_error()

        if note.is_deleted:
            raise note_expired_error(note_id)

        if note.is_published:
            raise note_already_published_error(note_id)

        published = await self._publish(note, self.clock(), TRIGGER_MANUAL)
        if published is None:
            raise note_already_published_error(note_id)
        return published

    # =========================================================================
    # Read
    # =========================================================================

    async def list_visible(self, room_id: str, viewer_id: str, now: Optional[datetime] = None) -> List[NoteView]:
        """방에서 viewer가 볼 수 있는 노트 목록 (최신순, 프로젝션 포함)"""
        now = now or self.clock()
        notes = await self.store.find_visible(room_id, viewer_id, now)
        notes = sorted(notes, key=lambda n: n.created_at, reverse=True)
        return [project(note, viewer_id, now) for note in notes]

    # =========================================================================
    # Sweep
    # =========================================================================

    async def run_sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """
        스윕 1회 실행

        1. 발행 시각이 지난 노트 발행
        2. 만료 시각이 지난 노트 soft delete

        노트 단위로 처리/저장하며 한 건의 실패가 나머지 처리를 막지 않는다.
        대상 조회가 실패한 단계는 건너뛰고 다음 단계는 그대로 실행한다.
        실패한 노트는 다음 스윕에서 다시 대상이 된다.
        """
        now = now or self.clock()
        result = SweepResult(ran_at=now)
        started = time.perf_counter()

        for note in await self._find_candidates("publish", self.store.find_publishable(now), result):
            try:
                published = await self._publish(note, now, TRIGGER_SCHEDULE)
            except Exception as e:
                logger.error(f"Auto-publish failed for note {note.id}: {e}", exc_info=True)
                result.failed.append(note.id)
                continue
            if published is None:
                result.skipped.append(note.id)
            else:
                result.published.append(note.id)

        for note in await self._find_candidates("expire", self.store.find_expirable(now), result):
            try:
                applied = await self._expire(note, now)
            except Exception as e:
                logger.error(f"Expiry failed for note {note.id}: {e}", exc_info=True)
                result.failed.append(note.id)
                continue
            if applied:
                result.expired.append(note.id)
            else:
                result.skipped.append(note.id)

        log_sweep_summary(
            logger,
            published=len(result.published),
            expired=len(result.expired),
            skipped=len(result.skipped),
            failed=len(result.failed) + len(result.failed_phases),
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        return result

    async def _find_candidates(self, phase: str, query: Awaitable[List[Note]], result: SweepResult) -> List[Note]:
        try:
            return await query
        except Exception as e:
            logger.error(f"Sweep {phase} query failed: {e}", exc_info=True)
            result.failed_phases.append(phase)
            return []

    # =========================================================================
    # Transitions
    # =========================================================================

    async def _publish(self, note: Note, now: datetime, trigger: str) -> Optional[Note]:
        """발행 전이 + 조건부 저장. 다른 쓰기가 먼저 적용됐으면 None."""
        published = note.publish(now, self.timing.expiry_delay)
        if not await self.store.update(published, NoteState.PENDING):
            logger.info(f"Note {note.id} was already published concurrently ({trigger})")
            return None

        log_note_transition(
            logger, "published", published.id, trigger,
            expiry_time=published.expiry_time.isoformat()
        )
        self._notify_published(published, trigger)
        return published

    async def _expire(self, note: Note, now: datetime) -> bool:
        expired = note.expire(now)
        if not await self.store.update(expired, NoteState.PUBLISHED):
            return False
        log_note_transition(logger, "expired", expired.id, TRIGGER_SCHEDULE)
        return True

    # =========================================================================
    # Notifications (fire-and-forget)
    # =========================================================================

    def _notify_published(self, note: Note, trigger: str):
        if self.notifier is None:
            return
        self._dispatch(self.notifier.notify_published(note, trigger), note.id, "publish")

    def _notify_created(self, note: Note):
        if self.notifier is None:
            return
        self._dispatch(self.notifier.notify_created(note), note.id, "create")

    def _dispatch(self, notification: Awaitable[None], note_id: str, kind: str):
        """알림을 백그라운드 태스크로 실행. 전이 경로는 알림 완료를 기다리지 않는다."""
        task = asyncio.create_task(notification)
        self._notifications.add(task)
        task.add_done_callback(lambda t: self._on_notification_done(t, note_id, kind))

    def _on_notification_done(self, task: asyncio.Task, note_id: str, kind: str):
        self._notifications.discard(task)
        if task.cancelled():
            logger.warning(f"{kind.capitalize()} notification cancelled for note {note_id}")
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"{kind.capitalize()} notification failed for note {note_id}: {error}")

    @property
    def pending_notifications(self) -> int:
        return len(self._notifications)

    async def drain_notifications(self, timeout: Optional[float] = None):
        """진행 중인 알림 태스크 완료 대기 (종료 시 사용). timeout이 지나면 남은 태스크는 취소."""
        if not self._notifications:
            return
        pending = set(self._notifications)
        _, not_done = await asyncio.wait(pending, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            logger.warning(f"Cancelled {len(not_done)} unfinished notifications")


_lifecycle_engine: Optional[LifecycleEngine] = None


def get_lifecycle_engine() -> LifecycleEngine:
    """LifecycleEngine 싱글톤 인스턴스 반환"""
    global _lifecycle_engine
    if _lifecycle_engine is None:
        from app.core.config import lifecycle_timing
        from app.services.note_store import get_note_store
        from app.services.notification_service import get_note_notifier

        _lifecycle_engine = LifecycleEngine(
            store=get_note_store(),
            timing=lifecycle_timing,
            notifier=get_note_notifier(),
        )
    return _lifecycle_engine
