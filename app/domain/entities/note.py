"""
Note domain entity

노트의 상태 머신: PENDING -> PUBLISHED -> EXPIRED (역방향 전이 없음)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from app.core.errors import InvalidStateTransitionException
from app.utils.time_utils import ensure_utc, remaining, to_days, to_milliseconds


class NoteState(str, Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    EXPIRED = "expired"


class Note(BaseModel):
    """저장소와 독립적인 노트 엔티티"""
    id: Optional[str] = None
    content: str = ""
    voice_message: str = ""
    voice_duration: int = 0
    image_data: str = ""
    sender_id: str
    room_id: str
    created_at: datetime
    publish_time: datetime
    is_published: bool = False
    expiry_time: Optional[datetime] = None
    is_deleted: bool = False

    @property
    def state(self) -> NoteState:
        if self.is_deleted:
            return NoteState.EXPIRED
        if self.is_published:
            return NoteState.PUBLISHED
        return NoteState.PENDING

    @property
    def has_voice(self) -> bool:
        return bool(self.voice_message)

    @property
    def has_image(self) -> bool:
        return bool(self.image_data)

    def is_due_for_publish(self, now: datetime) -> bool:
        return self.state is NoteState.PENDING and ensure_utc(self.publish_time) <= ensure_utc(now)

    def is_due_for_expiry(self, now: datetime) -> bool:
        return (
            self.state is NoteState.PUBLISHED
            and self.expiry_time is not None
            and ensure_utc(self.expiry_time) <= ensure_utc(now)
        )

    def publish(self, at: datetime, expiry_delay: timedelta) -> "Note":
        """
        발행 전이. is_published와 expiry_time을 한 번에 설정한 새 엔티티를 반환한다.

        만료 시각은 예약된 publish_time이 아닌 실제 발행 시점 기준으로 계산된다.
        """
        if self.state is not NoteState.PENDING:
            raise InvalidStateTransitionException(
                "Note is already published",
                details={"note_id": self.id, "state": self.state.value}
            )
        if expiry_delay <= timedelta(0):
            raise ValueError("expiry_delay must be positive")

        return self.model_copy(update={
            "is_published": True,
            "expiry_time": ensure_utc(at) + expiry_delay,
        })

    def expire(self, at: datetime) -> "Note":
        """만료 전이 (soft delete)"""
        if not self.is_due_for_expiry(at):
            raise InvalidStateTransitionException(
                "Note is not eligible for expiry",
                details={"note_id": self.id, "state": self.state.value}
            )
        return self.model_copy(update={"is_deleted": True})

    def is_visible_to(self, viewer_id: str, now: datetime) -> bool:
        if self.is_deleted:
            return False
        if self.sender_id == viewer_id:
            return True
        return (
            self.is_published
            and self.expiry_time is not None
            and ensure_utc(self.expiry_time) > ensure_utc(now)
        )


@dataclass(frozen=True)
class NoteView:
    """조회 시점에 계산되는 프로젝션 (저장하지 않음)"""
    note: Note
    is_own: bool
    time_until_publish: Optional[timedelta]
    time_until_expiry: Optional[timedelta]

    @property
    def time_until_publish_ms(self) -> Optional[int]:
        if self.time_until_publish is None:
            return None
        return to_milliseconds(self.time_until_publish)

    @property
    def time_until_expiry_ms(self) -> Optional[int]:
        if self.time_until_expiry is None:
            return None
        return to_milliseconds(self.time_until_expiry)

    @property
    def days_until_expiry(self) -> Optional[float]:
        if self.time_until_expiry is None:
            return None
        return to_days(self.time_until_expiry)


def project(note: Note, viewer_id: str, now: datetime) -> NoteView:
    """노트에 대한 조회용 파생 값 계산"""
    time_until_publish = None
    time_until_expiry = None

    if not note.is_published:
        time_until_publish = remaining(note.publish_time, now)
    elif note.expiry_time is not None:
        time_until_expiry = remaining(note.expiry_time, now)

    return NoteView(
        note=note,
        is_own=note.sender_id == viewer_id,
        time_until_publish=time_until_publish,
        time_until_expiry=time_until_expiry,
    )


__all__ = ["Note", "NoteState", "NoteView", "project"]
