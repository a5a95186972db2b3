from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from app.domain.entities.note import NoteView
from app.utils.time_utils import format_time_remaining


class NoteCreate(BaseModel):
    """노트 생성 스키마 (텍스트, 음성, 이미지 중 최소 하나)"""
    content: Optional[str] = Field(None, description="노트 내용 (최대 500자)")
    voice_message: Optional[str] = Field(None, description="음성 메시지 참조")
    voice_duration: Optional[int] = Field(None, ge=0, description="음성 길이 (초)")
    image_data: Optional[str] = Field(None, description="이미지 참조")


class NoteResponse(BaseModel):
    """노트 응답 스키마 (조회 시점 프로젝션 포함)"""
    id: str = Field(..., description="노트 ID")
    content: str = Field(..., description="노트 내용")
    sender_id: str = Field(..., description="발신자 ID")
    room_id: str = Field(..., description="방 ID")
    created_at: datetime = Field(..., description="생성일시")
    publish_time: datetime = Field(..., description="예약 발행 시각")
    is_published: bool = Field(..., description="발행 여부")
    expiry_time: Optional[datetime] = Field(None, description="만료 시각 (발행 시 설정)")
    state: str = Field(..., description="pending, published, expired")
    is_own: bool = Field(..., description="본인이 보낸 노트인지")
    has_voice: bool = Field(default=False)
    voice_message: str = Field(default="")
    voice_duration: int = Field(default=0)
    has_image: bool = Field(default=False)
    image_data: str = Field(default="")
    time_until_publish: Optional[int] = Field(None, description="발행까지 남은 시간 (ms)")
    time_until_expiry: Optional[int] = Field(None, description="만료까지 남은 시간 (ms)")
    days_until_expiry: Optional[float] = Field(None, description="만료까지 남은 일수")
    publish_countdown: Optional[str] = Field(None, description="발행까지 남은 시간 표기")
    expiry_countdown: Optional[str] = Field(None, description="만료까지 남은 시간 표기")

    @classmethod
    def from_view(cls, view: NoteView) -> "NoteResponse":
        note = view.note
        return cls(
            id=note.id,
            content=note.content,
            sender_id=note.sender_id,
            room_id=note.room_id,
            created_at=note.created_at,
            publish_time=note.publish_time,
            is_published=note.is_published,
            expiry_time=note.expiry_time,
            state=note.state.value,
            is_own=view.is_own,
            has_voice=note.has_voice,
            voice_message=note.voice_message,
            voice_duration=note.voice_duration,
            has_image=note.has_image,
            image_data=note.image_data,
            time_until_publish=view.time_until_publish_ms,
            time_until_expiry=view.time_until_expiry_ms,
            days_until_expiry=view.days_until_expiry,
            publish_countdown=format_time_remaining(view.time_until_publish) or None,
            expiry_countdown=format_time_remaining(view.time_until_expiry) or None,
        )


class NoteActionResponse(BaseModel):
    """노트 생성/발행 응답"""
    message: str = Field(..., description="결과 메시지")
    note: NoteResponse


class NoteListResponse(BaseModel):
    """노트 목록 응답"""
    notes: List[NoteResponse] = Field(..., description="노트 목록 (최신순)")
    count: int = Field(..., description="노트 수")
