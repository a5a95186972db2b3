"""
Note Context Domain Events
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from .base import DomainEvent


@dataclass
class NoteCreated(DomainEvent):
    """노트 작성 이벤트 (발행 예약됨)"""
    note_id: str
    room_id: str
    sender_id: str
    recipient_id: Optional[str]
    publish_time: str
    timestamp: datetime


@dataclass
class NotePublished(DomainEvent):
    """노트 발행 이벤트"""
    note_id: str
    room_id: str
    sender_id: str
    recipient_id: Optional[str]
    trigger: str  # "manual" or "schedule"
    expiry_time: str
    timestamp: datetime
