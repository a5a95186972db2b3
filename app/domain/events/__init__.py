"""
Domain Events

모든 Domain Event의 기본 클래스 및 이벤트 정의
"""

from .base import DomainEvent, EVENT_TYPE_KEY
from .note_events import NoteCreated, NotePublished

__all__ = [
    'DomainEvent',
    'EVENT_TYPE_KEY',
    'NoteCreated',
    'NotePublished',
]
