"""
Partner notification service

노트 작성/발행 시 상대방에게 알림 이벤트를 Kafka로 발행한다.
알림은 best-effort이며 실패해도 호출한 전이를 막거나 되돌리지 않는다.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from app.core.errors import NotificationError
from app.core.logging import get_logger
from app.domain.entities.note import Note
from app.domain.events import DomainEvent, NoteCreated, NotePublished
from app.infrastructure.kafka.config import kafka_config
from app.infrastructure.kafka.producer import DomainEventProducer, get_event_producer
from app.services import room_service
from app.utils.time_utils import utc_now

logger = get_logger(__name__)

PartnerLookup = Callable[[str, str], Awaitable[Optional[str]]]


class NoteNotifier(ABC):
    """노트 알림 인터페이스. 구현체는 예외를 밖으로 던지지 않는다."""

    @abstractmethod
    async def notify_created(self, note: Note) -> None:
        ...

    @abstractmethod
    async def notify_published(self, note: Note, trigger: str) -> None:
        ...


class KafkaNoteNotifier(NoteNotifier):
    """Kafka notification 토픽으로 도메인 이벤트 발행"""

    def __init__(
        self,
        producer: Optional[DomainEventProducer] = None,
        partner_lookup: Optional[PartnerLookup] = None,
        topic: Optional[str] = None,
    ):
        self.producer = producer or get_event_producer()
        self.partner_lookup = partner_lookup or room_service.find_partner_id
        self.topic = topic or kafka_config.topic_notification_events

    async def notify_created(self, note: Note) -> None:
        await self._send(note, lambda recipient_id: NoteCreated(
            note_id=note.id,
            room_id=note.room_id,
            sender_id=note.sender_id,
            recipient_id=recipient_id,
            publish_time=note.publish_time.isoformat(),
            timestamp=utc_now(),
        ))

    async def notify_published(self, note: Note, trigger: str) -> None:
        await self._send(note, lambda recipient_id: NotePublished(
            note_id=note.id,
            room_id=note.room_id,
            sender_id=note.sender_id,
            recipient_id=recipient_id,
            trigger=trigger,
            expiry_time=note.expiry_time.isoformat() if note.expiry_time else "",
            timestamp=utc_now(),
        ))

    async def _send(self, note: Note, build_event: Callable[[Optional[str]], DomainEvent]) -> None:
        try:
            recipient_id = await self.partner_lookup(note.room_id, note.sender_id)
            if recipient_id is None:
                logger.info(f"No partner to notify for note {note.id} in room {note.room_id}")
                return

            event = build_event(recipient_id)
            try:
                await self.producer.publish(topic=self.topic, event=event, key=event.partition_key)
            except Exception as e:
                raise NotificationError(f"Failed to publish {event.event_type}: {e}") from e

        except Exception as e:
            logger.warning(
                f"Partner notification failed for note {note.id}: {e}",
                extra={"event_type": "notification_failed", "note_id": note.id}
            )


_note_notifier: Optional[NoteNotifier] = None


def get_note_notifier() -> NoteNotifier:
    """NoteNotifier 싱글톤 인스턴스 반환"""
    global _note_notifier
    if _note_notifier is None:
        _note_notifier = KafkaNoteNotifier()
    return _note_notifier
