"""
Note store layer for MongoDB operations.

모든 상태 전이 쓰기는 전이 전제조건을 필터에 포함한 조건부 업데이트로 수행된다.
동시에 경쟁한 쪽의 쓰기는 no-op이 된다.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from beanie import PydanticObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from app.core.errors import PersistenceError
from app.core.logging import get_logger, log_database_operation
from app.domain.entities.note import Note, NoteState
from app.models.notes import NOTES_COLLECTION, NoteDocument

logger = get_logger(__name__)

# 전이 이전 상태별 조건부 쓰기 필터
TRANSITION_PRECONDITIONS: Dict[NoteState, Dict[str, Any]] = {
    NoteState.PENDING: {"is_published": False, "is_deleted": False},
    NoteState.PUBLISHED: {"is_published": True, "is_deleted": False},
}

LIFECYCLE_FIELDS = ("is_published", "expiry_time", "is_deleted")


class NoteStore(ABC):
    """노트 저장소 인터페이스"""

    @abstractmethod
    async def create(self, note: Note) -> str:
        """발행 전 상태의 새 노트를 저장하고 ID를 반환"""

    @abstractmethod
    async def get(self, note_id: str) -> Optional[Note]:
        ...

    @abstractmethod
    async def find_publishable(self, now: datetime) -> List[Note]:
        """is_published = false AND is_deleted = false AND publish_time <= now"""

    @abstractmethod
    async def find_expirable(self, now: datetime) -> List[Note]:
        """is_published = true AND is_deleted = false AND expiry_time <= now"""

    @abstractmethod
    async def find_visible(self, room_id: str, user_id: str, now: datetime) -> List[Note]:
        """user_id가 볼 수 있는 노트 (최신순)"""

    @abstractmethod
    async def update(self, note: Note, expected_state: NoteState) -> bool:
        """
        라이프사이클 필드를 조건부로 저장

        Args:
            note: 전이가 적용된 노트
            expected_state: 전이 직전 상태 (쓰기 필터에 포함됨)

        Returns:
            bool: 적용 여부 (False면 다른 쓰기가 먼저 전이시킨 것)
        """


def precondition_filter(expected_state: NoteState) -> Dict[str, Any]:
    try:
        return dict(TRANSITION_PRECONDITIONS[expected_state])
    except KeyError:
        raise ValueError(f"No transition leaves state {expected_state.value!r}")


def _to_entity(document: NoteDocument) -> Note:
    data = document.model_dump(exclude={"id", "revision_id"})
    return Note(id=str(document.id), **data)


class MongoNoteStore(NoteStore):
    """Beanie/Motor 기반 노트 저장소"""

    async def create(self, note: Note) -> str:
        document = NoteDocument(**note.model_dump(exclude={"id"}))
        try:
            await document.insert()
        except PyMongoError as e:
            raise PersistenceError("create", cause=e) from e
        return str(document.id)

    async def get(self, note_id: str) -> Optional[Note]:
        try:
            object_id = PydanticObjectId(note_id)
        except (InvalidId, TypeError):
            return None

        try:
            document = await NoteDocument.get(object_id)
        except PyMongoError as e:
            raise PersistenceError("get", note_id=note_id, cause=e) from e
        return _to_entity(document) if document else None

    async def find_publishable(self, now: datetime) -> List[Note]:
        return await self._find(
            "find_publishable",
            NoteDocument.is_published == False,  # noqa: E712
            NoteDocument.is_deleted == False,  # noqa: E712
            NoteDocument.publish_time <= now,
        )

    async def find_expirable(self, now: datetime) -> List[Note]:
        return await self._find(
            "find_expirable",
            NoteDocument.is_published == True,  # noqa: E712
            NoteDocument.is_deleted == False,  # noqa: E712
            NoteDocument.expiry_time <= now,
        )

    async def find_visible(self, room_id: str, user_id: str, now: datetime) -> List[Note]:
        query = {
            "room_id": room_id,
            "is_deleted": False,
            "$or": [
                {"sender_id": user_id},
                {"is_published": True, "expiry_time": {"$gt": now}},
            ],
        }
        return await self._find("find_visible", query, sort=[("created_at", DESCENDING)])

    async def update(self, note: Note, expected_state: NoteState) -> bool:
        if note.id is None:
            raise ValueError("Cannot update a note without id")

        query = {"_id": PydanticObjectId(note.id), **precondition_filter(expected_state)}
        fields = {field: getattr(note, field) for field in LIFECYCLE_FIELDS}

        started = time.perf_counter()
        try:
            result = await NoteDocument.get_motor_collection().update_one(query, {"$set": fields})
        except PyMongoError as e:
            raise PersistenceError("update", note_id=note.id, cause=e) from e

        log_database_operation(
            logger, "update", NOTES_COLLECTION,
            duration_ms=(time.perf_counter() - started) * 1000,
            affected_rows=result.modified_count,
            note_id=note.id,
            expected_state=expected_state.value,
        )
        return result.matched_count == 1

    async def _find(self, operation: str, *conditions, sort=None) -> List[Note]:
        try:
            query = NoteDocument.find(*conditions)
            if sort:
                query = query.sort(sort)
            documents = await query.to_list()
        except PyMongoError as e:
            raise PersistenceError(operation, cause=e) from e

        return [_to_entity(document) for document in documents]


_note_store: Optional[NoteStore] = None


def get_note_store() -> NoteStore:
    """NoteStore 싱글톤 인스턴스 반환"""
    global _note_store
    if _note_store is None:
        _note_store = MongoNoteStore()
    return _note_store
