from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from app.core.config import settings
from app.core.errors import PersistenceError
from app.domain.entities.note import Note, NoteState
from app.models.notes import NoteDocument
from app.services.note_store import MongoNoteStore, _to_entity, precondition_filter

from conftest import T0, SENDER_ID, PARTNER_ID, ROOM_ID

NOTE_ID = "64f0000000000000000000c1"


def make_note(**overrides) -> Note:
    data = dict(
        id=NOTE_ID,
        content="hello",
        sender_id=SENDER_ID,
        room_id=ROOM_ID,
        created_at=T0,
        publish_time=T0 + timedelta(hours=24),
    )
    data.update(overrides)
    return Note(**data)


@pytest.fixture
def mongo_store() -> MongoNoteStore:
    return MongoNoteStore()


@pytest.fixture
def collection():
    collection = MagicMock()
    collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1, modified_count=1))
    with patch.object(NoteDocument, "get_motor_collection", return_value=collection):
        yield collection


def find_query(documents=None, error=None):
    """NoteDocument.find()가 반환하는 쿼리 체인 대역"""
    query = MagicMock()
    query.sort.return_value = query
    if error is not None:
        query.to_list = AsyncMock(side_effect=error)
    else:
        query.to_list = AsyncMock(return_value=documents or [])
    return query


class TestConditionalUpdate:
    """조건부 상태 전이 쓰기 테스트"""

    @pytest.mark.asyncio
    async def test_publish_filter_requires_pending_state(self, mongo_store, collection):
        published = make_note().publish(T0 + timedelta(hours=1), timedelta(days=3))

        applied = await mongo_store.update(published, NoteState.PENDING)

        assert applied is True
        query, update = collection.update_one.await_args.args
        assert query == {"_id": ObjectId(NOTE_ID), "is_published": False, "is_deleted": False}
        assert update == {
            "$set": {
                "is_published": True,
                "expiry_time": T0 + timedelta(hours=1, days=3),
                "is_deleted": False,
            }
        }

    @pytest.mark.asyncio
    async def test_expire_filter_requires_published_state(self, mongo_store, collection):
        published = make_note().publish(T0, timedelta(days=3))
        expired = published.expire(T0 + timedelta(days=3))

        await mongo_store.update(expired, NoteState.PUBLISHED)

        query, update = collection.update_one.await_args.args
        assert query == {"_id": ObjectId(NOTE_ID), "is_published": True, "is_deleted": False}
        assert update["$set"]["is_deleted"] is True

    @pytest.mark.asyncio
    async def test_unmatched_filter_means_lost_race(self, mongo_store, collection):
        """다른 쓰기가 먼저 전이시켰으면 필터가 매칭되지 않음"""
        collection.update_one.return_value = MagicMock(matched_count=0, modified_count=0)
        published = make_note().publish(T0, timedelta(days=3))

        assert await mongo_store.update(published, NoteState.PENDING) is False

    @pytest.mark.asyncio
    async def test_driver_error_becomes_persistence_error(self, mongo_store, collection):
        collection.update_one.side_effect = PyMongoError("connection reset")
        published = make_note().publish(T0, timedelta(days=3))

        with pytest.raises(PersistenceError) as exc_info:
            await mongo_store.update(published, NoteState.PENDING)

        assert exc_info.value.operation == "update"
        assert exc_info.value.note_id == NOTE_ID
        assert isinstance(exc_info.value.cause, PyMongoError)

    @pytest.mark.asyncio
    async def test_update_without_id_is_rejected(self, mongo_store, collection):
        with pytest.raises(ValueError):
            await mongo_store.update(make_note(id=None), NoteState.PENDING)
        collection.update_one.assert_not_awaited()

    def test_no_transition_leaves_expired_state(self):
        with pytest.raises(ValueError):
            precondition_filter(NoteState.EXPIRED)

    def test_precondition_filter_is_a_copy(self):
        query = precondition_filter(NoteState.PENDING)
        query["is_deleted"] = True

        assert precondition_filter(NoteState.PENDING)["is_deleted"] is False


class TestQueries:
    """조회 쿼리 테스트"""

    @pytest.mark.asyncio
    async def test_visible_query_shape(self, mongo_store):
        query = find_query()
        now = T0 + timedelta(hours=30)

        with patch.object(NoteDocument, "find", return_value=query) as find:
            notes = await mongo_store.find_visible(ROOM_ID, PARTNER_ID, now)

        assert notes == []
        find.assert_called_once_with({
            "room_id": ROOM_ID,
            "is_deleted": False,
            "$or": [
                {"sender_id": PARTNER_ID},
                {"is_published": True, "expiry_time": {"$gt": now}},
            ],
        })
        query.sort.assert_called_once_with([("created_at", DESCENDING)])

    @pytest.mark.asyncio
    async def test_find_maps_documents_to_entities(self, mongo_store):
        document = MagicMock()
        document.id = ObjectId(NOTE_ID)
        document.model_dump.return_value = make_note().model_dump(exclude={"id"})

        with patch.object(NoteDocument, "find", return_value=find_query([document])):
            notes = await mongo_store.find_visible(ROOM_ID, SENDER_ID, T0)

        assert [note.id for note in notes] == [NOTE_ID]
        assert notes[0].state == NoteState.PENDING
        document.model_dump.assert_called_once_with(exclude={"id", "revision_id"})

    @pytest.mark.asyncio
    async def test_find_driver_error_becomes_persistence_error(self, mongo_store):
        query = find_query(error=PyMongoError("timeout"))

        with patch.object(NoteDocument, "find", return_value=query):
            with pytest.raises(PersistenceError) as exc_info:
                await mongo_store.find_visible(ROOM_ID, SENDER_ID, T0)

        assert exc_info.value.operation == "find_visible"

    @pytest.mark.asyncio
    async def test_malformed_id_is_not_found(self, mongo_store):
        with patch.object(NoteDocument, "get", new=AsyncMock()) as get:
            assert await mongo_store.get("not-an-id") is None
        get.assert_not_awaited()

    def test_entity_mapping_keeps_string_id(self):
        document = MagicMock()
        document.id = ObjectId(NOTE_ID)
        document.model_dump.return_value = make_note(is_published=True, expiry_time=T0).model_dump(exclude={"id"})

        note = _to_entity(document)

        assert note.id == NOTE_ID
        assert note.expiry_time == T0


class TestNoteDocument:
    def test_content_limit_follows_settings(self):
        metadata = NoteDocument.model_fields["content"].metadata

        assert any(getattr(item, "max_length", None) == settings.note_content_max_length for item in metadata)
