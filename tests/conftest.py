import copy
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Awaitable, Callable, Dict, List, Optional, Set
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import AsyncClient, ASGITransport

from app.api.dependencies import get_note_engine
from app.core.config import LifecycleTiming
from app.core.errors import PersistenceError
from app.domain.entities.note import Note, NoteState
from app.main import app
from app.services.lifecycle_service import LifecycleEngine
from app.services.note_store import NoteStore, precondition_filter
from app.services.notification_service import NoteNotifier
from app.utils.auth import create_access_token


SENDER_ID = "64f000000000000000000001"
PARTNER_ID = "64f000000000000000000002"
OUTSIDER_ID = "64f000000000000000000003"
ROOM_ID = "64f0000000000000000000aa"
OTHER_ROOM_ID = "64f0000000000000000000bb"

T0 = datetime(2026, 2, 14, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """테스트용 제어 가능한 시계"""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current

    def set(self, value: datetime) -> datetime:
        self.current = value
        return self.current


class InMemoryNoteStore(NoteStore):
    """MongoDB 없이 동작하는 NoteStore (조건부 쓰기 의미 동일)"""

    def __init__(self):
        self.notes: Dict[str, Note] = {}
        self.fail_update_for: Set[str] = set()
        self.before_update: Optional[Callable[[], Awaitable[None]]] = None
        self.update_calls: List[str] = []

    async def create(self, note: Note) -> str:
        note_id = str(ObjectId())
        self.notes[note_id] = note.model_copy(update={"id": note_id})
        return note_id

    async def get(self, note_id: str) -> Optional[Note]:
        note = self.notes.get(note_id)
        return copy.deepcopy(note) if note else None

    async def find_publishable(self, now: datetime) -> List[Note]:
        return [
            copy.deepcopy(n) for n in self.notes.values()
            if not n.is_published and not n.is_deleted and n.publish_time <= now
        ]

    async def find_expirable(self, now: datetime) -> List[Note]:
        return [
            copy.deepcopy(n) for n in self.notes.values()
            if n.is_published and not n.is_deleted and n.expiry_time is not None and n.expiry_time <= now
        ]

    async def find_visible(self, room_id: str, user_id: str, now: datetime) -> List[Note]:
        visible = [
            copy.deepcopy(n) for n in self.notes.values()
            if n.room_id == room_id and n.is_visible_to(user_id, now)
        ]
        return sorted(visible, key=lambda n: n.created_at, reverse=True)

    async def update(self, note: Note, expected_state: NoteState) -> bool:
        if self.before_update is not None:
            hook, self.before_update = self.before_update, None
            await hook()

        self.update_calls.append(note.id)
        if note.id in self.fail_update_for:
            raise PersistenceError("update", note_id=note.id, cause=TimeoutError("timed out"))

        current = self.notes.get(note.id)
        if current is None:
            return False
        condition = precondition_filter(expected_state)
        if any(getattr(current, field) != value for field, value in condition.items()):
            return False

        self.notes[note.id] = current.model_copy(update={
            "is_published": note.is_published,
            "expiry_time": note.expiry_time,
            "is_deleted": note.is_deleted,
        })
        return True


class FakeRoom:
    def __init__(self, room_id: str = ROOM_ID, creator_id: str = SENDER_ID, partner_id: Optional[str] = PARTNER_ID):
        self.id = room_id
        self.creator_id = creator_id
        self.partner_id = partner_id

    def partner_of(self, user_id: str) -> Optional[str]:
        if user_id == self.creator_id:
            return self.partner_id
        if user_id == self.partner_id:
            return self.creator_id
        return None


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timing() -> LifecycleTiming:
    """기본 지연: 발행 24시간, 만료 3일, 스윕 10분"""
    return LifecycleTiming(
        publish_delay=timedelta(hours=24),
        expiry_delay=timedelta(days=3),
        sweep_interval=timedelta(minutes=10),
        startup_delay=timedelta(seconds=5),
    )


@pytest.fixture
def store() -> InMemoryNoteStore:
    return InMemoryNoteStore()


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock(spec=NoteNotifier)


@pytest.fixture
def engine(store, timing, notifier, clock) -> LifecycleEngine:
    return LifecycleEngine(store=store, timing=timing, notifier=notifier, clock=clock, content_max_length=500)


@pytest.fixture
def rooms() -> Dict[str, FakeRoom]:
    """user_id -> 방 매핑 (OUTSIDER는 방 없음)"""
    room = FakeRoom()
    return {SENDER_ID: room, PARTNER_ID: room}


@pytest_asyncio.fixture
async def client(engine, rooms) -> AsyncGenerator[AsyncClient, None]:
    """테스트용 비동기 HTTP 클라이언트"""
    async def find_active_room_for_user(user_id):
        return rooms.get(user_id)

    app.dependency_overrides[get_note_engine] = lambda: engine

    with patch(
        "app.services.room_service.find_active_room_for_user",
        side_effect=find_active_room_for_user,
    ):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client

    app.dependency_overrides.clear()


def auth_headers(user_id: str) -> Dict[str, str]:
    token = create_access_token(data={"sub": user_id})
    return {"Authorization": f"Bearer {token}"}
