from datetime import timedelta

import pytest

from app.core.errors import InvalidStateTransitionException
from app.domain.entities.note import Note, NoteState, project

from conftest import T0, SENDER_ID, PARTNER_ID, ROOM_ID


def make_note(**overrides) -> Note:
    data = dict(
        id="n1",
        content="hello",
        sender_id=SENDER_ID,
        room_id=ROOM_ID,
        created_at=T0,
        publish_time=T0 + timedelta(hours=24),
    )
    data.update(overrides)
    return Note(**data)


class TestNoteStateMachine:
    """노트 상태 전이 테스트"""

    def test_new_note_is_pending(self):
        note = make_note()
        assert note.state is NoteState.PENDING
        assert note.expiry_time is None

    def test_publish_sets_flag_and_expiry_together(self):
        note = make_note()
        at = T0 + timedelta(hours=1)

        published = note.publish(at, timedelta(days=3))

        assert published.is_published is True
        assert published.expiry_time == at + timedelta(days=3)
        assert published.state is NoteState.PUBLISHED
        # 원본은 변경되지 않음
        assert note.is_published is False

    def test_expiry_is_computed_from_publish_instant(self):
        """조기 발행 노트는 예약 발행 시각이 아니라 실제 발행 시각 기준으로 만료"""
        note = make_note()
        early = note.publish(T0 + timedelta(hours=1), timedelta(days=3))

        assert early.expiry_time < note.publish_time + timedelta(days=3)
        assert early.expiry_time > T0 + timedelta(hours=1)

    def test_publish_twice_is_rejected(self):
        published = make_note().publish(T0, timedelta(days=3))

        with pytest.raises(InvalidStateTransitionException):
            published.publish(T0 + timedelta(minutes=1), timedelta(days=3))

    def test_publish_requires_positive_expiry_delay(self):
        with pytest.raises(ValueError):
            make_note().publish(T0, timedelta(0))

    def test_expire_requires_published_and_elapsed(self):
        note = make_note()
        with pytest.raises(InvalidStateTransitionException):
            note.expire(T0 + timedelta(days=10))

        published = note.publish(T0, timedelta(days=3))
        with pytest.raises(InvalidStateTransitionException):
            published.expire(T0 + timedelta(days=2))

        expired = published.expire(T0 + timedelta(days=3))
        assert expired.is_deleted is True
        assert expired.is_published is True
        assert expired.state is NoteState.EXPIRED

    def test_due_checks(self):
        note = make_note()
        assert not note.is_due_for_publish(T0)
        assert note.is_due_for_publish(note.publish_time)

        published = note.publish(note.publish_time, timedelta(days=3))
        assert not published.is_due_for_publish(note.publish_time + timedelta(days=1))
        assert published.is_due_for_expiry(published.expiry_time)


class TestNoteVisibility:
    """노트 가시성 테스트"""

    def test_sender_sees_pending_note(self):
        assert make_note().is_visible_to(SENDER_ID, T0)

    def test_partner_does_not_see_pending_note(self):
        assert not make_note().is_visible_to(PARTNER_ID, T0)

    def test_partner_sees_published_until_expiry(self):
        published = make_note().publish(T0, timedelta(days=3))

        assert published.is_visible_to(PARTNER_ID, T0 + timedelta(days=2))
        assert not published.is_visible_to(PARTNER_ID, T0 + timedelta(days=3))

    def test_deleted_note_is_hidden_from_everyone(self):
        expired = make_note().publish(T0, timedelta(days=3)).expire(T0 + timedelta(days=3))

        assert not expired.is_visible_to(SENDER_ID, T0 + timedelta(days=3))
        assert not expired.is_visible_to(PARTNER_ID, T0 + timedelta(days=3))


class TestNoteProjection:
    """조회 시점 프로젝션 테스트"""

    def test_pending_projection(self):
        view = project(make_note(), SENDER_ID, T0 + timedelta(hours=23))

        assert view.is_own is True
        assert view.time_until_publish == timedelta(hours=1)
        assert view.time_until_publish_ms == 3_600_000
        assert view.time_until_expiry is None
        assert view.days_until_expiry is None

    def test_published_projection(self):
        published = make_note().publish(T0, timedelta(days=3))
        view = project(published, PARTNER_ID, T0 + timedelta(days=1, hours=12))

        assert view.is_own is False
        assert view.time_until_publish is None
        assert view.days_until_expiry == pytest.approx(1.5)
        assert view.time_until_expiry_ms == int(timedelta(days=1, hours=12).total_seconds() * 1000)

    def test_projection_never_negative(self):
        overdue = make_note()
        view = project(overdue, SENDER_ID, T0 + timedelta(days=5))
        assert view.time_until_publish == timedelta(0)

        published = make_note().publish(T0, timedelta(days=3))
        view = project(published, SENDER_ID, T0 + timedelta(days=5))
        assert view.days_until_expiry == 0
