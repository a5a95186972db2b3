import pytest
from httpx import AsyncClient
from fastapi import status

from app.services.note_scheduler import NoteScheduler

from conftest import SENDER_ID, PARTNER_ID, auth_headers


class TestFullNoteFlow:
    """노트 라이프사이클 전체 플로우 통합 테스트"""

    @pytest.mark.asyncio
    async def test_scheduled_lifecycle(self, client: AsyncClient, engine, clock, notifier):
        """
        예약 발행 플로우:
        1. A가 노트 작성 (B에게는 보이지 않음)
        2. 발행 시각 경과 후 스케줄러 실행 -> B에게 공개
        3. 만료 시각 경과 후 스케줄러 실행 -> 양쪽 모두에서 사라짐
        """
        headers_a = auth_headers(SENDER_ID)
        headers_b = auth_headers(PARTNER_ID)
        scheduler = NoteScheduler(engine, interval_seconds=600)

        # 1. 작성
        response = await client.post("/api/notes", json={"content": "See you soon"}, headers=headers_a)
        assert response.status_code == status.HTTP_201_CREATED
        note_id = response.json()["note"]["id"]

        response = await client.get("/api/notes", headers=headers_b)
        assert response.json()["count"] == 0

        # 발행 시각 직전 스윕은 아무것도 하지 않음
        clock.advance(hours=23, minutes=59)
        result = await scheduler.run_once()
        assert result.transitions == 0

        # 2. 예약 발행
        clock.advance(minutes=1, seconds=1)
        result = await scheduler.run_once()
        assert result.published == [note_id]

        response = await client.get("/api/notes", headers=headers_b)
        notes = response.json()["notes"]
        assert [n["id"] for n in notes] == [note_id]
        assert notes[0]["expiry_countdown"] == "3d"

        await engine.drain_notifications()
        assert notifier.notify_published.await_count == 1
        assert notifier.notify_published.await_args.args[1] == "schedule"

        # 수동 발행은 더 이상 불가
        response = await client.post(f"/api/notes/{note_id}/publish", headers=headers_a)
        assert response.status_code == status.HTTP_409_CONFLICT

        # 3. 만료
        clock.advance(days=3)
        result = await scheduler.run_once()
        assert result.expired == [note_id]

        for headers in (headers_a, headers_b):
            response = await client.get("/api/notes", headers=headers)
            assert response.json()["count"] == 0

        assert scheduler.status()["last_result"]["expired"] == 1

    @pytest.mark.asyncio
    async def test_manual_publish_lifecycle(self, client: AsyncClient, engine, store, clock, notifier):
        """
        조기 발행 플로우:
        1. A가 작성 후 1시간 뒤 즉시 발행
        2. 원래 예약 시각의 스윕은 노트를 건드리지 않음
        3. 발행 시점 기준 만료 지연 후 만료
        """
        headers_a = auth_headers(SENDER_ID)
        headers_b = auth_headers(PARTNER_ID)

        response = await client.post("/api/notes", json={"content": "early"}, headers=headers_a)
        note_id = response.json()["note"]["id"]

        published_at = clock.advance(hours=1)
        response = await client.post(f"/api/notes/{note_id}/publish", headers=headers_a)
        assert response.status_code == status.HTTP_200_OK
        expiry = store.notes[note_id].expiry_time

        clock.advance(hours=23, seconds=1)
        result = await engine.run_sweep()
        assert result.transitions == 0
        assert store.notes[note_id].expiry_time == expiry
        await engine.drain_notifications()
        assert notifier.notify_published.await_count == 1

        response = await client.get("/api/notes", headers=headers_b)
        assert response.json()["count"] == 1

        clock.set(expiry)
        result = await engine.run_sweep()
        assert result.expired == [note_id]
        assert (expiry - published_at).days == 3

        response = await client.get("/api/notes", headers=headers_b)
        assert response.json()["count"] == 0
