import logging
from fastapi import APIRouter, Depends, status

from app.api.dependencies import RoomMember, get_note_engine, get_room_member
from app.core.validators import Validator
from app.domain.entities.note import project
from app.schemas.note import NoteActionResponse, NoteCreate, NoteListResponse, NoteResponse
from app.services.lifecycle_service import LifecycleEngine
from app.utils.time_utils import format_time_remaining

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/notes", tags=["Notes"])


@router.post("", response_model=NoteActionResponse, status_code=status.HTTP_201_CREATED)
async def create_note(
    note_data: NoteCreate,
    member: RoomMember = Depends(get_room_member),
    engine: LifecycleEngine = Depends(get_note_engine)
) -> NoteActionResponse:
    """
    노트 작성 (발행 지연 후 상대방에게 공개)

    - **content**: 노트 내용 (최대 500자)
    - **voice_message**: 음성 메시지 (선택사항)
    - **voice_duration**: 음성 길이 초 (선택사항)
    - **image_data**: 이미지 (선택사항)
    """
    note = await engine.create_note(
        sender_id=member.user_id,
        room_id=member.room_id,
        content=note_data.content,
        voice_message=note_data.voice_message,
        voice_duration=note_data.voice_duration,
        image_data=note_data.image_data
    )

    view = project(note, member.user_id, note.created_at)
    return NoteActionResponse(
        message=f"Note created! It will be published in {format_time_remaining(engine.timing.publish_delay)}",
        note=NoteResponse.from_view(view)
    )


@router.post("/{note_id}/publish", response_model=NoteActionResponse)
async def publish_note(
    note_id: str,
    member: RoomMember = Depends(get_room_member),
    engine: LifecycleEngine = Depends(get_note_engine)
) -> NoteActionResponse:
    """
    노트 즉시 발행 (발신자만 가능)

    만료 시각은 지금부터 만료 지연만큼 뒤로 설정됩니다.
    """
    Validator.validate_object_id(note_id, "note_id")

    note = await engine.publish_now(note_id, member.user_id, member.room_id)

    view = project(note, member.user_id, engine.clock())
    return NoteActionResponse(
        message=f"Note published! It will expire in {format_time_remaining(engine.timing.expiry_delay)}",
        note=NoteResponse.from_view(view)
    )


@router.get("", response_model=NoteListResponse)
async def list_notes(
    member: RoomMember = Depends(get_room_member),
    engine: LifecycleEngine = Depends(get_note_engine)
) -> NoteListResponse:
    """
    방의 노트 목록 조회 (최신순)

    본인이 보낸 노트는 상태와 무관하게, 상대방 노트는 발행되고 만료되지 않은 것만 포함됩니다.
    """
    views = await engine.list_visible(member.room_id, member.user_id)
    notes = [NoteResponse.from_view(view) for view in views]
    return NoteListResponse(notes=notes, count=len(notes))
