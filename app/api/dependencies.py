"""
API Dependencies

FastAPI dependency functions for authentication and room membership
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from app.core.errors import AuthenticationException, invalid_token_error, room_required_error
from app.services import room_service
from app.services.lifecycle_service import LifecycleEngine, get_lifecycle_engine
from app.utils.auth import decode_access_token

# OAuth2 설정 (토큰 발급은 인증 서비스 담당)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@dataclass(frozen=True)
class RoomMember:
    """현재 사용자와 그가 속한 방"""
    user_id: str
    room_id: str
    partner_id: Optional[str] = None


async def get_current_user_id(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    """
    현재 인증된 사용자 ID를 반환합니다.

    Raises:
        AuthenticationException: 토큰이 없거나 유효하지 않은 경우
    """
    if not token:
        raise AuthenticationException("Not authenticated")

    payload = decode_access_token(token)
    if not payload:
        raise invalid_token_error()

    user_id = payload.get("sub")
    if not user_id:
        raise invalid_token_error()

    return str(user_id)


async def get_room_member(user_id: str = Depends(get_current_user_id)) -> RoomMember:
    """방에 참여 중인 사용자만 통과"""
    room = await room_service.find_active_room_for_user(user_id)
    if not room:
        raise room_required_error()

    return RoomMember(
        user_id=user_id,
        room_id=str(room.id),
        partner_id=room.partner_of(user_id),
    )


def get_note_engine() -> LifecycleEngine:
    return get_lifecycle_engine()
