"""
Room lookup (read-only)

방 생성/참여는 외부 서비스가 담당하며 여기서는 조회만 한다.
"""

from typing import Optional
from beanie import PydanticObjectId
from beanie.operators import Or
from bson.errors import InvalidId

from app.models.rooms import Room


async def find_room_by_id(room_id: str) -> Optional[Room]:
    """방 ID로 조회"""
    try:
        return await Room.get(PydanticObjectId(room_id))
    except (InvalidId, TypeError):
        return None


async def find_active_room_for_user(user_id: str) -> Optional[Room]:
    """사용자가 속한 활성 방 조회"""
    return await Room.find_one(
        Or(Room.creator_id == user_id, Room.partner_id == user_id),
        Room.is_active == True,  # noqa: E712
    )


async def find_partner_id(room_id: str, user_id: str) -> Optional[str]:
    """같은 방의 상대방 ID 조회"""
    room = await find_room_by_id(room_id)
    if not room:
        return None
    return room.partner_of(user_id)
