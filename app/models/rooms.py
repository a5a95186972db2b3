from datetime import datetime
from typing import Optional
from beanie import Document
from pydantic import Field

from app.utils.time_utils import utc_now


class Room(Document):
    """두 사람이 공유하는 방 (페어링은 외부에서 관리, 여기서는 조회만 한다)"""
    room_code: str = Field(..., description="6-character invite code")
    room_name: str = Field(default="Our Love Space", max_length=50)
    creator_id: str = Field(..., description="User who created the room")
    partner_id: Optional[str] = Field(None, description="User who joined the room")
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "rooms"
        indexes = [
            [("room_code", 1)],
            [("creator_id", 1)],
            [("partner_id", 1)],
        ]

    def partner_of(self, user_id: str) -> Optional[str]:
        """user_id의 상대방 ID 반환"""
        if user_id == self.creator_id:
            return self.partner_id
        if user_id == self.partner_id:
            return self.creator_id
        return None

    def __repr__(self):
        return f"<Room(id={self.id}, code={self.room_code}, creator={self.creator_id}, partner={self.partner_id})>"
