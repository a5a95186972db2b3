from datetime import datetime
from typing import Optional
from beanie import Document
from pydantic import Field

from app.core.config import settings
from app.utils.time_utils import utc_now

NOTES_COLLECTION = "notes"


class NoteDocument(Document):
    content: str = Field(default="", max_length=settings.note_content_max_length, description="Note text")
    voice_message: str = Field(default="", description="Voice attachment reference")
    voice_duration: int = Field(default=0, ge=0, description="Voice length in seconds")
    image_data: str = Field(default="", description="Image attachment reference")
    sender_id: str = Field(..., description="User ID who wrote the note")
    room_id: str = Field(..., description="Room the note belongs to")
    created_at: datetime = Field(default_factory=utc_now)
    publish_time: datetime = Field(..., description="Scheduled automatic publish time")
    is_published: bool = Field(default=False, description="Whether the note is visible to the partner")
    expiry_time: Optional[datetime] = Field(None, description="Set together with is_published")
    is_deleted: bool = Field(default=False, description="Soft delete flag set on expiry")

    class Settings:
        name = NOTES_COLLECTION
        indexes = [
            [("room_id", 1), ("is_published", 1), ("publish_time", 1)],  # For publish sweep
            [("room_id", 1), ("is_published", 1), ("expiry_time", 1)],  # For expiry sweep
            [("room_id", 1), ("sender_id", 1)],  # For visibility queries
            [("is_deleted", 1)],
        ]

    def __repr__(self):
        return (
            f"<NoteDocument(id={self.id}, room_id={self.room_id}, "
            f"is_published={self.is_published}, is_deleted={self.is_deleted})>"
        )
