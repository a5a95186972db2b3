from .notes import NoteDocument
from .rooms import Room

__all__ = [
    "NoteDocument",
    "Room",
]
