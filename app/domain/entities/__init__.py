from .note import Note, NoteState, NoteView, project

__all__ = ["Note", "NoteState", "NoteView", "project"]
