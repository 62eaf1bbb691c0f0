"""AnkiConnect integration adapter for pending-note submission."""

from cardqueue.adapters.ankiconnect.client import AnkiConnectClient
from cardqueue.adapters.ankiconnect.models import AnkiNote, AnkiStatus, NoteInfo
from cardqueue.adapters.ankiconnect.note_builder import build_note

__all__ = ["AnkiConnectClient", "AnkiNote", "AnkiStatus", "NoteInfo", "build_note"]
