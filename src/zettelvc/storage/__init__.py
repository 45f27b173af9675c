"""Storage layer: store contract, git adapter, codecs and the note repository."""

from zettelvc.storage.base import ChangeEntry, StoredRecord, VersionedStore
from zettelvc.storage.git_store import GitError, GitStore
from zettelvc.storage.note_repository import LoadReport, NoteRepository, SkippedRecord
from zettelvc.storage.record_codec import RecordCodec

__all__ = [
    "ChangeEntry",
    "StoredRecord",
    "VersionedStore",
    "GitError",
    "GitStore",
    "LoadReport",
    "NoteRepository",
    "SkippedRecord",
    "RecordCodec",
]
