"""Repository for note storage and retrieval.

Keeps an in-memory index of every note (archived ones included) rebuilt
from the versioned store. The store is the source of truth: the index is
rebuilt on every start and on explicit refresh, and it is only changed
after the store accepted a write.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from zettelvc.exceptions import RecordDecodeError
from zettelvc.models.schema import Note
from zettelvc.observability import timed_operation
from zettelvc.storage.base import ChangeEntry, VersionedStore
from zettelvc.storage.record_codec import RecordCodec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedRecord:
    """A stored record that was left out of the index."""

    key: str
    reason: str


@dataclass
class LoadReport:
    """Outcome of rebuilding the index from the store."""

    loaded: int = 0
    skipped: List[SkippedRecord] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.skipped


def _recency_key(note: Note):
    # Most recently updated first, then ascending id
    return (-note.updated_at.timestamp(), note.id)


class NoteRepository:
    """Repository for note storage and retrieval.

    Lookups return copies so that callers can prepare a mutation without
    touching the index; :meth:`save` is the only way to change it.
    """

    def __init__(self, store: VersionedStore, codec: Optional[RecordCodec] = None):
        """Initialize the repository.

        Args:
            store: Versioned store holding the note records.
            codec: Record codec. A JSON codec is used if None.
        """
        self._store = store
        self._codec = codec or RecordCodec()
        self._notes: Dict[str, Note] = {}
        self._last_report = LoadReport()

    @property
    def last_report(self) -> LoadReport:
        """Report of the most recent :meth:`load`."""
        return self._last_report

    def load(self) -> LoadReport:
        """Rebuild the index from the store's current snapshot.

        Records that fail to decode are logged and skipped; they never abort
        the load. Dangling link targets are kept: link integrity is enforced
        when links are added, not retroactively.

        Raises:
            StorageError: If the store cannot produce a snapshot at all.
        """
        with timed_operation("load") as op:
            records = self._store.read_all()

            notes: Dict[str, Note] = {}
            report = LoadReport()
            for record in records:
                try:
                    note = self._codec.decode(record)
                except RecordDecodeError as e:
                    logger.warning(f"Skipping record: {e.message}")
                    report.skipped.append(SkippedRecord(record.key, e.reason))
                    continue
                if note.id in notes:
                    logger.warning(f"Skipping duplicate record for note {note.id}")
                    report.skipped.append(SkippedRecord(record.key, "duplicate id"))
                    continue
                notes[note.id] = note

            report.loaded = len(notes)
            self._notes = notes
            self._last_report = report
            op["result_count"] = report.loaded

        if report.skipped:
            logger.warning(
                f"Loaded {report.loaded} notes, skipped {len(report.skipped)} records: "
                f"{[s.key for s in report.skipped[:5]]}"
                f"{'...' if len(report.skipped) > 5 else ''}"
            )
        else:
            logger.info(f"Loaded {report.loaded} notes")
        return report

    def refresh(self) -> LoadReport:
        """Re-read the store, picking up changes made by other clients."""
        return self.load()

    def get(self, id: str) -> Optional[Note]:
        """Get a copy of a note by ID, archived or not."""
        note = self._notes.get(id)
        return note.model_copy(deep=True) if note is not None else None

    def contains(self, id: str) -> bool:
        """Whether the index knows this ID (archived notes included)."""
        return id in self._notes

    def ids(self) -> List[str]:
        """All known note IDs."""
        return list(self._notes)

    def all_notes(self) -> List[Note]:
        """Every note, archived included, in recency order."""
        return [n.model_copy(deep=True) for n in sorted(self._notes.values(), key=_recency_key)]

    def active_notes(self) -> List[Note]:
        """Non-archived notes, most recently updated first (ties by id)."""
        active = [n for n in self._notes.values() if not n.archived]
        return [n.model_copy(deep=True) for n in sorted(active, key=_recency_key)]

    @contextmanager
    def recorded_change(self, description: str) -> Iterator[None]:
        """Scope in which writes are made; records the change on clean exit.

        If the body raises, nothing is recorded and the exception propagates.
        """
        yield
        self._store.record_change(description)

    def save(self, note: Note, description: str) -> Note:
        """Persist one note as one described change.

        The note is written and the change recorded before the index is
        updated, so a storage failure leaves the in-memory state as it was.

        Raises:
            StorageError: If the store rejects the write or the change.
        """
        record = self._codec.encode(note)
        with timed_operation("save", note_id=note.id):
            with self.recorded_change(description):
                self._store.write(record)
        self._notes[note.id] = note.model_copy(deep=True)
        logger.info(f"Saved note {note.id}: {description}")
        return note

    def history(self, limit: int = 50, note_id: Optional[str] = None) -> List[ChangeEntry]:
        """Change log of the store, optionally for one note."""
        return self._store.history(limit=limit, key=note_id)
