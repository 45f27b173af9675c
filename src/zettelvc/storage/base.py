"""Contract between the note repository and a versioned store.

The core never talks to a version-control system directly. It asks a store
to stage records, to record a described change, and to hand back the current
snapshot. Anything that honours :class:`VersionedStore` can back the
repository; tests use an in-memory fake.
"""
import datetime
from dataclasses import dataclass
from typing import List, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class StoredRecord:
    """One raw note record as the store holds it.

    Attributes:
        key: Record key (the note id)
        payload: Serialized note document
    """

    key: str
    payload: str


@dataclass(frozen=True)
class ChangeEntry:
    """One entry of the store's change log.

    Attributes:
        change_id: Store-specific identifier (commit hash for git)
        description: Human-readable description recorded with the change
        timestamp: When the change was recorded (UTC)
    """

    change_id: str
    description: str
    timestamp: datetime.datetime

    @property
    def short_id(self) -> str:
        """Return the first 7 characters of the change id."""
        return self.change_id[:7]

    def __str__(self) -> str:
        return f"{self.short_id} {self.description}"


@runtime_checkable
class VersionedStore(Protocol):
    """Append-only, mergeable record store."""

    def read_all(self) -> List[StoredRecord]:
        """Return the current snapshot of every record.

        Raises:
            StorageError: If no snapshot can be read at all
        """
        ...

    def write(self, record: StoredRecord) -> None:
        """Stage a complete record; on failure nothing is staged.

        Raises:
            StorageError: If the record cannot be staged
        """
        ...

    def record_change(self, description: str) -> ChangeEntry:
        """Record everything staged since the last change as one change.

        Raises:
            StorageError: If the change cannot be recorded; staged records
                are rolled back first
        """
        ...

    def history(self, limit: int = 50, key: Optional[str] = None) -> List[ChangeEntry]:
        """Return recorded changes, most recent first."""
        ...
