"""Service layer for note operations.

Every mutating operation validates its preconditions, applies the change
to a copy of the note, and persists it as exactly one recorded change with
a human-readable description. The store's history therefore reads as an
audit log of the knowledge base:

    Note: {title}          creation (and duplication)
    Update: {title}        edits, links, unlinks, tags, untags
    Delete note: {id}      archiving
"""

import datetime
import logging
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

from zettelvc.exceptions import (
    DuplicateLinkError,
    DuplicateTagError,
    EmptyTagError,
    ErrorCode,
    LinkNotFoundError,
    NoteArchivedError,
    NoteNotFoundError,
    SelfLinkError,
    StorageError,
    TagNotFoundError,
    ValidationError,
)
from zettelvc.models.schema import (
    Note,
    NoteStatistics,
    generate_id,
    normalize_tag,
    utc_now,
)
from zettelvc.observability import traced
from zettelvc.storage.base import ChangeEntry
from zettelvc.storage.markdown_export import MarkdownExporter
from zettelvc.storage.note_repository import LoadReport, NoteRepository

logger = logging.getLogger(__name__)


def created_message(title: str) -> str:
    return f"Note: {title}"


def updated_message(title: str) -> str:
    return f"Update: {title}"


def archived_message(note_id: str) -> str:
    return f"Delete note: {note_id}"


class SearchResults:
    """Lazy, restartable sequence of matching active notes.

    Nothing is evaluated until iteration, and every iteration re-scans the
    repository's active notes, so the results always reflect its current
    state and keep ``active_notes()`` order.
    """

    def __init__(self, repository: NoteRepository, predicate: Callable[[Note], bool]):
        self._repository = repository
        self._predicate = predicate

    def __iter__(self) -> Iterator[Note]:
        for note in self._repository.active_notes():
            if self._predicate(note):
                yield note

    def ids(self) -> List[str]:
        """Materialize the matching note IDs."""
        return [note.id for note in self]

    def count(self) -> int:
        return sum(1 for _ in self)


class NoteService:
    """Service for managing notes."""

    def __init__(
        self,
        repository: NoteRepository,
        clock: Callable[[], datetime.datetime] = utc_now,
    ):
        """Initialize the service.

        Args:
            repository: Loaded note repository.
            clock: Source of "now"; injectable for tests.
        """
        self.repository = repository
        self._clock = clock
        self._exporter = MarkdownExporter(self._title_of)

    # =========================================================================
    # Lookup helpers
    # =========================================================================

    def _require(self, note_id: str) -> Note:
        note = self.repository.get(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        return note

    def _require_mutable(self, note_id: str) -> Note:
        note = self._require(note_id)
        if note.archived:
            raise NoteArchivedError(note_id)
        return note

    def _title_of(self, note_id: str) -> Optional[str]:
        note = self.repository.get(note_id)
        return note.title if note else None

    @staticmethod
    def _check_title(title: str) -> str:
        """Reject blank titles; a valid title is stored exactly as given."""
        if not title.strip():
            raise ValidationError(
                "Title cannot be empty",
                field="title",
                code=ErrorCode.NOTE_TITLE_REQUIRED,
            )
        return title

    def find(self, note_id: str) -> Optional[Note]:
        """Retrieve a note by ID, or None."""
        return self.repository.get(note_id)

    def get(self, note_id: str) -> Note:
        """Retrieve a note by ID (archived notes stay readable)."""
        return self._require(note_id)

    def active_notes(self) -> List[Note]:
        return self.repository.active_notes()

    # =========================================================================
    # Note lifecycle
    # =========================================================================

    @traced("create")
    def create(self, title: str, body: str) -> Note:
        """Create a new note with empty links and tags.

        Raises:
            ValidationError: If the title is empty.
            StorageError: If the store rejects the change.
        """
        title = self._check_title(title)
        now = self._clock()
        note = Note(
            id=generate_id(title, taken=self.repository.ids()),
            title=title,
            body=body,
            created_at=now,
            updated_at=now,
        )
        self.repository.save(note, created_message(note.title))
        return note

    @traced("update")
    def update(self, note_id: str, title: str, body: str) -> Note:
        """Replace a note's title and body.

        Raises:
            NoteNotFoundError: If the note doesn't exist.
            ValidationError: If the note is archived or the title is empty.
        """
        note = self._require_mutable(note_id)
        note.title = self._check_title(title)
        note.body = body
        note.touch(self._clock())
        self.repository.save(note, updated_message(note.title))
        return note

    @traced("archive")
    def archive(self, note_id: str) -> Note:
        """Soft-delete a note.

        Archiving an already archived note changes nothing and records no
        change.
        """
        note = self._require(note_id)
        if note.archived:
            logger.debug(f"Note {note_id} already archived")
            return note
        note.archived = True
        note.touch(self._clock())
        self.repository.save(note, archived_message(note.id))
        return note

    @traced("duplicate")
    def duplicate(self, note_id: str) -> Note:
        """Create a copy of a note with the same body and tags but no links."""
        original = self._require(note_id)
        title = f"Copy of {original.title}"
        now = self._clock()
        note = Note(
            id=generate_id(title, taken=self.repository.ids()),
            title=title,
            body=original.body,
            tags=list(original.tags),
            created_at=now,
            updated_at=now,
        )
        self.repository.save(note, created_message(note.title))
        return note

    # =========================================================================
    # Links
    # =========================================================================

    @traced("add_link")
    def add_link(self, source_id: str, target_id: str) -> Note:
        """Link ``source_id`` to ``target_id``; only the source is written.

        Archived targets are accepted: they stay valid link targets.

        Raises:
            NoteNotFoundError: If either note doesn't exist.
            SelfLinkError: If both IDs are the same.
            DuplicateLinkError: If the link already exists.
        """
        source = self._require(source_id)
        if not self.repository.contains(target_id):
            raise NoteNotFoundError(
                target_id, f"Target note with ID '{target_id}' not found"
            )
        if source_id == target_id:
            raise SelfLinkError(source_id)
        if source.archived:
            raise NoteArchivedError(source_id)
        if source.has_link(target_id):
            raise DuplicateLinkError(source_id, target_id)

        source.links = source.links + [target_id]
        source.touch(self._clock())
        self.repository.save(source, updated_message(source.title))
        return source

    @traced("remove_link")
    def remove_link(self, source_id: str, target_id: str) -> Note:
        """Remove a link from ``source_id`` to ``target_id``."""
        source = self._require_mutable(source_id)
        if not source.has_link(target_id):
            raise LinkNotFoundError(source_id, target_id)

        source.links = [link for link in source.links if link != target_id]
        source.touch(self._clock())
        self.repository.save(source, updated_message(source.title))
        return source

    def backlinks(self, note_id: str) -> List[str]:
        """IDs of active notes linking to ``note_id``, in active-notes order.

        Computed by scanning on every call; archived sources are ignored.
        """
        self._require(note_id)
        return [note.id for note in self.repository.active_notes() if note.has_link(note_id)]

    def backlink_index(self) -> Dict[str, List[str]]:
        """Reverse adjacency over the active notes.

        Meant for one render pass; build a new one after any mutation.
        """
        index: Dict[str, List[str]] = {}
        for note in self.repository.active_notes():
            for target_id in note.links:
                index.setdefault(target_id, []).append(note.id)
        return index

    def link_candidates(self, source_id: str) -> List[Note]:
        """Active notes a source may link to (everything but itself)."""
        return [n for n in self.repository.active_notes() if n.id != source_id]

    # =========================================================================
    # Tags
    # =========================================================================

    @traced("add_tag")
    def add_tag(self, note_id: str, tag: str) -> Note:
        """Add a normalized tag to a note.

        Raises:
            NoteNotFoundError: If the note doesn't exist.
            EmptyTagError: If nothing is left after normalization.
            DuplicateTagError: If the note already carries the tag.
        """
        note = self._require_mutable(note_id)
        name = normalize_tag(tag)
        if not name:
            raise EmptyTagError(tag)
        if name in note.tags:
            raise DuplicateTagError(name)

        note.tags = note.tags + [name]
        note.touch(self._clock())
        self.repository.save(note, updated_message(note.title))
        return note

    @traced("remove_tag")
    def remove_tag(self, note_id: str, tag: str) -> Note:
        """Remove a tag (matched after normalization) from a note."""
        note = self._require_mutable(note_id)
        name = normalize_tag(tag)
        if name not in note.tags:
            raise TagNotFoundError(name or tag)

        note.tags = [t for t in note.tags if t != name]
        note.touch(self._clock())
        self.repository.save(note, updated_message(note.title))
        return note

    # =========================================================================
    # Queries
    # =========================================================================

    def search(self, query: str) -> SearchResults:
        """Case-insensitive substring search over title and body.

        The query is matched as typed, whitespace included; only the empty
        query matches every active note.
        """
        if query == "":
            return SearchResults(self.repository, lambda note: True)
        return SearchResults(self.repository, lambda note: note.matches(query))

    def search_by_tag(self, tag: str) -> SearchResults:
        """Active notes carrying ``tag``; a blank tag matches everything."""
        name = normalize_tag(tag)
        if not name:
            return SearchResults(self.repository, lambda note: True)
        return SearchResults(self.repository, lambda note: name in note.tags)

    @traced("statistics")
    def statistics(self) -> NoteStatistics:
        """Counts over the active notes."""
        active = self.repository.active_notes()
        total = len(self.repository.ids())
        unique_tags = {tag for note in active for tag in note.tags}

        linked = set()
        for note in active:
            if note.links:
                linked.add(note.id)
                linked.update(note.links)
        orphaned = sum(1 for note in active if note.id not in linked)

        return NoteStatistics(
            active_notes=len(active),
            archived_notes=total - len(active),
            total_links=sum(len(note.links) for note in active),
            total_tags=sum(len(note.tags) for note in active),
            unique_tags=len(unique_tags),
            orphaned_notes=orphaned,
        )

    def history(self, note_id: Optional[str] = None, limit: int = 50) -> List[ChangeEntry]:
        """Recorded changes, most recent first, optionally for one note."""
        if note_id is not None:
            self._require(note_id)
        return self.repository.history(limit=limit, note_id=note_id)

    @traced("refresh")
    def refresh(self) -> LoadReport:
        """Reload the repository from the store."""
        return self.repository.refresh()

    # =========================================================================
    # Export
    # =========================================================================

    def export_markdown(self, note_id: str) -> str:
        """Render a note as markdown with YAML frontmatter."""
        return self._exporter.render(self._require(note_id))

    @traced("export")
    def export_note(self, note_id: str, directory: Path) -> Path:
        """Write a note's markdown export into ``directory``.

        Raises:
            NoteNotFoundError: If the note doesn't exist.
            StorageError: If the file cannot be written.
        """
        note = self._require(note_id)
        path = Path(directory) / self._exporter.filename_for(note)
        try:
            path.write_text(self._exporter.render(note), encoding="utf-8")
        except OSError as e:
            raise StorageError(
                f"Failed to export note {note_id}",
                operation="export",
                path=str(path),
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e
        logger.info(f"Exported note {note_id} to {path}")
        return path
