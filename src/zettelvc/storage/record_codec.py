"""Serialization between Note objects and persisted store records.

A record is one JSON document per note::

    {"id": ..., "title": ..., "content": ..., "links": [...], "tags": [...],
     "created_at": "<ISO-8601>", "updated_at": "<ISO-8601>", "archived": false}

Records written before archiving existed have no ``archived`` field and are
read as active notes.
"""
import json
import logging

from pydantic import ValidationError as PydanticValidationError

from zettelvc.exceptions import RecordDecodeError
from zettelvc.models.schema import Note
from zettelvc.storage.base import StoredRecord

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "title", "content", "created_at", "updated_at")


class RecordCodec:
    """Encodes notes to store records and decodes them back."""

    def __init__(self, indent: int = 2):
        self.indent = indent

    def encode(self, note: Note) -> StoredRecord:
        """Serialize a complete note into a record keyed by its id."""
        document = note.model_dump(mode="json", by_alias=True)
        payload = json.dumps(document, indent=self.indent, ensure_ascii=False)
        return StoredRecord(key=note.id, payload=payload + "\n")

    def decode(self, record: StoredRecord) -> Note:
        """Parse and validate a record.

        Raises:
            RecordDecodeError: If the payload is not valid JSON, misses
                required fields, violates a note invariant, or its id does not
                match the record key.
        """
        try:
            document = json.loads(record.payload)
        except json.JSONDecodeError as e:
            raise RecordDecodeError(record.key, f"invalid JSON ({e.msg})") from e

        if not isinstance(document, dict):
            raise RecordDecodeError(record.key, "record is not a JSON object")

        missing = [name for name in REQUIRED_FIELDS if name not in document]
        if missing:
            raise RecordDecodeError(record.key, f"missing fields {missing}")

        # Legacy records predate soft deletion
        document.setdefault("archived", False)

        try:
            note = Note.model_validate(document)
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"]) or "record"
            raise RecordDecodeError(record.key, f"{location}: {first['msg']}") from e

        if note.id != record.key:
            raise RecordDecodeError(
                record.key, f"id '{note.id}' does not match record key"
            )
        return note
