"""Data models for zettelvc."""

import datetime
import hashlib
import re
import time
from dataclasses import dataclass
from datetime import timezone
from typing import Collection, List

from pydantic import BaseModel, Field, field_validator, model_validator

# Note ids double as file names in the versioned store
SAFE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_\-]+$")

_WHITESPACE_RUN = re.compile(r"\s+")


def validate_safe_path_component(value: str, field_name: str = "value") -> str:
    """Validate that a value is safe to use as a filesystem path component.

    Rejects empty values, path separators, parent references and any
    characters outside alphanumerics, underscore and hyphen.

    Raises:
        ValueError: If the value contains unsafe characters
    """
    if not value:
        raise ValueError(f"{field_name} cannot be empty")

    if ".." in value:
        raise ValueError(f"{field_name} cannot contain '..' (path traversal)")

    if "/" in value or "\\" in value:
        raise ValueError(f"{field_name} cannot contain path separators")

    if not SAFE_ID_PATTERN.match(value):
        raise ValueError(
            f"{field_name} contains invalid characters. "
            "Only alphanumeric characters, underscores and hyphens are allowed."
        )

    return value


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: datetime.datetime) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC."""
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


def generate_id(title: str, taken: Collection[str] = ()) -> str:
    """Derive a new note id from the title and the current time.

    The id is the hex MD5 digest of the title followed by the nanosecond
    timestamp. If the digest is already in ``taken`` a counter is mixed in
    until it is unique.
    """
    stamp = time.time_ns()
    seed = f"{title}{stamp}"
    note_id = hashlib.md5(seed.encode("utf-8")).hexdigest()
    counter = 0
    while note_id in taken:
        counter += 1
        note_id = hashlib.md5(f"{seed}:{counter}".encode("utf-8")).hexdigest()
    return note_id


def normalize_tag(raw: str) -> str:
    """Normalize a tag name.

    Strips surrounding whitespace and one leading ``#``, collapses internal
    whitespace to ``-`` and case-folds. Returns an empty string when nothing
    is left; callers decide whether that is an error.

    Examples:
        "  Draft " -> "draft"
        "#Reading List" -> "reading-list"
    """
    tag = raw.strip()
    if tag.startswith("#"):
        tag = tag[1:].strip()
    tag = _WHITESPACE_RUN.sub("-", tag)
    return tag.casefold()


class Note(BaseModel):
    """A note in the knowledge base.

    Notes are never deleted; archiving sets ``archived`` and hides the note
    from listings while keeping it readable and linkable.
    """

    id: str = Field(..., description="Stable unique ID of the note")
    title: str = Field(..., description="Display title")
    body: str = Field(default="", alias="content", description="Free text")
    links: List[str] = Field(
        default_factory=list, description="IDs of linked notes, in link order"
    )
    tags: List[str] = Field(default_factory=list, description="Normalized tags")
    created_at: datetime.datetime = Field(..., description="Creation time (UTC)")
    updated_at: datetime.datetime = Field(..., description="Last mutation (UTC)")
    archived: bool = Field(default=False, description="Soft-delete flag")

    model_config = {
        "validate_assignment": True,
        "extra": "forbid",
        "populate_by_name": True,
    }

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate that the ID is safe for filesystem use."""
        return validate_safe_path_component(v, "Note ID")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate that the title is not empty."""
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v

    @field_validator("links")
    @classmethod
    def validate_links(cls, v: List[str]) -> List[str]:
        """Links must be safe ids and must not repeat."""
        for target in v:
            validate_safe_path_component(target, "Link target")
        if len(set(v)) != len(v):
            raise ValueError("Links cannot contain duplicates")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        """Normalize tags, dropping empties and duplicates."""
        seen: List[str] = []
        for raw in v:
            tag = normalize_tag(raw)
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @field_validator("created_at", "updated_at")
    @classmethod
    def validate_timestamps(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_timezone_aware(v)

    @model_validator(mode="after")
    def _check_invariants(self) -> "Note":
        if self.id in self.links:
            raise ValueError("A note cannot link to itself")
        if self.updated_at < self.created_at:
            raise ValueError("updated_at cannot be earlier than created_at")
        return self

    def has_link(self, target_id: str) -> bool:
        """Check whether this note links to ``target_id``."""
        return target_id in self.links

    def has_tag(self, tag: str) -> bool:
        """Check for a tag, normalizing the query first."""
        return normalize_tag(tag) in self.tags

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring test over title and body."""
        needle = needle.casefold()
        return needle in self.title.casefold() or needle in self.body.casefold()

    def touch(self, now: datetime.datetime) -> None:
        """Refresh ``updated_at``, never moving it before ``created_at``."""
        self.updated_at = max(ensure_timezone_aware(now), self.created_at)


@dataclass(frozen=True)
class NoteStatistics:
    """Counts over the active notes of the knowledge base."""

    active_notes: int
    archived_notes: int
    total_links: int
    total_tags: int
    unique_tags: int
    orphaned_notes: int
