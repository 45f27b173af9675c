"""Custom exceptions for zettelvc.

Provides a structured exception hierarchy with error codes and
machine-readable error information. Validation, not-found and storage
errors are all recoverable: the interactive controller catches them and
shows them as a status message.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001
    NOTE_VALIDATION_FAILED = 1002
    NOTE_TITLE_REQUIRED = 1004
    NOTE_ARCHIVED = 1006

    # Link errors (2xxx)
    LINK_INVALID = 2001
    LINK_ALREADY_EXISTS = 2002
    LINK_NOT_FOUND = 2003
    LINK_SELF_REFERENCE = 2004

    # Tag errors (3xxx)
    TAG_NOT_FOUND = 3001
    TAG_INVALID = 3002
    TAG_ALREADY_EXISTS = 3003

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_COMMIT_FAILED = 4003
    RECORD_MALFORMED = 4010

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001


class ZettelError(Exception):
    """Base exception for all zettelvc errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class NoteNotFoundError(ZettelError):
    """Raised when a note cannot be found."""

    def __init__(self, note_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"Note with ID '{note_id}' not found",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id},
        )
        self.note_id = note_id


class ValidationError(ZettelError):
    """Raised when an operation's input or precondition is invalid."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value


class NoteArchivedError(ValidationError):
    """Raised when mutating a note that has been archived."""

    def __init__(self, note_id: str):
        super().__init__(
            f"Note '{note_id}' is archived and cannot be modified",
            field="archived",
            value=note_id,
            code=ErrorCode.NOTE_ARCHIVED,
        )
        self.note_id = note_id


class LinkError(ValidationError):
    """Raised for link-related errors."""

    def __init__(
        self,
        message: str,
        source_id: Optional[str] = None,
        target_id: Optional[str] = None,
        code: ErrorCode = ErrorCode.LINK_INVALID,
    ):
        super().__init__(message, code=code)
        if source_id:
            self.details["source_id"] = source_id
        if target_id:
            self.details["target_id"] = target_id
        self.source_id = source_id
        self.target_id = target_id


class SelfLinkError(LinkError):
    """Raised when a note would link to itself."""

    def __init__(self, note_id: str):
        super().__init__(
            "A note cannot link to itself",
            source_id=note_id,
            target_id=note_id,
            code=ErrorCode.LINK_SELF_REFERENCE,
        )


class DuplicateLinkError(LinkError):
    """Raised when the link already exists."""

    def __init__(self, source_id: str, target_id: str):
        super().__init__(
            "Notes are already linked",
            source_id=source_id,
            target_id=target_id,
            code=ErrorCode.LINK_ALREADY_EXISTS,
        )


class LinkNotFoundError(LinkError):
    """Raised when removing a link that does not exist."""

    def __init__(self, source_id: str, target_id: str):
        super().__init__(
            "Notes are not linked",
            source_id=source_id,
            target_id=target_id,
            code=ErrorCode.LINK_NOT_FOUND,
        )


class TagError(ValidationError):
    """Raised for tag-related errors."""

    def __init__(
        self,
        message: str,
        tag_name: Optional[str] = None,
        code: ErrorCode = ErrorCode.TAG_INVALID,
    ):
        super().__init__(message, code=code)
        if tag_name:
            self.details["tag_name"] = tag_name
        self.tag_name = tag_name


class EmptyTagError(TagError):
    """Raised when a tag is empty after normalization."""

    def __init__(self, raw: str = ""):
        super().__init__("Tag cannot be empty", tag_name=raw or None)


class DuplicateTagError(TagError):
    """Raised when the note already carries the (normalized) tag."""

    def __init__(self, tag_name: str):
        super().__init__(
            f"Tag '{tag_name}' already present",
            tag_name=tag_name,
            code=ErrorCode.TAG_ALREADY_EXISTS,
        )


class TagNotFoundError(TagError):
    """Raised when removing a tag the note does not carry."""

    def __init__(self, tag_name: str):
        super().__init__(
            f"Tag '{tag_name}' not found on note",
            tag_name=tag_name,
            code=ErrorCode.TAG_NOT_FOUND,
        )


class StorageError(ZettelError):
    """Raised when the versioned store cannot read or write."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if path:
            # Don't expose full paths in error messages
            details["path_hint"] = path.split("/")[-1] if "/" in path else path
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.path = path
        self.original_error = original_error


class RecordDecodeError(ZettelError):
    """Raised when a stored record cannot be turned into a Note.

    The repository catches this during load, logs it, and skips the record.
    """

    def __init__(self, key: str, reason: str):
        super().__init__(
            f"Cannot decode record '{key}': {reason}",
            code=ErrorCode.RECORD_MALFORMED,
            details={"key": key},
        )
        self.key = key
        self.reason = reason


class ConfigurationError(ZettelError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key
