"""Interaction modes of the terminal front end.

Each mode is an immutable value carrying everything its screen needs; a
transition always produces a new mode instead of mutating the current one.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

from zettelvc.models.schema import NoteStatistics
from zettelvc.storage.base import ChangeEntry

TITLE = "title"
BODY = "body"


@dataclass(frozen=True)
class Draft:
    """Text being edited in the Create, Edit and TagAdd modes."""

    title: str = ""
    body: str = ""
    field: str = TITLE

    def _focused(self) -> str:
        return self.title if self.field == TITLE else self.body

    def _with_focused(self, text: str) -> "Draft":
        if self.field == TITLE:
            return replace(self, title=text)
        return replace(self, body=text)

    def insert(self, ch: str) -> "Draft":
        return self._with_focused(self._focused() + ch)

    def backspace(self) -> "Draft":
        return self._with_focused(self._focused()[:-1])

    def newline(self) -> "Draft":
        # Titles are single-line: enter moves on to the body
        if self.field == TITLE:
            return replace(self, field=BODY)
        return replace(self, body=self.body + "\n")

    def toggle(self) -> "Draft":
        return replace(self, field=BODY if self.field == TITLE else TITLE)


@dataclass(frozen=True)
class ListMode:
    selected: int = 0
    filter_query: Optional[str] = None


@dataclass(frozen=True)
class ViewMode:
    note_id: str
    cursor: int = 0


@dataclass(frozen=True)
class EditMode:
    note_id: str
    draft: Draft


@dataclass(frozen=True)
class CreateMode:
    draft: Draft = Draft()


@dataclass(frozen=True)
class SearchMode:
    query: str = ""
    results: Tuple[str, ...] = ()
    selected: int = 0


@dataclass(frozen=True)
class LinkSelectMode:
    source_id: str
    candidates: Tuple[str, ...] = ()
    cursor: int = 0


@dataclass(frozen=True)
class TagAddMode:
    note_id: str
    draft: str = ""


@dataclass(frozen=True)
class DeleteConfirmMode:
    note_id: str


@dataclass(frozen=True)
class UnlinkConfirmMode:
    source_id: str
    target_id: str


@dataclass(frozen=True)
class TagRemoveMode:
    note_id: str
    cursor: int = 0


@dataclass(frozen=True)
class StatisticsMode:
    stats: NoteStatistics


@dataclass(frozen=True)
class HelpMode:
    return_to: "Mode"


@dataclass(frozen=True)
class HistoryMode:
    entries: Tuple[ChangeEntry, ...]
    return_to: "Mode"
    cursor: int = 0
    note_id: Optional[str] = None


Mode = Union[
    ListMode,
    ViewMode,
    EditMode,
    CreateMode,
    SearchMode,
    LinkSelectMode,
    TagAddMode,
    DeleteConfirmMode,
    UnlinkConfirmMode,
    TagRemoveMode,
    StatisticsMode,
    HelpMode,
    HistoryMode,
]


def move_cursor(cursor: int, direction: str, length: int) -> int:
    """Move a cursor one step, clamped to ``[0, length - 1]`` (no wraparound)."""
    if length <= 0:
        return 0
    if direction == "up":
        return max(cursor - 1, 0)
    return min(cursor + 1, length - 1)
