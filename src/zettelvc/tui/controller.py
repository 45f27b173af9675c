"""Keyboard-driven state machine for the terminal front end.

``Controller.transition(mode, event)`` maps the current mode and one key
press to the next mode plus a list of effects for the front end to apply
(status messages, quitting). The mode value and the note repository are
the only state; rendering reads both and never changes anything.

Service errors (validation, missing notes, storage failures) are caught
here and turned into an error status while the mode stays put.
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Type

from zettelvc.exceptions import NoteNotFoundError, ZettelError
from zettelvc.models.schema import Note
from zettelvc.services.note_service import NoteService
from zettelvc.tui.events import BACKSPACE, DOWN, ENTER, ESCAPE, SAVE, TAB, UP, KeyEvent
from zettelvc.tui.modes import (
    CreateMode,
    DeleteConfirmMode,
    Draft,
    EditMode,
    HelpMode,
    HistoryMode,
    LinkSelectMode,
    ListMode,
    Mode,
    SearchMode,
    StatisticsMode,
    TagAddMode,
    TagRemoveMode,
    UnlinkConfirmMode,
    ViewMode,
    move_cursor,
)

logger = logging.getLogger(__name__)

INFO = "info"
ERROR = "error"

TAG_PREFIX = "#"


@dataclass(frozen=True)
class ShowStatus:
    message: str
    level: str = INFO


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class Transition:
    mode: Mode
    effects: List[object] = field(default_factory=list)


def _stay(mode: Mode) -> Transition:
    return Transition(mode)


def _info(mode: Mode, message: str) -> Transition:
    return Transition(mode, [ShowStatus(message, INFO)])


class Controller:
    """Owns the current mode and applies key presses to it."""

    def __init__(
        self,
        service: NoteService,
        export_dir: Optional[Path] = None,
        history_limit: int = 50,
        initial_status: Optional[ShowStatus] = None,
    ):
        self.service = service
        self.export_dir = Path(export_dir) if export_dir is not None else Path.cwd()
        self.history_limit = history_limit
        self.mode: Mode = ListMode()
        self.status: Optional[ShowStatus] = initial_status
        self.should_quit = False

        self._handlers: Dict[Type, Callable[[Mode, KeyEvent], Transition]] = {
            ListMode: self._on_list,
            ViewMode: self._on_view,
            EditMode: self._on_edit,
            CreateMode: self._on_create,
            SearchMode: self._on_search,
            LinkSelectMode: self._on_link_select,
            TagAddMode: self._on_tag_add,
            DeleteConfirmMode: self._on_delete_confirm,
            UnlinkConfirmMode: self._on_unlink_confirm,
            TagRemoveMode: self._on_tag_remove,
            StatisticsMode: self._on_statistics,
            HelpMode: self._on_help,
            HistoryMode: self._on_history,
        }

    # =========================================================================
    # Entry points
    # =========================================================================

    def transition(self, mode: Mode, event: KeyEvent) -> Transition:
        """Compute the next mode and effects for one key press."""
        handler = self._handlers[type(mode)]
        try:
            return handler(mode, event)
        except ZettelError as e:
            logger.warning(f"{type(mode).__name__} {event.key}: {e}")
            return Transition(mode, [ShowStatus(e.message, ERROR)])

    def dispatch(self, event: KeyEvent) -> Transition:
        """Apply one key press to the current mode.

        The status from the previous key press is cleared first, so status
        messages last until the next key.
        """
        result = self.transition(self.mode, event)
        self.mode = result.mode
        self.status = None
        for effect in result.effects:
            if isinstance(effect, ShowStatus):
                self.status = effect
            elif isinstance(effect, Quit):
                self.should_quit = True
        return result

    # =========================================================================
    # Queries used by transitions and rendering
    # =========================================================================

    def query_results(self, query: str) -> List[Note]:
        """Notes matching a search box query; ``#tag`` searches by tag."""
        if query.startswith(TAG_PREFIX):
            return list(self.service.search_by_tag(query[len(TAG_PREFIX):]))
        return list(self.service.search(query))

    def visible_notes(self, mode: ListMode) -> List[Note]:
        """Notes shown by the List mode, honoring a committed filter."""
        if mode.filter_query:
            return self.query_results(mode.filter_query)
        return self.service.active_notes()

    def view_targets(self, note_id: str) -> List[str]:
        """Forward links followed by backlinks, the View cursor's range."""
        note = self.service.get(note_id)
        return list(note.links) + self.service.backlinks(note_id)

    def _selected_note(self, mode: ListMode) -> Optional[Note]:
        notes = self.visible_notes(mode)
        if 0 <= mode.selected < len(notes):
            return notes[mode.selected]
        return None

    def _list_after_change(self, mode: ListMode) -> ListMode:
        count = len(self.visible_notes(mode))
        return replace(mode, selected=min(mode.selected, max(count - 1, 0)))

    # =========================================================================
    # List
    # =========================================================================

    def _on_list(self, mode: ListMode, event: KeyEvent) -> Transition:
        direction = event.navigation()
        if direction:
            count = len(self.visible_notes(mode))
            return _stay(replace(mode, selected=move_cursor(mode.selected, direction, count)))

        if event.matches(ENTER):
            note = self._selected_note(mode)
            return _stay(ViewMode(note.id) if note else mode)
        if event.matches(ESCAPE):
            if mode.filter_query:
                return _stay(ListMode())
            return Transition(mode, [Quit()])
        if event.char == "q":
            return Transition(mode, [Quit()])
        if event.char == "n":
            return _stay(CreateMode(Draft()))
        if event.char == "/":
            return _stay(self._search_mode(""))
        if event.char == TAG_PREFIX:
            return _stay(self._search_mode(TAG_PREFIX))
        if event.char == "d":
            note = self._selected_note(mode)
            return _stay(DeleteConfirmMode(note.id) if note else mode)
        if event.char == "c":
            note = self._selected_note(mode)
            if note is None:
                return _stay(mode)
            copy = self.service.duplicate(note.id)
            return _info(replace(mode, selected=0), f"Duplicated as '{copy.title}'")
        if event.char == "r":
            report = self.service.refresh()
            message = f"Reloaded {report.loaded} notes"
            if report.skipped:
                message += f" ({len(report.skipped)} unreadable records skipped)"
            return _info(self._list_after_change(mode), message)
        if event.char == "s":
            return _stay(StatisticsMode(self.service.statistics()))
        if event.char == "?":
            return _stay(HelpMode(return_to=mode))
        if event.char == "H":
            entries = self.service.history(limit=self.history_limit)
            return _stay(HistoryMode(tuple(entries), return_to=mode))
        return _stay(mode)

    # =========================================================================
    # View
    # =========================================================================

    def _on_view(self, mode: ViewMode, event: KeyEvent) -> Transition:
        if event.matches(ESCAPE) or event.char == "b":
            return _stay(ListMode())

        note = self.service.get(mode.note_id)
        direction = event.navigation()
        if direction:
            count = len(self.view_targets(note.id))
            return _stay(replace(mode, cursor=move_cursor(mode.cursor, direction, count)))

        if event.matches(ENTER):
            targets = self.view_targets(note.id)
            if not targets:
                return _stay(mode)
            target_id = targets[min(mode.cursor, len(targets) - 1)]
            if self.service.find(target_id) is None:
                raise NoteNotFoundError(target_id)
            return _stay(ViewMode(target_id))
        if event.char == "e":
            return _stay(EditMode(note.id, Draft(title=note.title, body=note.body)))
        if event.char == "l":
            candidates = tuple(n.id for n in self.service.link_candidates(note.id))
            if not candidates:
                return _info(mode, "No other notes to link to")
            return _stay(LinkSelectMode(note.id, candidates))
        if event.char == "t":
            return _stay(TagAddMode(note.id))
        if event.char == "u":
            if mode.cursor < len(note.links):
                return _stay(UnlinkConfirmMode(note.id, note.links[mode.cursor]))
            return _info(mode, "Select an outgoing link to remove")
        if event.char == "x":
            if not note.tags:
                return _info(mode, "Note has no tags")
            return _stay(TagRemoveMode(note.id))
        if event.char == "E":
            path = self.service.export_note(note.id, self.export_dir)
            return _info(mode, f"Exported to {path}")
        if event.char == "h":
            entries = self.service.history(note_id=note.id, limit=self.history_limit)
            return _stay(HistoryMode(tuple(entries), return_to=mode, note_id=note.id))
        if event.char == "?":
            return _stay(HelpMode(return_to=mode))
        return _stay(mode)

    # =========================================================================
    # Edit / Create
    # =========================================================================

    @staticmethod
    def _edit_draft(draft: Draft, event: KeyEvent) -> Optional[Draft]:
        """Apply a text-editing key to a draft, or None if it isn't one."""
        if event.matches(BACKSPACE):
            return draft.backspace()
        if event.matches(ENTER):
            return draft.newline()
        if event.matches(TAB):
            return draft.toggle()
        ch = event.printable
        if ch is not None:
            return draft.insert(ch)
        return None

    def _on_edit(self, mode: EditMode, event: KeyEvent) -> Transition:
        if event.matches(ESCAPE):
            return _stay(ViewMode(mode.note_id))
        if event.matches(SAVE):
            note = self.service.update(mode.note_id, mode.draft.title, mode.draft.body)
            return _info(ListMode(), f"Saved '{note.title}'")
        draft = self._edit_draft(mode.draft, event)
        return _stay(replace(mode, draft=draft) if draft is not None else mode)

    def _on_create(self, mode: CreateMode, event: KeyEvent) -> Transition:
        if event.matches(ESCAPE):
            return _stay(ListMode())
        if event.matches(SAVE):
            note = self.service.create(mode.draft.title, mode.draft.body)
            return _info(ListMode(), f"Created '{note.title}'")
        draft = self._edit_draft(mode.draft, event)
        return _stay(replace(mode, draft=draft) if draft is not None else mode)

    # =========================================================================
    # Search
    # =========================================================================

    def _search_mode(self, query: str, selected: int = 0) -> SearchMode:
        results = tuple(n.id for n in self.query_results(query))
        return SearchMode(query, results, min(selected, max(len(results) - 1, 0)))

    def _on_search(self, mode: SearchMode, event: KeyEvent) -> Transition:
        if event.matches(ESCAPE):
            return _stay(ListMode())
        if event.matches(ENTER):
            return _stay(ListMode(selected=mode.selected, filter_query=mode.query or None))
        if event.key in (UP, DOWN):
            selected = move_cursor(mode.selected, event.key, len(mode.results))
            return _stay(replace(mode, selected=selected))
        if event.matches(BACKSPACE):
            return _stay(self._search_mode(mode.query[:-1]))
        ch = event.printable
        if ch is not None:
            return _stay(self._search_mode(mode.query + ch))
        return _stay(mode)

    # =========================================================================
    # Links and tags
    # =========================================================================

    def _on_link_select(self, mode: LinkSelectMode, event: KeyEvent) -> Transition:
        if event.matches(ESCAPE):
            return _stay(ViewMode(mode.source_id))
        direction = event.navigation()
        if direction:
            cursor = move_cursor(mode.cursor, direction, len(mode.candidates))
            return _stay(replace(mode, cursor=cursor))
        if event.matches(ENTER) and mode.candidates:
            target_id = mode.candidates[mode.cursor]
            self.service.add_link(mode.source_id, target_id)
            target = self.service.get(target_id)
            return _info(ViewMode(mode.source_id), f"Linked to '{target.title}'")
        return _stay(mode)

    def _on_unlink_confirm(self, mode: UnlinkConfirmMode, event: KeyEvent) -> Transition:
        if event.matches(ENTER, "y"):
            self.service.remove_link(mode.source_id, mode.target_id)
            return _info(ViewMode(mode.source_id), "Link removed")
        if event.matches(ESCAPE, "n"):
            return _stay(ViewMode(mode.source_id))
        return _stay(mode)

    def _on_tag_add(self, mode: TagAddMode, event: KeyEvent) -> Transition:
        if event.matches(ESCAPE):
            return _stay(ViewMode(mode.note_id))
        if event.matches(ENTER):
            note = self.service.add_tag(mode.note_id, mode.draft)
            return _info(ViewMode(mode.note_id), f"Tagged with #{note.tags[-1]}")
        if event.matches(BACKSPACE):
            return _stay(replace(mode, draft=mode.draft[:-1]))
        ch = event.printable
        if ch is not None:
            return _stay(replace(mode, draft=mode.draft + ch))
        return _stay(mode)

    def _on_tag_remove(self, mode: TagRemoveMode, event: KeyEvent) -> Transition:
        if event.matches(ESCAPE):
            return _stay(ViewMode(mode.note_id))
        tags = self.service.get(mode.note_id).tags
        direction = event.navigation()
        if direction:
            return _stay(replace(mode, cursor=move_cursor(mode.cursor, direction, len(tags))))
        if event.matches(ENTER) and tags:
            tag = tags[min(mode.cursor, len(tags) - 1)]
            note = self.service.remove_tag(mode.note_id, tag)
            message = f"Removed #{tag}"
            if not note.tags:
                return _info(ViewMode(mode.note_id), message)
            cursor = min(mode.cursor, len(note.tags) - 1)
            return _info(replace(mode, cursor=cursor), message)
        return _stay(mode)

    # =========================================================================
    # Confirmation and informational modes
    # =========================================================================

    def _on_delete_confirm(self, mode: DeleteConfirmMode, event: KeyEvent) -> Transition:
        if event.matches(ENTER, "y"):
            note = self.service.archive(mode.note_id)
            return _info(self._list_after_change(ListMode()), f"Archived '{note.title}'")
        if event.matches(ESCAPE, "n"):
            return _stay(ListMode())
        return _stay(mode)

    def _on_statistics(self, mode: StatisticsMode, event: KeyEvent) -> Transition:
        if event.matches(ESCAPE, "q"):
            return _stay(ListMode())
        return _stay(mode)

    def _on_help(self, mode: HelpMode, event: KeyEvent) -> Transition:
        if event.matches(ESCAPE, "q"):
            return _stay(mode.return_to)
        return _stay(mode)

    def _on_history(self, mode: HistoryMode, event: KeyEvent) -> Transition:
        if event.matches(ESCAPE, "q"):
            return _stay(mode.return_to)
        direction = event.navigation()
        if direction:
            cursor = move_cursor(mode.cursor, direction, len(mode.entries))
            return _stay(replace(mode, cursor=cursor))
        return _stay(mode)
