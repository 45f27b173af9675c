"""Rich renderables for each interaction mode.

Rendering is read-only: it looks at the controller's mode, status and the
service, and never mutates anything. One backlink index is built per frame.
"""

from typing import Dict, List, Optional

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from zettelvc.models.schema import Note
from zettelvc.observability import metrics
from zettelvc.tui.controller import ERROR, Controller
from zettelvc.tui.modes import (
    BODY,
    TITLE,
    CreateMode,
    DeleteConfirmMode,
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
)
from zettelvc.utils import first_line_preview

MAX_SEARCH_RESULTS = 20

KEY_HINTS = {
    ListMode: "j/k: navigate | n: new | /: search | #: tag search | d: delete | "
    "c: duplicate | s: stats | r: refresh | H: history | ?: help | Enter: view | Esc: quit",
    ViewMode: "e: edit | l: link | t: tag | x: untag | u: unlink | Enter: open link | "
    "E: export | h: history | Esc: back",
    EditMode: "Tab: switch field | Ctrl+S: save | Esc: cancel",
    CreateMode: "Tab: switch field | Ctrl+S: create | Esc: cancel",
    SearchMode: "type to filter | #tag: tag search | Up/Down: select | Enter: apply | Esc: cancel",
    LinkSelectMode: "j/k: navigate | Enter: link | Esc: cancel",
    TagAddMode: "Enter: add tag | Esc: cancel",
    DeleteConfirmMode: "Enter/y: confirm | Esc/n: cancel",
    UnlinkConfirmMode: "Enter/y: confirm | Esc/n: cancel",
    TagRemoveMode: "j/k: navigate | Enter: remove | Esc: cancel",
    StatisticsMode: "Esc: back",
    HelpMode: "Esc: back",
    HistoryMode: "j/k: navigate | Esc: back",
}

SHORTCUTS = [
    ("List", [
        ("j / k, Up / Down", "Move selection"),
        ("Enter", "Open selected note"),
        ("n", "Create a note"),
        ("/", "Search title and body"),
        ("#", "Search by tag"),
        ("d", "Archive selected note"),
        ("c", "Duplicate selected note"),
        ("r", "Reload from the repository"),
        ("s", "Statistics"),
        ("H", "Change history"),
        ("q / Esc", "Quit (Esc clears a filter first)"),
    ]),
    ("View", [
        ("e", "Edit title and body"),
        ("l", "Link to another note"),
        ("t / x", "Add / remove a tag"),
        ("Up / Down, Enter", "Select and open a link or backlink"),
        ("u", "Remove the selected outgoing link"),
        ("E", "Export as markdown"),
        ("h", "History of this note"),
        ("Esc / b", "Back to the list"),
    ]),
    ("Editing", [
        ("Tab", "Switch between title and body"),
        ("Enter", "Next field / new line"),
        ("Ctrl+S", "Save"),
        ("Esc", "Discard"),
    ]),
]


def _cursor_style(selected: bool) -> str:
    return "reverse bold" if selected else ""


def _panel(body: RenderableType, title: str) -> Panel:
    return Panel(body, title=title, title_align="left")


def _tags(note: Note) -> Text:
    return Text(" ".join(f"#{tag}" for tag in note.tags), style="cyan")


def _note_row(note: Note, selected: bool) -> Text:
    line = Text(style=_cursor_style(selected))
    line.append(note.title, style="bold")
    if note.tags:
        line.append("  ")
        line.append_text(_tags(note))
    preview = first_line_preview(note.body)
    if preview:
        line.append(f"  {preview}", style="dim")
    return line


def _note_list(notes: List[Note], selected: int) -> Text:
    if not notes:
        return Text("No notes.", style="dim")
    return Text("\n").join(_note_row(n, i == selected) for i, n in enumerate(notes))


def _title_of(controller: Controller, note_id: str) -> str:
    note = controller.service.find(note_id)
    if note is None:
        return f"<missing {note_id[:8]}>"
    if note.archived:
        return f"{note.title} (archived)"
    return note.title


# =============================================================================
# Mode bodies
# =============================================================================


def _render_list(controller: Controller, mode: ListMode) -> RenderableType:
    notes = controller.visible_notes(mode)
    title = f"Notes ({len(notes)})"
    if mode.filter_query:
        title = f"Notes matching '{mode.filter_query}' ({len(notes)} found)"
    return _panel(_note_list(notes, mode.selected), title)


def _link_lines(
    controller: Controller, heading: str, ids: List[str], offset: int, cursor: int
) -> List[Text]:
    lines = [Text(heading, style="bold underline")]
    if not ids:
        lines.append(Text("  (none)", style="dim"))
    for i, target_id in enumerate(ids):
        selected = offset + i == cursor
        lines.append(Text(f"  {_title_of(controller, target_id)}", style=_cursor_style(selected)))
    return lines


def _render_view(
    controller: Controller, mode: ViewMode, backlinks: Dict[str, List[str]]
) -> RenderableType:
    note = controller.service.find(mode.note_id)
    if note is None:
        return _panel(Text("Note not found.", style="red"), "View")

    meta = Text()
    meta.append(f"Created {note.created_at:%Y-%m-%d %H:%M}  ", style="dim")
    meta.append(f"Updated {note.updated_at:%Y-%m-%d %H:%M}", style="dim")
    if note.archived:
        meta.append("  archived", style="yellow")

    incoming = backlinks.get(note.id, [])
    parts: List[RenderableType] = [
        Text(note.title, style="bold"),
        meta,
        _tags(note),
        Text(""),
        Text(note.body),
        Text(""),
    ]
    parts.extend(_link_lines(controller, "Links", note.links, 0, mode.cursor))
    parts.extend(
        _link_lines(controller, "Backlinks", incoming, len(note.links), mode.cursor)
    )
    return _panel(Group(*parts), "View")


def _draft_text(title: str, body: str, field: str) -> Group:
    title_style = "bold reverse" if field == TITLE else "bold"
    body_style = "reverse" if field == BODY else ""
    return Group(
        Text("Title", style="dim"),
        Text(title + ("_" if field == TITLE else ""), style=title_style),
        Text(""),
        Text("Body", style="dim"),
        Text(body + ("_" if field == BODY else ""), style=body_style),
    )


def _draft_summary(body: str) -> str:
    lines = body.count("\n") + 1 if body else 0
    return f"{len(body)} chars, {lines} lines"


def _render_edit(controller: Controller, mode: EditMode) -> RenderableType:
    draft = mode.draft
    title = f"Editing: {draft.title} ({_draft_summary(draft.body)})"
    return _panel(_draft_text(draft.title, draft.body, draft.field), title)


def _render_create(controller: Controller, mode: CreateMode) -> RenderableType:
    draft = mode.draft
    title = f"New Note ({_draft_summary(draft.body)})"
    return _panel(_draft_text(draft.title, draft.body, draft.field), title)


def _render_search(controller: Controller, mode: SearchMode) -> RenderableType:
    prompt = _panel(Text(f"> {mode.query}_"), "Search")
    if not mode.results:
        results: RenderableType = Text("No results found. Try a different search term.", style="dim")
    else:
        notes = [controller.service.find(note_id) for note_id in mode.results[:MAX_SEARCH_RESULTS]]
        results = _note_list([n for n in notes if n is not None], mode.selected)
    shown = min(len(mode.results), MAX_SEARCH_RESULTS)
    title = f"Results ({len(mode.results)} found"
    title += f", showing first {shown})" if shown < len(mode.results) else ")"
    return Group(prompt, _panel(results, title))


def _render_link_select(controller: Controller, mode: LinkSelectMode) -> RenderableType:
    lines = []
    for i, note_id in enumerate(mode.candidates):
        note = controller.service.find(note_id)
        label = note.title if note else note_id
        created = f" - {note.created_at:%Y-%m-%d}" if note else ""
        lines.append(Text(f"{label}{created}", style=_cursor_style(i == mode.cursor)))
    source = _title_of(controller, mode.source_id)
    return _panel(Text("\n").join(lines), f"Link '{source}' to")


def _render_tag_add(controller: Controller, mode: TagAddMode) -> RenderableType:
    note = controller.service.find(mode.note_id)
    current = ", ".join(note.tags) if note and note.tags else "(none)"
    return Group(
        _panel(Text(f"Tag: {mode.draft}_"), "Add Tag"),
        _panel(Text(f"Current tags: {current}"), "Tags"),
    )


def _render_tag_remove(controller: Controller, mode: TagRemoveMode) -> RenderableType:
    note = controller.service.find(mode.note_id)
    tags = note.tags if note else []
    lines = [Text(f"#{tag}", style=_cursor_style(i == mode.cursor)) for i, tag in enumerate(tags)]
    return _panel(Text("\n").join(lines), "Select Tag to Remove")


def _render_delete_confirm(controller: Controller, mode: DeleteConfirmMode) -> RenderableType:
    message = Text(f"Delete note: {_title_of(controller, mode.note_id)}?\n\n")
    message.append("The note is archived and stays in the history.", style="dim")
    return _panel(message, "Confirm Delete")


def _render_unlink_confirm(controller: Controller, mode: UnlinkConfirmMode) -> RenderableType:
    message = Text(f"Unlink note: {_title_of(controller, mode.target_id)}?")
    return _panel(message, "Confirm Unlink")


def _render_statistics(controller: Controller, mode: StatisticsMode) -> RenderableType:
    stats = mode.stats
    table = Table(show_header=False, box=None)
    table.add_column("metric", style="bold")
    table.add_column("value", justify="right")
    table.add_row("Active notes", str(stats.active_notes))
    table.add_row("Archived notes", str(stats.archived_notes))
    table.add_row("Links", str(stats.total_links))
    table.add_row("Tags (total / unique)", f"{stats.total_tags} / {stats.unique_tags}")
    table.add_row("Orphaned notes", str(stats.orphaned_notes))

    summary = metrics.get_summary()
    table.add_row("", "")
    table.add_row("Operations this session", str(summary["total_operations"]))
    table.add_row("Failed operations", str(summary["total_errors"]))
    return _panel(table, "Statistics")


def _render_help(controller: Controller, mode: HelpMode) -> RenderableType:
    table = Table(show_header=False, box=None)
    table.add_column("key", style="bold cyan")
    table.add_column("action")
    for section, rows in SHORTCUTS:
        table.add_row(Text(section, style="bold underline"), "")
        for key, action in rows:
            table.add_row(key, action)
    return _panel(table, "Keyboard Shortcuts")


def _render_history(controller: Controller, mode: HistoryMode) -> RenderableType:
    title = "Change History"
    if mode.note_id is not None:
        title = f"Change History: {_title_of(controller, mode.note_id)}"
    if not mode.entries:
        return _panel(Text("No recorded changes.", style="dim"), title)
    lines = [
        Text(
            f"{entry.short_id} | {entry.timestamp:%Y-%m-%d %H:%M} | {entry.description}",
            style=_cursor_style(i == mode.cursor),
        )
        for i, entry in enumerate(mode.entries)
    ]
    return _panel(Text("\n").join(lines), title)


_RENDERERS = {
    ListMode: _render_list,
    EditMode: _render_edit,
    CreateMode: _render_create,
    SearchMode: _render_search,
    LinkSelectMode: _render_link_select,
    TagAddMode: _render_tag_add,
    TagRemoveMode: _render_tag_remove,
    DeleteConfirmMode: _render_delete_confirm,
    UnlinkConfirmMode: _render_unlink_confirm,
    StatisticsMode: _render_statistics,
    HelpMode: _render_help,
    HistoryMode: _render_history,
}


def render_body(controller: Controller, mode: Optional[Mode] = None) -> RenderableType:
    """Main area for ``mode`` (the controller's current mode by default)."""
    mode = mode if mode is not None else controller.mode
    if isinstance(mode, ViewMode):
        return _render_view(controller, mode, controller.service.backlink_index())
    return _RENDERERS[type(mode)](controller, mode)


def render_status(controller: Controller) -> Text:
    status = controller.status
    if status is None:
        return Text("")
    if status.level == ERROR:
        return Text(f"✗ {status.message}", style="bold red")
    return Text(f"✓ {status.message}", style="green")


def render_hints(controller: Controller) -> Text:
    return Text(KEY_HINTS[type(controller.mode)], style="dim")

