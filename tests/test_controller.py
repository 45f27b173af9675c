"""Tests for the interaction controller state machine."""
import pytest

from zettelvc.tui.controller import ERROR, INFO, Quit, ShowStatus
from zettelvc.tui.events import BACKSPACE, DOWN, ENTER, ESCAPE, SAVE, TAB, UP, KeyEvent
from zettelvc.tui.modes import (
    BODY,
    CreateMode,
    DeleteConfirmMode,
    Draft,
    EditMode,
    HelpMode,
    HistoryMode,
    LinkSelectMode,
    ListMode,
    SearchMode,
    StatisticsMode,
    TagAddMode,
    TagRemoveMode,
    UnlinkConfirmMode,
    ViewMode,
    move_cursor,
)


def press(controller, *keys):
    """Dispatch named keys or typed text, one event per key/character."""
    for key in keys:
        if key in (UP, DOWN, ENTER, ESCAPE, BACKSPACE, TAB, SAVE):
            controller.dispatch(KeyEvent.named(key))
        else:
            for ch in key:
                controller.dispatch(KeyEvent.char_input(ch))
    return controller.mode


@pytest.fixture
def notes(service):
    """Three notes; active order is C, B, A (most recent first)."""
    a = service.create("Alpha", "first body")
    b = service.create("Beta", "second body")
    c = service.create("Gamma", "third body")
    return a, b, c


class TestCursor:
    def test_move_cursor_is_bounded(self):
        assert move_cursor(0, UP, 3) == 0
        assert move_cursor(2, DOWN, 3) == 2
        assert move_cursor(1, DOWN, 3) == 2
        assert move_cursor(0, DOWN, 0) == 0


class TestDraft:
    def test_editing_keys(self):
        draft = Draft().insert("H").insert("i")
        assert draft.title == "Hi"
        draft = draft.newline()
        assert draft.field == BODY
        draft = draft.insert("x").newline().insert("y").backspace()
        assert draft.body == "x\n"
        assert draft.toggle().field != BODY


class TestListMode:
    def test_initial_mode(self, controller):
        assert controller.mode == ListMode()

    def test_navigation_without_wraparound(self, controller, notes):
        assert press(controller, UP) == ListMode(selected=0)
        assert press(controller, "j", "j", "j") == ListMode(selected=2)
        assert press(controller, "k") == ListMode(selected=1)

    def test_enter_views_selection(self, controller, notes):
        a, b, c = notes
        assert press(controller, DOWN, ENTER) == ViewMode(b.id)

    def test_enter_on_empty_list_stays(self, controller):
        assert press(controller, ENTER) == ListMode()

    def test_quit_keys(self, controller):
        result = controller.dispatch(KeyEvent.char_input("q"))
        assert Quit() in result.effects
        assert controller.should_quit

    def test_escape_quits_without_filter(self, controller):
        press(controller, ESCAPE)
        assert controller.should_quit

    def test_escape_clears_filter_first(self, controller, notes):
        controller.mode = ListMode(filter_query="alpha")
        assert press(controller, ESCAPE) == ListMode()
        assert not controller.should_quit

    def test_new_opens_create(self, controller):
        assert press(controller, "n") == CreateMode(Draft())

    def test_delete_asks_for_confirmation(self, controller, notes):
        a, b, c = notes
        assert press(controller, "d") == DeleteConfirmMode(c.id)

    def test_duplicate(self, controller, service, notes):
        press(controller, "c")
        assert controller.status.level == INFO
        assert service.active_notes()[0].title == "Copy of Gamma"

    def test_refresh(self, controller, notes):
        press(controller, "r")
        assert controller.status == ShowStatus("Reloaded 3 notes", INFO)

    def test_statistics_and_back(self, controller, notes):
        mode = press(controller, "s")
        assert isinstance(mode, StatisticsMode)
        assert mode.stats.active_notes == 3
        assert press(controller, ESCAPE) == ListMode()

    def test_help_returns_to_origin(self, controller, notes):
        press(controller, DOWN)
        assert press(controller, "?") == HelpMode(return_to=ListMode(selected=1))
        assert press(controller, ESCAPE) == ListMode(selected=1)

    def test_history(self, controller, notes):
        mode = press(controller, "H")
        assert isinstance(mode, HistoryMode)
        assert [e.description for e in mode.entries][0] == "Note: Gamma"
        assert press(controller, "j").cursor == 1
        assert press(controller, "q") == ListMode()

    def test_filtered_list(self, controller, notes):
        a, b, c = notes
        controller.mode = ListMode(filter_query="alpha")
        assert [n.id for n in controller.visible_notes(controller.mode)] == [a.id]


class TestSearchMode:
    def test_live_filtering(self, controller, notes):
        a, b, c = notes
        mode = press(controller, "/")
        assert mode == SearchMode("", (c.id, b.id, a.id), 0)
        mode = press(controller, "second")
        assert mode.results == (b.id,)
        mode = press(controller, BACKSPACE * 1)
        assert mode.query == "secon"

    def test_vi_keys_are_typed_not_navigation(self, controller, notes):
        assert press(controller, "/", "jk").query == "jk"

    def test_enter_commits_filter(self, controller, notes):
        a, b, c = notes
        press(controller, "/", "body", DOWN)
        mode = press(controller, ENTER)
        assert mode == ListMode(selected=1, filter_query="body")
        press(controller, ENTER)
        assert controller.mode == ViewMode(b.id)

    def test_escape_returns_unfiltered(self, controller, notes):
        assert press(controller, "/", "alpha", ESCAPE) == ListMode()

    def test_tag_search(self, controller, service, notes):
        a, b, c = notes
        service.add_tag(a.id, "idea")
        mode = press(controller, "#")
        assert mode.query == "#"
        assert press(controller, "idea").results == (a.id,)


class TestCreateAndEdit:
    def test_create_flow(self, controller, service):
        press(controller, "n", "Title", ENTER, "Body", ENTER, "more")
        assert controller.mode.draft == Draft("Title", "Body\nmore", BODY)
        press(controller, SAVE)
        assert controller.mode == ListMode()
        created = service.active_notes()[0]
        assert (created.title, created.body) == ("Title", "Body\nmore")

    def test_create_with_empty_title_stays(self, controller, service):
        mode = press(controller, "n", SAVE)
        assert isinstance(mode, CreateMode)
        assert controller.status.level == ERROR
        assert service.active_notes() == []

    def test_create_escape_discards(self, controller, service):
        assert press(controller, "n", "x", ESCAPE) == ListMode()
        assert service.active_notes() == []

    def test_tab_toggles_field(self, controller):
        assert press(controller, "n", TAB).draft.field == BODY

    def test_edit_seeded_and_saved(self, controller, service, notes):
        a, b, c = notes
        controller.mode = ViewMode(a.id)
        mode = press(controller, "e")
        assert mode == EditMode(a.id, Draft("Alpha", "first body"))
        press(controller, "!", SAVE)
        assert controller.mode == ListMode()
        assert service.get(a.id).title == "Alpha!"

    def test_edit_escape_returns_to_view(self, controller, service, notes):
        a, b, c = notes
        controller.mode = ViewMode(a.id)
        assert press(controller, "e", "zzz", ESCAPE) == ViewMode(a.id)
        assert service.get(a.id).title == "Alpha"

    def test_storage_failure_on_save_keeps_draft(self, controller, service, store, notes):
        a, b, c = notes
        controller.mode = ViewMode(a.id)
        press(controller, "e", "?")
        store.fail_write = True
        mode = press(controller, SAVE)
        assert isinstance(mode, EditMode)
        assert mode.draft.title == "Alpha?"
        assert controller.status.level == ERROR
        assert service.get(a.id).title == "Alpha"


class TestViewMode:
    def test_back_to_list(self, controller, notes):
        controller.mode = ViewMode(notes[0].id)
        assert press(controller, "b") == ListMode()

    def test_link_flow(self, controller, service, notes):
        a, b, c = notes
        controller.mode = ViewMode(a.id)
        mode = press(controller, "l")
        assert mode == LinkSelectMode(a.id, (c.id, b.id), 0)
        press(controller, DOWN, ENTER)
        assert controller.mode == ViewMode(a.id)
        assert service.get(a.id).links == [b.id]

    def test_duplicate_link_stays_with_error(self, controller, service, notes):
        a, b, c = notes
        service.add_link(a.id, c.id)
        controller.mode = ViewMode(a.id)
        mode = press(controller, "l", ENTER)
        assert isinstance(mode, LinkSelectMode)
        assert controller.status.level == ERROR

    def test_cursor_covers_links_and_backlinks(self, controller, service, notes):
        a, b, c = notes
        service.add_link(a.id, b.id)
        service.add_link(c.id, a.id)
        controller.mode = ViewMode(a.id)
        assert controller.view_targets(a.id) == [b.id, c.id]
        assert press(controller, DOWN, DOWN) == ViewMode(a.id, cursor=1)
        assert press(controller, ENTER) == ViewMode(c.id)

    def test_unlink_flow(self, controller, service, notes):
        a, b, c = notes
        service.add_link(a.id, b.id)
        controller.mode = ViewMode(a.id)
        assert press(controller, "u") == UnlinkConfirmMode(a.id, b.id)
        assert press(controller, "y") == ViewMode(a.id)
        assert service.get(a.id).links == []

    def test_unlink_needs_forward_link(self, controller, notes):
        controller.mode = ViewMode(notes[0].id)
        assert press(controller, "u") == ViewMode(notes[0].id)

    def test_tag_add_flow(self, controller, service, notes):
        a, b, c = notes
        controller.mode = ViewMode(a.id)
        assert press(controller, "t") == TagAddMode(a.id)
        press(controller, "Big Idea", ENTER)
        assert controller.mode == ViewMode(a.id)
        assert service.get(a.id).tags == ["big-idea"]

    def test_duplicate_tag_stays_with_error(self, controller, service, notes):
        a, b, c = notes
        service.add_tag(a.id, "draft")
        controller.mode = ViewMode(a.id)
        mode = press(controller, "t", "Draft", ENTER)
        assert mode == TagAddMode(a.id, "Draft")
        assert controller.status.level == ERROR

    def test_tag_remove_flow(self, controller, service, notes):
        a, b, c = notes
        service.add_tag(a.id, "one")
        service.add_tag(a.id, "two")
        controller.mode = ViewMode(a.id)
        assert press(controller, "x") == TagRemoveMode(a.id)
        assert press(controller, ENTER) == TagRemoveMode(a.id, 0)
        assert press(controller, ENTER) == ViewMode(a.id)
        assert service.get(a.id).tags == []

    def test_tag_remove_without_tags(self, controller, notes):
        controller.mode = ViewMode(notes[0].id)
        assert press(controller, "x") == ViewMode(notes[0].id)

    def test_export(self, controller, temp_dir, notes):
        controller.mode = ViewMode(notes[0].id)
        press(controller, "E")
        assert (temp_dir / f"Alpha-{notes[0].id}.md").exists()
        assert controller.status.level == INFO

    def test_note_history(self, controller, service, notes):
        a, b, c = notes
        service.update(a.id, "Alpha 2", "")
        controller.mode = ViewMode(a.id)
        mode = press(controller, "h")
        assert [e.description for e in mode.entries] == ["Update: Alpha 2", "Note: Alpha"]
        assert press(controller, ESCAPE) == ViewMode(a.id)


class TestDeleteConfirm:
    def test_confirm_archives(self, controller, service, notes):
        a, b, c = notes
        press(controller, "d", "y")
        assert isinstance(controller.mode, ListMode)
        assert c.id not in [n.id for n in service.active_notes()]

    def test_cancel_keeps_note(self, controller, service, notes):
        press(controller, "d", "n")
        assert controller.mode == ListMode()
        assert len(service.active_notes()) == 3


class TestStatus:
    def test_status_cleared_by_next_key(self, controller, notes):
        press(controller, "r")
        assert controller.status is not None
        press(controller, DOWN)
        assert controller.status is None

    def test_errors_do_not_change_mode(self, controller, store, notes):
        store.fail_read = True
        mode = press(controller, "r")
        assert mode == ListMode()
        assert controller.status.level == ERROR
