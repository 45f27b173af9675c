"""Tests for the text helpers."""
from zettelvc.utils import first_line_preview, sanitize_commit_message, sanitize_for_terminal


class TestSanitizeCommitMessage:
    def test_long_message_not_shortened(self):
        message = "Note: " + "x" * 300
        assert sanitize_commit_message(message) == message

    def test_newlines_become_spaces(self):
        assert sanitize_commit_message("Note: a\nb\r\nc") == "Note: a b  c"

    def test_leading_dash_prefixed(self):
        assert sanitize_commit_message("--amend") == "_--amend"


class TestSanitizeForTerminal:
    def test_separators_and_punctuation(self):
        assert sanitize_for_terminal("Meeting notes: Q3 planning") == "Meeting-notes-Q3-planning"
        assert sanitize_for_terminal("???") == ""


def test_first_line_preview():
    assert first_line_preview("\n\n  first line  \nsecond") == "first line"
    assert first_line_preview("abcdef", width=3) == "abc..."
    assert first_line_preview("") == ""
