"""Small text helpers shared by the store adapter, exporter and renderer."""


def sanitize_for_terminal(text: str) -> str:
    """Sanitize text for terminal-friendly file names.

    Converts text to a format that:
    - Contains no spaces (uses hyphens between words)
    - Uses only alphanumeric characters, hyphens, and underscores
    - Is easy to type and tab-complete in terminal

    Examples:
        "Meeting notes: Q3 planning" -> "Meeting-notes-Q3-planning"
        "Hub: My Notes" -> "Hub-My-Notes"
        "test_note" -> "test_note"
    """
    if not text:
        return ""

    # Replace common separators with spaces first (for word splitting)
    result = (
        text.replace(":", " ").replace(";", " ").replace("/", " ").replace("\\", " ")
    )

    sanitized_words = []
    for word in result.split():
        sanitized_word = "".join(c if c.isalnum() or c in "-_" else "" for c in word)
        if sanitized_word:
            sanitized_words.append(sanitized_word)

    return "-".join(sanitized_words)


def sanitize_commit_message(message: str) -> str:
    """Make a change description safe to hand to a version-control CLI.

    The description is never shortened: it must name the full note title.

    - Replaces newlines (they would corrupt one-line log parsing)
    - Prefixes a leading dash (could be confused for a CLI flag)
    """
    sanitized = message.replace("\n", " ").replace("\r", " ")
    if sanitized.startswith("-"):
        sanitized = "_" + sanitized
    return sanitized


def first_line_preview(text: str, width: int = 60) -> str:
    """Return the first non-empty line of ``text`` clipped to ``width``."""
    for line in text.splitlines():
        line = line.strip()
        if line:
            if len(line) > width:
                return line[:width] + "..."
            return line
    return ""
