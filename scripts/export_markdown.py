#!/usr/bin/env python3
"""Export every active note as markdown into a directory.

Usage:
    python scripts/export_markdown.py
    python scripts/export_markdown.py --output ~/vault/zettelkasten
"""
import argparse
import sys
from pathlib import Path

from zettelvc.config import config
from zettelvc.exceptions import ZettelError
from zettelvc.services.note_service import NoteService
from zettelvc.storage.git_store import GitStore
from zettelvc.storage.note_repository import NoteRepository


def main():
    """Export notes to a markdown directory."""
    parser = argparse.ArgumentParser(description="Export notes as markdown")
    parser.add_argument(
        "--output", default=str(config.export_dir),
        help="Target directory (default: ZETTELVC_EXPORT_DIR)",
    )
    args = parser.parse_args()

    output = Path(args.output).expanduser()
    output.mkdir(parents=True, exist_ok=True)
    print(f"Exporting notes to: {output}")
    print(f"Source: {config.repo_path}")

    try:
        repository = NoteRepository(GitStore(config.repo_path, timeout=config.git_timeout))
        report = repository.load()
        service = NoteService(repository)
        written = {service.export_note(note.id, output) for note in service.active_notes()}
    except ZettelError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Exported {len(written)} notes.")
    if report.skipped:
        print(f"Skipped {len(report.skipped)} unreadable records.")


if __name__ == "__main__":
    main()
