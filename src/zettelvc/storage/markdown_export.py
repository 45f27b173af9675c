"""Markdown export for notes.

Renders a note as markdown with YAML frontmatter so it can be dropped into
any markdown-based tool. Links are written as ``[[Title]]`` wiki links
when the target is known.
"""
import logging
from typing import Callable, Dict, List, Optional

import frontmatter

from zettelvc.models.schema import Note
from zettelvc.utils import sanitize_for_terminal

logger = logging.getLogger(__name__)


class MarkdownExporter:
    """Serializes notes as markdown with frontmatter."""

    def __init__(self, resolve_title: Callable[[str], Optional[str]]):
        """Initialize the exporter.

        Args:
            resolve_title: Maps a note id to its title, or None when unknown.
        """
        self._resolve_title = resolve_title

    def render(self, note: Note) -> str:
        """Convert a note to markdown with frontmatter."""
        metadata: Dict = {
            "id": note.id,
            "title": note.title,
            "tags": list(note.tags),
            "created": note.created_at.isoformat(),
            "updated": note.updated_at.isoformat(),
        }
        if note.archived:
            metadata["archived"] = True

        content = f"# {note.title}\n\n{note.body.rstrip()}\n"

        link_lines = self._link_lines(note)
        if link_lines:
            content += "\n## Links\n" + "\n".join(link_lines) + "\n"

        post = frontmatter.Post(content, **metadata)
        return frontmatter.dumps(post) + "\n"

    def filename_for(self, note: Note) -> str:
        """File name for an exported note.

        The id suffix keeps notes with the same title apart, while a
        re-export of one note still lands on the same file.
        """
        stem = sanitize_for_terminal(note.title)
        if not stem:
            return f"{note.id}.md"
        return f"{stem}-{note.id}.md"

    def _link_lines(self, note: Note) -> List[str]:
        lines = []
        for target_id in note.links:
            title = self._resolve_title(target_id)
            if title is None:
                logger.debug(f"Exporting dangling link {target_id} from {note.id}")
                lines.append(f"- [[{target_id}]]")
            else:
                lines.append(f"- [[{title}]]")
        return lines
