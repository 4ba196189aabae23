"""
Text-file stores for reusable subject lines and message bodies.

Subjects are kept one per line. Messages can span several lines, so each one
is written after a ``---MESSAGE---`` marker:

    ---MESSAGE---
    Hello,
    please find the report attached.
    ---MESSAGE---
    Thanks!

Both stores behave like an insertion-ordered set of trimmed, non-empty strings.
"""

import logging
from pathlib import Path
from typing import List

from app.errors import InvalidRequest

logger = logging.getLogger(__name__)

MESSAGE_DELIMITER = "---MESSAGE---"


class TemplateStore:
    """
    Insertion-ordered set of text entries persisted in a single file.

    Subclasses define how entries are laid out in the file via ``decode`` and
    ``encode``; ``decode(encode(entries)) == entries`` must hold for any list of
    trimmed, non-empty, distinct entries. ``normalize`` cleans up incoming text
    the same way for ``add`` and ``delete``.
    """

    kind = "template"

    def __init__(self, path: Path):
        self.path = Path(path)

    def decode(self, content: str) -> List[str]:
        raise NotImplementedError

    def encode(self, entries: List[str]) -> str:
        raise NotImplementedError

    def normalize(self, text: str) -> str:
        return (text or "").strip()

    def list(self) -> List[str]:
        """Entries in file order; empty if the file does not exist yet."""
        if not self.path.is_file():
            return []
        return self.decode(self.path.read_text(encoding="utf-8"))

    def add(self, text: str) -> bool:
        """
        Append ``text`` (normalized) unless an identical entry is already stored.

        Returns:
            True if the entry was added, False if it was already present.

        Raises:
            InvalidRequest: if the trimmed text is empty.
        """
        value = self.normalize(text)
        if not value:
            raise InvalidRequest(f"{self.kind.capitalize()} must not be empty")

        entries = self.list()
        if value in entries:
            return False

        entries.append(value)
        self._write(entries)
        logger.info(f"Added {self.kind} template ({len(entries)} stored)")
        return True

    def delete(self, text: str) -> int:
        """
        Remove every entry equal to ``text`` (normalized).

        Returns:
            The number of entries removed; 0 is not an error.
        """
        value = self.normalize(text)
        if not self.path.is_file():
            return 0

        entries = self.list()
        remaining = [entry for entry in entries if entry != value]
        removed = len(entries) - len(remaining)
        if removed:
            self._write(remaining)
            logger.info(f"Deleted {self.kind} template ({len(remaining)} stored)")
        return removed

    def _write(self, entries: List[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.encode(entries), encoding="utf-8")


class SubjectTemplateStore(TemplateStore):
    """Subject lines, one per line."""

    kind = "subject"

    def decode(self, content: str) -> List[str]:
        return [line.strip() for line in content.split("\n") if line.strip()]

    def encode(self, entries: List[str]) -> str:
        return "\n".join(entries)

    def normalize(self, text: str) -> str:
        # A subject is a single line; an embedded newline would split it in two.
        return " ".join((text or "").splitlines()).strip()


class MessageTemplateStore(TemplateStore):
    """Multi-line message bodies, each preceded by the delimiter line."""

    kind = "message"

    def decode(self, content: str) -> List[str]:
        return [
            segment.strip()
            for segment in content.split(MESSAGE_DELIMITER)
            if segment.strip()
        ]

    def encode(self, entries: List[str]) -> str:
        return "\n".join(f"{MESSAGE_DELIMITER}\n{entry}" for entry in entries)

    def add(self, text: str) -> bool:
        if MESSAGE_DELIMITER in (text or ""):
            raise InvalidRequest(f"Message must not contain {MESSAGE_DELIMITER!r}")
        return super().add(text)
