"""
Filesystem store for reusable attachments.

Every file in the attachments directory is one saved attachment, keyed by its
filename. Uploads land here only after a send succeeds (see upload_intake);
a name that is already taken is never overwritten.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from app.errors import InvalidRequest, NotFound

logger = logging.getLogger(__name__)

_DEFAULT_MEDIA_TYPE = "application/octet-stream"

_MEDIA_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".txt": "text/plain",
    ".zip": "application/zip",
}


def media_type_for(filename: str) -> str:
    """Return the media type for a filename based on its extension."""
    ext = os.path.splitext(filename)[1].lower()
    return _MEDIA_TYPES.get(ext, _DEFAULT_MEDIA_TYPE)


def clean_filename(name: Optional[str]) -> str:
    """
    Reduce a client-supplied name to a bare filename.

    Browsers on some platforms send full paths (``C:\\Users\\me\\a.pdf``) and a
    hostile client can send ``../../etc/passwd``; only the last path component
    is kept.

    Raises:
        InvalidRequest: if nothing usable is left.
    """
    base = (name or "").replace("\\", "/").split("/")[-1].strip()
    if base in ("", ".", ".."):
        raise InvalidRequest(f"Invalid file name: {name!r}")
    return base


@dataclass(frozen=True)
class Attachment:
    """A file to attach to an outgoing message."""

    filename: str
    path: Path

    @property
    def media_type(self) -> str:
        return media_type_for(self.filename)

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


class AttachmentStore:
    """Directory of saved attachments, one file per name."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, name: str) -> Path:
        return self.root / clean_filename(name)

    def list(self) -> List[str]:
        """
        Names of the stored attachments, hidden files excluded.

        Returns an empty list when the directory has never been created.
        """
        if not self.root.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.root.iterdir()
            if entry.is_file() and not entry.name.startswith(".")
        )

    def exists(self, name: str) -> bool:
        try:
            return self._path(name).is_file()
        except InvalidRequest:
            return False

    def get(self, name: str) -> Optional[Attachment]:
        """Return the stored attachment, or None if there is no such file."""
        if not self.exists(name):
            return None
        path = self._path(name)
        return Attachment(filename=path.name, path=path)

    def delete(self, name: str) -> None:
        """
        Remove a stored attachment.

        Raises:
            NotFound: if no attachment of that name exists.
        """
        path = self._path(name)
        if not path.is_file():
            raise NotFound("File not found")
        try:
            path.unlink()
        except FileNotFoundError:
            # Removed by a concurrent request between the check and the unlink.
            pass
        logger.info(f"Deleted attachment {path.name!r}")

    def promote(self, staged_path: Path, name: str) -> bool:
        """
        Move a staged upload into the store under ``name``.

        If a file with that name is already stored, the existing file wins and
        the staged copy is deleted instead.

        Returns:
            True if the file was moved in, False if it was discarded.
        """
        dest = self._path(name)
        staged_path = Path(staged_path)

        if dest.exists():
            staged_path.unlink(missing_ok=True)
            logger.info(f"Attachment {dest.name!r} already saved; discarded staged copy")
            return False

        self.root.mkdir(parents=True, exist_ok=True)
        shutil.move(str(staged_path), str(dest))
        logger.info(f"Saved attachment {dest.name!r}")
        return True
