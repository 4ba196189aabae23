"""
Staging area for files uploaded with a send request.

Uploads are written to a scratch directory first. They only reach the
attachment store once the provider has accepted the message; if anything fails
they are deleted.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence
from uuid import uuid4

from fastapi import UploadFile

from app.errors import PayloadTooLarge
from app.services.attachment_store import Attachment, AttachmentStore, clean_filename

logger = logging.getLogger(__name__)

_READ_CHUNK_BYTES = 1024 * 1024


@dataclass(frozen=True)
class StagedUpload:
    """An uploaded file waiting in the staging directory."""

    filename: str
    path: Path
    size: int

    def as_attachment(self) -> Attachment:
        return Attachment(filename=self.filename, path=self.path)


class UploadIntake:
    """Limit checks, staging, promotion and cleanup for uploaded files."""

    def __init__(
        self,
        staging_dir: Path,
        store: AttachmentStore,
        max_files: int = 10,
        max_file_bytes: int = 10 * 1024 * 1024,
    ):
        self.staging_dir = Path(staging_dir)
        self.store = store
        self.max_files = max_files
        self.max_file_bytes = max_file_bytes

    def _too_large(self, filename: str) -> PayloadTooLarge:
        mb, remainder = divmod(self.max_file_bytes, 1024 * 1024)
        limit = f"{mb} MB" if mb and not remainder else f"{self.max_file_bytes} byte"
        return PayloadTooLarge(f"File {filename!r} exceeds {limit} limit.")

    def chosen(self, files: Sequence[UploadFile]) -> List[UploadFile]:
        """Parts that carry a file. Browsers send an unnamed empty part when none is picked."""
        return [upload for upload in files if upload.filename]

    def check_limits(self, files: Sequence[UploadFile]) -> None:
        """
        Reject the request up front when it breaks the upload limits.

        Sizes reported by the multipart parser are checked here; ``stage``
        checks again while reading in case a size was not reported.

        Raises:
            PayloadTooLarge: more than ``max_files`` files, or a file over
                ``max_file_bytes``.
        """
        files = self.chosen(files)
        if len(files) > self.max_files:
            raise PayloadTooLarge(
                f"Too many attachments: {len(files)} (maximum is {self.max_files})."
            )
        for upload in files:
            if upload.size is not None and upload.size > self.max_file_bytes:
                raise self._too_large(upload.filename or "upload")

    def _staged_name(self, filename: str) -> str:
        return f"{int(time.time() * 1000)}-{uuid4().hex[:8]}-{filename}"

    async def stage(self, files: Sequence[UploadFile]) -> List[StagedUpload]:
        """
        Write uploads into the staging directory, in request order.

        Parts without a filename are skipped. Anything already staged is
        removed again if a later file fails.
        """
        files = self.chosen(files)
        self.check_limits(files)

        staged: List[StagedUpload] = []
        try:
            for upload in files:
                staged.append(await self._stage_one(upload))
        except BaseException:
            self.discard(staged)
            raise

        if staged:
            logger.info(f"Staged {len(staged)} upload(s)")
        return staged

    async def _stage_one(self, upload: UploadFile) -> StagedUpload:
        filename = clean_filename(upload.filename)
        self.staging_dir.mkdir(parents=True, exist_ok=True)
        path = self.staging_dir / self._staged_name(filename)

        size = 0
        try:
            with open(path, "wb") as out:
                while True:
                    chunk = await upload.read(_READ_CHUNK_BYTES)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_file_bytes:
                        raise self._too_large(filename)
                    out.write(chunk)
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        return StagedUpload(filename=filename, path=path, size=size)

    def promote(self, staged: Sequence[StagedUpload]) -> List[str]:
        """
        Move staged uploads into the attachment store.

        Returns:
            Names that were newly saved (collisions keep the stored file).
        """
        saved = []
        for item in staged:
            if self.store.promote(item.path, item.filename):
                saved.append(item.filename)
        return saved

    def discard(self, staged: Sequence[StagedUpload]) -> None:
        """Delete staged uploads; files that are already gone are ignored."""
        for item in staged:
            try:
                item.path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove staged upload {item.path}: {e}")
        if staged:
            logger.info(f"Discarded {len(staged)} staged upload(s)")
