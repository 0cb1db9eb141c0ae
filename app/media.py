"""Uploaded media owned by a session and the preview handles pointing at it."""

import logging
import os
import secrets
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

logger = logging.getLogger("analyzer.media")

CHUNK_SIZE = 1024 * 1024


@dataclass
class MediaFile:
    """A selected video: its client-side name, byte size and the temp copy on disk."""

    name: Optional[str]
    size: int
    path: Optional[Path] = None

    def discard(self) -> None:
        """Delete the temp copy, if any. Safe to call more than once."""
        if self.path is None:
            return
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning(f"Could not remove {self.path}: {exc}")
        self.path = None


@dataclass
class PreviewHandle:
    """Opaque token under which the browser can play back the current file."""

    file: MediaFile
    token: str = field(default_factory=lambda: secrets.token_urlsafe(16))
    revoked: bool = False

    @property
    def url(self) -> str:
        return f"/preview/{self.token}"

    def release(self) -> None:
        """Revoke the token and drop the file it points at."""
        self.revoked = True
        self.file.discard()


async def spool_upload(upload: UploadFile, directory: Optional[str], limit: int) -> MediaFile:
    """Copy an upload into a session-owned temp file and measure its size.

    Bytes past ``limit`` are counted but not copied, so the session copy of an
    oversized upload stays bounded while the validator still sees its real size.
    The temp file is removed if the copy fails.
    """
    fd, tmp_path = tempfile.mkstemp(prefix="video-", suffix=".upload", dir=directory)
    size = 0
    try:
        with os.fdopen(fd, "wb") as f:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                if size < limit + 1:
                    f.write(chunk[: limit + 1 - size])
                size += len(chunk)
    except BaseException:
        os.unlink(tmp_path)
        raise
    logger.debug(f"Spooled upload {upload.filename!r} ({size} bytes) to {tmp_path}")
    return MediaFile(name=upload.filename, size=size, path=Path(tmp_path))
