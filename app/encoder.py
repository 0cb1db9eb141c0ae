"""Turn a selected video into a data URL that can travel inside a JSON body."""

import asyncio
import base64
import logging
import mimetypes
from typing import Optional

import filetype

from .errors import EncodingFailed
from .media import MediaFile

logger = logging.getLogger("analyzer.encoder")


def _detect_mime(data: bytes, name: Optional[str]) -> str:
    kind = filetype.guess(data)
    if kind is not None:
        return kind.mime
    guessed, _ = mimetypes.guess_type(name or "")
    return guessed or "application/octet-stream"


async def encode(file: MediaFile) -> str:
    """Read the whole file without blocking the loop and return ``data:<mime>;base64,<payload>``."""
    if file.path is None:
        raise EncodingFailed()
    try:
        data = await asyncio.to_thread(file.path.read_bytes)
    except OSError as exc:
        logger.error(f"Failed to read {file.name!r}: {type(exc).__name__}")
        raise EncodingFailed() from exc

    mime = _detect_mime(data, file.name)
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{payload}"


def payload_of(data_url: str) -> str:
    """Everything after the first comma, i.e. the bare base64 payload."""
    _, _, payload = data_url.partition(",")
    return payload
