"""Gatekeeping rules applied to a selected file before it enters a session."""

from dataclasses import dataclass
from typing import Optional, Union

from .errors import (
    FileTooLarge,
    InvalidFile,
    MissingExtension,
    UnsupportedFormat,
    ValidationError,
)
from .media import MediaFile

ALLOWED_EXTENSIONS = ("mp4", "mov", "avi")
MAX_FILE_SIZE = 20 * 1024 * 1024


@dataclass(frozen=True)
class Accepted:
    file: MediaFile


@dataclass(frozen=True)
class Rejected:
    error: ValidationError

    @property
    def reason(self) -> str:
        return self.error.message

    @property
    def kind(self) -> str:
        return self.error.kind


ValidationOutcome = Union[Accepted, Rejected]


def file_extension(name: Optional[str]) -> Optional[str]:
    """Return the lower-cased text after the last dot, or None without a dot."""
    if not name:
        return None
    parts = name.rsplit(".", 1)
    if len(parts) < 2:
        return None
    return parts[-1].lower()


def validate(file: MediaFile) -> ValidationOutcome:
    """Check name, extension and size in that order; the first failure wins."""
    if not file.name:
        return Rejected(InvalidFile())

    ext = file_extension(file.name)
    if ext is None:
        return Rejected(MissingExtension())
    if ext not in ALLOWED_EXTENSIONS:
        return Rejected(UnsupportedFormat())

    if file.size > MAX_FILE_SIZE:
        return Rejected(FileTooLarge())

    return Accepted(file)
