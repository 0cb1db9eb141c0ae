"""Per-browser session: the selected video, its preview and the last analysis.

The session is a single tagged state value rather than a set of flags::

    Idle --select(ok)--> FileSelected --submit--> Submitting --> Succeeded | Failed
      ^                        ^                                      |
      +----select(rejected)----+-------------select(ok)---------------+

Only ``Submitting`` is busy. While busy both ``select`` and ``submit`` raise
``SessionBusy``, so a session never has two outbound requests in flight and a
response always belongs to the file that is still selected.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from .errors import AnalyzerError, NoFileSelected, RequestFailed, SessionBusy
from .gemini_service import GeminiService
from .media import MediaFile, PreviewHandle
from .validator import Accepted, ValidationOutcome, validate

logger = logging.getLogger("analyzer.session")


@dataclass(frozen=True)
class Idle:
    error: Optional[str] = None
    error_kind: Optional[str] = None


@dataclass(frozen=True)
class FileSelected:
    file: MediaFile
    preview: PreviewHandle


@dataclass(frozen=True)
class Submitting:
    file: MediaFile
    preview: PreviewHandle


@dataclass(frozen=True)
class Succeeded:
    file: MediaFile
    preview: PreviewHandle
    result: str


@dataclass(frozen=True)
class Failed:
    file: MediaFile
    preview: PreviewHandle
    error: AnalyzerError


SessionState = Union[Idle, FileSelected, Submitting, Succeeded, Failed]

STATUS_NAMES = {
    Idle: "idle",
    FileSelected: "selected",
    Submitting: "submitting",
    Succeeded: "succeeded",
    Failed: "failed",
}


class Session:
    def __init__(self, service: GeminiService, session_id: Optional[str] = None) -> None:
        self.id = session_id or uuid.uuid4().hex
        self.service = service
        self.state: SessionState = Idle()
        self.last_touched = time.monotonic()

    def touch(self) -> None:
        self.last_touched = time.monotonic()

    def expired(self, ttl: float, now: Optional[float] = None) -> bool:
        """Idle for longer than ``ttl`` seconds. A busy session never expires."""
        if self.busy:
            return False
        now = time.monotonic() if now is None else now
        return now - self.last_touched > ttl

    @property
    def status(self) -> str:
        return STATUS_NAMES[type(self.state)]

    @property
    def busy(self) -> bool:
        return isinstance(self.state, Submitting)

    @property
    def current_file(self) -> Optional[MediaFile]:
        return getattr(self.state, "file", None)

    @property
    def preview(self) -> Optional[PreviewHandle]:
        return getattr(self.state, "preview", None)

    @property
    def last_result(self) -> Optional[str]:
        if isinstance(self.state, Succeeded):
            return self.state.result
        return None

    @property
    def last_error(self) -> Optional[str]:
        if isinstance(self.state, Failed):
            return self.state.error.message
        if isinstance(self.state, Idle):
            return self.state.error
        return None

    @property
    def last_error_kind(self) -> Optional[str]:
        if isinstance(self.state, Failed):
            return self.state.error.kind
        if isinstance(self.state, Idle):
            return self.state.error_kind
        return None

    def _release(self) -> None:
        preview = self.preview
        if preview is not None:
            preview.release()
        elif self.current_file is not None:
            self.current_file.discard()

    def select(self, file: MediaFile) -> ValidationOutcome:
        """Replace the current selection with ``file`` if it passes validation.

        Either way the previous file and preview are released; a rejected
        file is discarded immediately and never stored.
        """
        if self.busy:
            file.discard()
            raise SessionBusy()

        self.touch()
        outcome = validate(file)
        self._release()
        if isinstance(outcome, Accepted):
            self.state = FileSelected(file=file, preview=PreviewHandle(file))
            logger.info(f"Session {self.id}: selected {file.name!r} ({file.size} bytes)")
        else:
            file.discard()
            self.state = Idle(error=outcome.reason, error_kind=outcome.kind)
            logger.info(f"Session {self.id}: rejected {file.name!r}: {outcome.kind}")
        return outcome

    async def submit(self) -> SessionState:
        """Analyze the selected file once and record the outcome."""
        if self.busy:
            raise SessionBusy()
        if not isinstance(self.state, (FileSelected, Succeeded, Failed)):
            raise NoFileSelected()

        self.touch()
        self.state = Submitting(file=self.state.file, preview=self.state.preview)
        outcome: Union[str, AnalyzerError]
        try:
            outcome = await self.service.analyze(self.state.file)
        except asyncio.CancelledError:
            if self.busy:
                self.fail(RequestFailed("analysis cancelled"))
            raise
        except AnalyzerError as exc:
            outcome = exc
        except Exception as exc:
            logger.exception(f"Session {self.id}: unexpected error during analysis")
            outcome = RequestFailed(str(exc) or type(exc).__name__)

        self.touch()
        if not self.busy:
            # closed while the request was in flight
            logger.info(f"Session {self.id}: dropping analysis outcome for closed session")
            return self.state
        if isinstance(outcome, AnalyzerError):
            self.fail(outcome)
        else:
            self.complete(outcome)
        return self.state

    def complete(self, result: str) -> None:
        if not isinstance(self.state, Submitting):
            raise RuntimeError(f"complete() called while {self.status}")
        self.state = Succeeded(file=self.state.file, preview=self.state.preview, result=result)
        logger.info(f"Session {self.id}: analysis finished ({len(result)} chars)")

    def fail(self, error: AnalyzerError) -> None:
        if not isinstance(self.state, Submitting):
            raise RuntimeError(f"fail() called while {self.status}")
        self.state = Failed(file=self.state.file, preview=self.state.preview, error=error)
        logger.warning(f"Session {self.id}: analysis failed: {error.kind}: {error.message}")

    def close(self) -> None:
        """Release the file and preview; the session returns to Idle."""
        self._release()
        self.state = Idle()


class SessionStore:
    """In-memory registry of live sessions. Nothing outlives the process.

    Sessions untouched for ``ttl`` seconds are closed on the next ``create()``,
    so abandoned tabs do not keep their videos on disk.
    """

    def __init__(self, service: GeminiService, ttl: Optional[float] = None) -> None:
        self.service = service
        self.ttl = ttl
        self._sessions: dict[str, Session] = {}

    def evict_expired(self, now: Optional[float] = None) -> int:
        if self.ttl is None:
            return 0
        expired = [sid for sid, s in self._sessions.items() if s.expired(self.ttl, now)]
        for session_id in expired:
            self.close(session_id)
        if expired:
            logger.info(f"Evicted {len(expired)} idle session(s)")
        return len(expired)

    def create(self) -> Session:
        self.evict_expired()
        session = Session(self.service)
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is not None:
            session.touch()
        return session

    def resolve_preview(self, token: str) -> Optional[MediaFile]:
        for session in self._sessions.values():
            preview = session.preview
            if preview is not None and not preview.revoked and preview.token == token:
                return preview.file
        return None

    def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        return True

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
