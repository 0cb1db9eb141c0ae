from typing import Literal, Optional

from pydantic import BaseModel

from .session import Session

SessionStatus = Literal["idle", "selected", "submitting", "succeeded", "failed"]


class SessionOut(BaseModel):
    session_id: str
    status: SessionStatus
    busy: bool
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    preview_url: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    result: Optional[str] = None

    @classmethod
    def from_session(cls, session: Session) -> "SessionOut":
        file = session.current_file
        preview = session.preview
        return cls(
            session_id=session.id,
            status=session.status,
            busy=session.busy,
            file_name=file.name if file else None,
            file_size=file.size if file else None,
            preview_url=preview.url if preview else None,
            error=session.last_error,
            error_kind=session.last_error_kind,
            result=session.last_result,
        )
