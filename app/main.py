"""FastAPI application exposing the session endpoints and the single-page UI."""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager, suppress
from pathlib import Path

from fastapi import FastAPI, File, HTTPException, Request, Response, UploadFile, status
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse

from . import __version__
from .config import settings
from .errors import NoFileSelected, SessionBusy
from .gemini_service import GeminiService
from .media import spool_upload
from .schemas import SessionOut
from .session import Failed, Session, SessionStore
from .validator import MAX_FILE_SIZE, Rejected, file_extension

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

# request lines carry the API key as a query parameter
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger("analyzer.main")

INDEX_HTML = Path(__file__).with_name("index.html")

gemini_service = GeminiService()
session_store = SessionStore(gemini_service, ttl=settings.session_ttl)


async def _evict_idle_sessions(interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        session_store.evict_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper = None
    if settings.session_ttl:
        sweeper = asyncio.create_task(_evict_idle_sessions(max(settings.session_ttl / 2, 1.0)))
    yield
    if sweeper is not None:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
    logger.info(f"Shutting down, releasing {len(session_store)} session(s)")
    session_store.close_all()


app = FastAPI(title="Badminton Video Analyzer", version=__version__, lifespan=lifespan)


@app.exception_handler(Exception)
async def unhandled_ex_handler(_: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error: {type(exc).__name__}")
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


def _get_session(session_id: str) -> Session:
    session = session_store.get(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found.")
    return session


def _session_response(session: Session, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=SessionOut.from_session(session).model_dump(),
    )


@app.get("/")
async def get_index() -> HTMLResponse:
    """Serve the index.html single-page UI."""
    with open(INDEX_HTML, encoding="utf-8") as f:
        return HTMLResponse(f.read())


@app.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


@app.post("/sessions", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
async def create_session() -> SessionOut:
    """Open a new session in the Idle state."""
    session = session_store.create()
    logger.info(f"Session {session.id} created")
    return SessionOut.from_session(session)


@app.get("/sessions/{session_id}", response_model=SessionOut)
async def get_session(session_id: str) -> SessionOut:
    return SessionOut.from_session(_get_session(session_id))


@app.post("/sessions/{session_id}/video", response_model=SessionOut)
async def upload_video(session_id: str, file: UploadFile = File(...)):
    """Store the uploaded video in the session if it passes validation.

    A rejected file is answered with 400 and the session body, whose
    ``error`` field carries the reason.
    """
    session = _get_session(session_id)
    if session.busy:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=SessionBusy().message)

    media = await spool_upload(file, settings.upload_dir, MAX_FILE_SIZE)
    try:
        outcome = session.select(media)
    except SessionBusy as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)

    if isinstance(outcome, Rejected):
        return _session_response(session, status.HTTP_400_BAD_REQUEST)
    return _session_response(session)


@app.post("/sessions/{session_id}/analysis", response_model=SessionOut)
async def analyze_video(session_id: str):
    """Run one analysis of the selected video and return the updated session."""
    session = _get_session(session_id)
    try:
        await session.submit()
    except SessionBusy as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)
    except NoFileSelected as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)

    if isinstance(session.state, Failed):
        return _session_response(session, status.HTTP_502_BAD_GATEWAY)
    return _session_response(session)


@app.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str) -> Response:
    """End the session and release its video and preview."""
    if not session_store.close(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/preview/{token}")
async def get_preview(token: str) -> FileResponse:
    """Stream the selected video back to the browser for playback."""
    media = session_store.resolve_preview(token)
    if media is None or media.path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Preview not found.")
    return FileResponse(media.path, media_type=f"video/{file_extension(media.name) or 'mp4'}")
