import asyncio
import pytest
from unittest.mock import patch

from httpx import AsyncClient, ASGITransport
from app.errors import EmptyResult, RequestFailed
from app.main import app, session_store, settings
from app.validator import MAX_FILE_SIZE


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def _new_session(client: AsyncClient) -> str:
    response = await client.post("/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


async def _upload(client: AsyncClient, session_id: str, name="clip.mov", data=b"fake-video-bytes"):
    return await client.post(
        f"/sessions/{session_id}/video",
        files={"file": (name, data, "video/quicktime")},
    )


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path))
    return tmp_path


# ---------------------------------------------------------------------------
# GET /
# ---------------------------------------------------------------------------

class TestGetIndex:
    @pytest.mark.asyncio
    async def test_returns_html(self):
        async with _client() as client:
            response = await client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "Badminton Video Analyzer" in response.text

    @pytest.mark.asyncio
    async def test_health(self):
        async with _client() as client:
            response = await client.get("/health")
        assert response.json() == {"ok": True}


# ---------------------------------------------------------------------------
# Sessions and uploads
# ---------------------------------------------------------------------------

class TestUploadVideo:
    @pytest.mark.asyncio
    async def test_new_session_is_idle(self):
        async with _client() as client:
            session_id = await _new_session(client)
            response = await client.get(f"/sessions/{session_id}")

        body = response.json()
        assert body["status"] == "idle"
        assert body["busy"] is False
        assert body["file_name"] is None

    @pytest.mark.asyncio
    async def test_unknown_session_is_404(self):
        async with _client() as client:
            response = await client.get("/sessions/nope")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_upload_accepts_video_and_sets_preview(self, upload_dir):
        async with _client() as client:
            session_id = await _new_session(client)
            response = await _upload(client, session_id)
            body = response.json()
            preview = await client.get(body["preview_url"])

        assert response.status_code == 200
        assert body["status"] == "selected"
        assert body["file_name"] == "clip.mov"
        assert body["file_size"] == len(b"fake-video-bytes")
        assert body["error"] is None
        assert preview.status_code == 200
        assert preview.content == b"fake-video-bytes"
        assert preview.headers["content-type"] == "video/mov"
        assert len(list(upload_dir.iterdir())) == 1

    @pytest.mark.asyncio
    async def test_upload_rejects_unsupported_format(self, upload_dir):
        async with _client() as client:
            session_id = await _new_session(client)
            response = await _upload(client, session_id, name="notes.txt")

        body = response.json()
        assert response.status_code == 400
        assert body["status"] == "idle"
        assert body["error_kind"] == "UnsupportedFormat"
        assert body["file_name"] is None
        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_upload_at_exact_size_limit_is_accepted(self, upload_dir):
        data = b"\x01" * MAX_FILE_SIZE
        async with _client() as client:
            session_id = await _new_session(client)
            response = await _upload(client, session_id, name="edge.mp4", data=data)

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "selected"
        assert body["file_size"] == MAX_FILE_SIZE
        stored = list(upload_dir.iterdir())
        assert len(stored) == 1
        assert stored[0].stat().st_size == MAX_FILE_SIZE

    @pytest.mark.asyncio
    async def test_upload_rejects_oversized_file(self, upload_dir):
        data = b"\x00" * (20 * 1024 * 1024 + 1)
        async with _client() as client:
            session_id = await _new_session(client)
            response = await _upload(client, session_id, name="big.mp4", data=data)

        assert response.status_code == 400
        assert response.json()["error_kind"] == "FileTooLarge"
        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_valid_upload_after_rejection_clears_error(self):
        async with _client() as client:
            session_id = await _new_session(client)
            await _upload(client, session_id, name="clip")
            response = await _upload(client, session_id, name="clip.MP4")

        body = response.json()
        assert response.status_code == 200
        assert body["error"] is None
        assert body["error_kind"] is None

    @pytest.mark.asyncio
    async def test_reupload_revokes_old_preview(self, upload_dir):
        async with _client() as client:
            session_id = await _new_session(client)
            first = (await _upload(client, session_id)).json()
            second = (await _upload(client, session_id, name="other.avi", data=b"other")).json()
            old_preview = await client.get(first["preview_url"])
            new_preview = await client.get(second["preview_url"])

        assert old_preview.status_code == 404
        assert new_preview.content == b"other"
        assert len(list(upload_dir.iterdir())) == 1

    @pytest.mark.asyncio
    async def test_delete_session_releases_video(self, upload_dir):
        async with _client() as client:
            session_id = await _new_session(client)
            preview_url = (await _upload(client, session_id)).json()["preview_url"]
            deleted = await client.delete(f"/sessions/{session_id}")
            preview = await client.get(preview_url)
            again = await client.get(f"/sessions/{session_id}")

        assert deleted.status_code == 204
        assert preview.status_code == 404
        assert again.status_code == 404
        assert list(upload_dir.iterdir()) == []


# ---------------------------------------------------------------------------
# POST /sessions/{id}/analysis
# ---------------------------------------------------------------------------

class TestAnalyzeVideo:
    @pytest.mark.asyncio
    async def test_records_result(self):
        with patch("app.main.gemini_service.analyze", return_value="Analysis...") as mock_analyze:
            async with _client() as client:
                session_id = await _new_session(client)
                await _upload(client, session_id)
                response = await client.post(f"/sessions/{session_id}/analysis")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "succeeded"
        assert body["busy"] is False
        assert body["result"] == "Analysis..."
        assert body["error"] is None
        assert body["file_name"] == "clip.mov"
        mock_analyze.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_result_is_reported(self):
        with patch("app.main.gemini_service.analyze", side_effect=EmptyResult()):
            async with _client() as client:
                session_id = await _new_session(client)
                await _upload(client, session_id)
                response = await client.post(f"/sessions/{session_id}/analysis")

        body = response.json()
        assert response.status_code == 502
        assert body["error_kind"] == "EmptyResult"
        assert body["error"] == "No analysis result received from the API."
        assert body["result"] is None

    @pytest.mark.asyncio
    async def test_remote_error_message_is_shown(self):
        with patch("app.main.gemini_service.analyze", side_effect=RequestFailed("quota exceeded")):
            async with _client() as client:
                session_id = await _new_session(client)
                await _upload(client, session_id)
                response = await client.post(f"/sessions/{session_id}/analysis")

        assert response.status_code == 502
        assert "quota exceeded" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_analysis_without_video_is_400(self):
        async with _client() as client:
            session_id = await _new_session(client)
            response = await client.post(f"/sessions/{session_id}/analysis")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_second_submit_while_busy_is_409(self):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_analyze(file):
            started.set()
            await release.wait()
            return "done"

        with patch("app.main.gemini_service.analyze", side_effect=slow_analyze) as mock_analyze:
            async with _client() as client:
                session_id = await _new_session(client)
                await _upload(client, session_id)

                first = asyncio.create_task(client.post(f"/sessions/{session_id}/analysis"))
                await started.wait()
                state = await client.get(f"/sessions/{session_id}")
                second = await client.post(f"/sessions/{session_id}/analysis")
                upload = await _upload(client, session_id, name="late.mp4")
                release.set()
                first_response = await first

        assert state.json()["busy"] is True
        assert second.status_code == 409
        assert upload.status_code == 409
        assert first_response.json()["result"] == "done"
        assert mock_analyze.await_count == 1


# ---------------------------------------------------------------------------
# Error bodies the UI falls back on
# ---------------------------------------------------------------------------

class TestErrorBodies:
    @pytest.mark.asyncio
    async def test_lost_session_answers_with_detail(self):
        async with _client() as client:
            analysis = await client.post("/sessions/gone/analysis")
            upload = await _upload(client, "gone")

        for response in (analysis, upload):
            assert response.status_code == 404
            assert response.json() == {"detail": "Session not found."}

    @pytest.mark.asyncio
    async def test_index_reports_bodies_without_session(self):
        async with _client() as client:
            response = await client.get("/")

        assert "body.detail" in response.text
        assert "sessionId = null" in response.text

    @pytest.mark.asyncio
    async def test_expired_session_is_evicted_on_create(self, upload_dir, monkeypatch):
        monkeypatch.setattr(session_store, "ttl", 60)
        async with _client() as client:
            stale_id = await _new_session(client)
            await _upload(client, stale_id)
            session_store.get(stale_id).last_touched -= 120

            await _new_session(client)
            stale = await client.get(f"/sessions/{stale_id}")

        assert stale.status_code == 404
        assert list(upload_dir.iterdir()) == []
