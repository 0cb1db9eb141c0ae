import base64

import pytest

from app.encoder import encode, payload_of
from app.errors import EncodingFailed
from app.media import MediaFile


@pytest.mark.asyncio
async def test_encode_produces_data_url(tmp_path):
    raw = b"not really a video"
    video = tmp_path / "clip.mp4"
    video.write_bytes(raw)

    data_url = await encode(MediaFile(name="clip.mp4", size=len(raw), path=video))

    assert data_url.startswith("data:video/mp4;base64,")
    assert base64.b64decode(payload_of(data_url)) == raw


@pytest.mark.asyncio
async def test_encode_is_recomputed_from_disk(tmp_path):
    video = tmp_path / "clip.mp4"
    video.write_bytes(b"first")
    media = MediaFile(name="clip.mp4", size=5, path=video)

    first = await encode(media)
    video.write_bytes(b"second")
    second = await encode(media)

    assert first != second


@pytest.mark.asyncio
async def test_unreadable_file_raises_encoding_failed(tmp_path):
    media = MediaFile(name="clip.mp4", size=10, path=tmp_path / "gone.mp4")
    with pytest.raises(EncodingFailed):
        await encode(media)


@pytest.mark.asyncio
async def test_file_without_path_raises_encoding_failed():
    with pytest.raises(EncodingFailed):
        await encode(MediaFile(name="clip.mp4", size=10))


def test_payload_of_splits_at_first_comma():
    assert payload_of("data:video/mp4;base64,AAAA,BBBB") == "AAAA,BBBB"
