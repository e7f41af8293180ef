import base64

import pytest

from chunkflow.configs import settings
from chunkflow.exceptions import DownloadError, NotFoundError, ValidationError
from chunkflow.media.source import ReferenceKind, classify_reference, resolve_source

VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 64


def test_classify_remote_references():
    assert classify_reference("https://cdn.example.com/v.mp4") is ReferenceKind.REMOTE
    assert classify_reference("http://cdn.example.com/v.mp4") is ReferenceKind.REMOTE


def test_classify_inline_references():
    assert classify_reference("data:video/mp4;base64,AAAA") is ReferenceKind.INLINE
    assert classify_reference("AAAA", encoding="base64") is ReferenceKind.INLINE


def test_classify_local_references():
    assert classify_reference("uploads/video.mp4") is ReferenceKind.LOCAL
    assert classify_reference("httpdocs/video.mp4") is ReferenceKind.LOCAL


def test_length_heuristic_can_be_disabled(monkeypatch):
    long_reference = "A" * (settings.inline_length_threshold + 1)
    assert classify_reference(long_reference) is ReferenceKind.INLINE

    monkeypatch.setattr(settings, "inline_length_heuristic", False)
    assert classify_reference(long_reference) is ReferenceKind.LOCAL


def test_inline_is_not_accepted_when_disallowed():
    assert classify_reference("data:video/mp4;base64,AAAA", allow_inline=False) is ReferenceKind.LOCAL


@pytest.mark.asyncio
async def test_resolve_local_path_is_not_cleanup_eligible(workspace, tmp_path):
    video = tmp_path / "local.mp4"
    video.write_bytes(VIDEO_BYTES)

    source = await resolve_source(str(video), workspace, "1_abc")
    assert source.path == video
    assert not source.cleanup

    await source.release()
    assert video.exists()


@pytest.mark.asyncio
async def test_resolve_missing_local_path(workspace):
    with pytest.raises(NotFoundError):
        await resolve_source("uploads/does-not-exist.mp4", workspace, "1_abc")


@pytest.mark.asyncio
async def test_resolve_data_uri(workspace):
    payload = "data:video/mp4;base64," + base64.b64encode(VIDEO_BYTES).decode()

    source = await resolve_source(payload, workspace, "1_abc")
    assert source.kind is ReferenceKind.INLINE
    assert source.path == workspace.input_path("1_abc")
    assert source.path.read_bytes() == VIDEO_BYTES

    await source.release()
    assert not source.path.exists()


@pytest.mark.asyncio
async def test_resolve_explicit_base64_marker(workspace):
    payload = base64.urlsafe_b64encode(VIDEO_BYTES).decode().rstrip("=")

    source = await resolve_source(payload, workspace, "1_abc", encoding="base64")
    assert source.path.read_bytes() == VIDEO_BYTES


@pytest.mark.asyncio
async def test_resolve_invalid_base64_leaves_nothing_behind(workspace):
    with pytest.raises(ValidationError):
        await resolve_source("data:video/mp4;base64,@@not base64@@", workspace, "1_abc")
    assert list(workspace.uploads_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_resolve_remote_reference(workspace, mock_remote):
    url = "https://cdn.example.com/video.mp4"
    requested = mock_remote({url: VIDEO_BYTES})

    source = await resolve_source(url, workspace, "1_abc", role="duration_check")
    assert requested == [url]
    assert source.path == workspace.uploads_dir / "duration_check_1_abc.mp4"
    assert source.path.read_bytes() == VIDEO_BYTES
    assert source.cleanup


@pytest.mark.asyncio
async def test_resolve_remote_failure(workspace, mock_remote):
    mock_remote({})
    with pytest.raises(DownloadError) as exc_info:
        await resolve_source("https://cdn.example.com/missing.mp4", workspace, "1_abc")
    assert exc_info.value.upstream_status == 404
    assert exc_info.value.status_code == 500
    assert list(workspace.uploads_dir.iterdir()) == []
