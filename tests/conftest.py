"""
Pytest configuration for the chunking and stitching service.

The working directories are pointed at a throwaway location before the
application is imported, so importing ``chunkflow.main`` never creates
directories inside the repository. ffmpeg/ffprobe are replaced by
``FakeRunner``, which records every command and creates the files the real
tools would create.
"""

import os
import tempfile
from pathlib import Path

_work_root = Path(tempfile.mkdtemp(prefix="chunkflow-tests-"))
for _name in ("uploads", "chunks", "output"):
    os.environ.setdefault(f"{_name.upper()}_DIR", str(_work_root / _name))

import httpx  # noqa: E402
import pytest  # noqa: E402
from dotenv import load_dotenv  # noqa: E402

# Load .env file from project root
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")

from chunkflow.utils.process import ProcessResult  # noqa: E402
from chunkflow.utils.workspace import Workspace  # noqa: E402


def pytest_configure(config):
    """Configure pytest-asyncio mode."""
    config.addinivalue_line("markers", "asyncio: mark test as async")


class FakeRunner:
    """Stand-in for ProcessRunner that emulates ffprobe and ffmpeg."""

    def __init__(
        self,
        frame_rate: str = "30/1",
        duration: str = "17.3",
        segment_count: int = 3,
        probe_returncode: int = 0,
        duration_returncode: int = 0,
        segment_returncode: int = 0,
        concat_returncode: int = 0,
    ):
        self.frame_rate = frame_rate
        self.duration = duration
        self.segment_count = segment_count
        self.probe_returncode = probe_returncode
        self.duration_returncode = duration_returncode
        self.segment_returncode = segment_returncode
        self.concat_returncode = concat_returncode
        self.calls: list[list[str]] = []
        self.manifests: list[str] = []
        self.inputs_present: list[bool] = []

    async def run(self, args, timeout=None) -> ProcessResult:
        args = [str(arg) for arg in args]
        self.calls.append(args)

        if "stream=r_frame_rate" in args:
            if self.probe_returncode:
                return ProcessResult(args, self.probe_returncode, "", "Invalid data found when processing input")
            return ProcessResult(args, 0, f"{self.frame_rate}\n", "")

        if "format=duration" in args:
            if self.duration_returncode:
                return ProcessResult(args, self.duration_returncode, "", "moov atom not found")
            return ProcessResult(args, 0, f"{self.duration}\n", "")

        if "segment" in args:
            self.inputs_present.append(Path(args[args.index("-i") + 1]).exists())
            if self.segment_returncode:
                return ProcessResult(args, self.segment_returncode, "", "Error while opening encoder")
            pattern = args[-1]
            # Written out of order on purpose; listing must still be temporal.
            for index in reversed(range(self.segment_count)):
                Path(pattern % index).write_bytes(b"segment %d" % index)
            return ProcessResult(args, 0, "", "")

        if "concat" in args:
            manifest = Path(args[args.index("-i") + 1])
            self.manifests.append(manifest.read_text(encoding="utf-8"))
            if self.concat_returncode:
                return ProcessResult(args, self.concat_returncode, "", "Non-monotonous DTS in output stream")
            Path(args[-1]).write_bytes(b"stitched video")
            return ProcessResult(args, 0, "", "")

        raise AssertionError(f"Unexpected command: {args}")


@pytest.fixture
def workspace(tmp_path) -> Workspace:
    ws = Workspace(
        uploads_dir=tmp_path / "uploads",
        chunks_dir=tmp_path / "chunks",
        output_dir=tmp_path / "output",
    )
    ws.ensure()
    return ws


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def mock_remote(monkeypatch):
    """
    Factory fixture that serves remote URLs from a dict of ``url -> bytes | status code``.

    Usage:
        def test_something(mock_remote):
            requested = mock_remote({"https://cdn.example.com/a.mp4": b"..."})
    """

    def _install(routes: dict) -> list[str]:
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            requested.append(url)
            body = routes.get(url, 404)
            if isinstance(body, int):
                return httpx.Response(body)
            return httpx.Response(200, content=body)

        def _client(follow_redirects: bool = True, **kwargs):
            return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=follow_redirects)

        monkeypatch.setattr("chunkflow.utils.http_utils.create_httpx_client", _client)
        return requested

    return _install
