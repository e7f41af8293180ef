import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import aiofiles.os

from chunkflow.configs import settings
from chunkflow.const import MEDIA_EXTENSION

logger = logging.getLogger(__name__)


def new_request_id() -> str:
    """
    Generate the identifier that namespaces every file created by one request.

    The millisecond timestamp keeps names sortable; the random suffix makes two
    requests landing in the same millisecond distinct.
    """
    return f"{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def request_timestamp(request_id: str) -> int:
    """Return the millisecond timestamp embedded in a request id."""
    return int(request_id.split("_", 1)[0])


@dataclass(frozen=True)
class Workspace:
    """The scratch, segment and output directories used by the service."""

    uploads_dir: Path
    chunks_dir: Path
    output_dir: Path

    @classmethod
    def from_settings(cls) -> "Workspace":
        return cls(
            uploads_dir=Path(settings.uploads_dir),
            chunks_dir=Path(settings.chunks_dir),
            output_dir=Path(settings.output_dir),
        )

    def ensure(self) -> None:
        for directory in (self.uploads_dir, self.chunks_dir, self.output_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def input_path(self, request_id: str, role: str = "input") -> Path:
        return self.uploads_dir / f"{role}_{request_id}{MEDIA_EXTENSION}"

    def temp_chunk_path(self, request_id: str, index: int) -> Path:
        return self.uploads_dir / f"temp_chunk_{request_id}_{index}{MEDIA_EXTENSION}"

    def manifest_path(self, request_id: str) -> Path:
        return self.uploads_dir / f"filelist_{request_id}.txt"

    def segment_prefix(self, request_id: str) -> str:
        return f"chunk_{request_id}_"

    def segment_pattern(self, request_id: str) -> Path:
        return self.chunks_dir / f"{self.segment_prefix(request_id)}%0{settings.segment_index_width}d{MEDIA_EXTENSION}"

    def output_path(self, request_id: str) -> Path:
        return self.output_dir / f"stitched_{request_id}{MEDIA_EXTENSION}"


async def remove_quietly(path: Union[str, Path]) -> None:
    """Best-effort removal of a scratch file; failures are logged, never raised."""
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Failed to remove scratch file {path}: {e}")


def get_workspace() -> Workspace:
    return Workspace.from_settings()
