"""
Resolution of video references into local files.

A reference is a remote URL, an inline base64 payload or a path that already
exists on this host. Remote and inline references are materialized into the
uploads directory and flagged for cleanup; local paths are used as-is and
never deleted.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import aiofiles

from chunkflow.configs import settings
from chunkflow.const import REMOTE_REFERENCE_PREFIXES
from chunkflow.exceptions import NotFoundError, ValidationError
from chunkflow.utils import http_utils
from chunkflow.utils.base64_utils import decode_base64_payload, is_data_uri
from chunkflow.utils.workspace import Workspace, remove_quietly

logger = logging.getLogger(__name__)


class ReferenceKind(str, Enum):
    REMOTE = "remote"
    INLINE = "inline"
    LOCAL = "local"


@dataclass
class MediaSource:
    reference: str
    path: Path
    kind: ReferenceKind

    @property
    def cleanup(self) -> bool:
        """Only files this service materialized are deleted."""
        return self.kind is not ReferenceKind.LOCAL

    async def release(self) -> None:
        if self.cleanup:
            await remove_quietly(self.path)


def is_remote_reference(reference: str) -> bool:
    return reference.startswith(REMOTE_REFERENCE_PREFIXES)


def classify_reference(reference: str, encoding: Optional[str] = None, allow_inline: bool = True) -> ReferenceKind:
    """
    Decide how a video reference should be materialized.

    Args:
        reference (str): URL, inline payload or local path.
        encoding (str, optional): Explicit payload marker; ``"base64"`` forces inline decoding.
        allow_inline (bool): Whether inline payloads are accepted at all.

    Returns:
        ReferenceKind: How to resolve the reference.
    """
    if is_remote_reference(reference):
        return ReferenceKind.REMOTE

    if allow_inline:
        if encoding == "base64" or is_data_uri(reference):
            return ReferenceKind.INLINE
        if settings.inline_length_heuristic and len(reference) > settings.inline_length_threshold:
            logger.warning(
                f"Treating a {len(reference)} character reference without a data: prefix as base64 payload. "
                "This length heuristic is deprecated; send videoEncoding='base64' or a data URI instead."
            )
            return ReferenceKind.INLINE

    return ReferenceKind.LOCAL


async def write_inline_payload(payload: str, destination: Path) -> int:
    try:
        data = decode_base64_payload(payload)
    except ValueError as e:
        raise ValidationError(f"Invalid base64 video payload: {e}")

    async with aiofiles.open(destination, "wb") as f:
        await f.write(data)
    return len(data)


async def resolve_source(
    reference: str,
    workspace: Workspace,
    request_id: str,
    role: str = "input",
    encoding: Optional[str] = None,
    allow_inline: bool = True,
) -> MediaSource:
    """
    Produce a local file for a video reference.

    Args:
        reference (str): URL, inline payload or local path.
        workspace (Workspace): Directories of the service.
        request_id (str): Identifier used to name the scratch file.
        role (str): Tag placed in the scratch file name.
        encoding (str, optional): Explicit payload marker, see ``classify_reference``.
        allow_inline (bool): Whether inline payloads are accepted.

    Returns:
        MediaSource: The local file and whether it must be cleaned up.

    Raises:
        DownloadError: If a remote reference cannot be fetched.
        ValidationError: If an inline payload cannot be decoded.
        NotFoundError: If a local path does not exist.
    """
    kind = classify_reference(reference, encoding=encoding, allow_inline=allow_inline)

    if kind is ReferenceKind.REMOTE:
        destination = workspace.input_path(request_id, role)
        logger.info(f"Downloading video from {reference}")
        await http_utils.download_file(reference, destination)
        return MediaSource(reference=reference, path=destination, kind=kind)

    if kind is ReferenceKind.INLINE:
        destination = workspace.input_path(request_id, role)
        logger.info("Decoding inline base64 video payload")
        try:
            size = await write_inline_payload(reference, destination)
        except Exception:
            await remove_quietly(destination)
            raise
        logger.info(f"Wrote {size} bytes of inline video to {destination}")
        return MediaSource(reference="<inline>", path=destination, kind=kind)

    if not os.path.isfile(reference):
        raise NotFoundError(f"File not found: {reference}")
    return MediaSource(reference=reference, path=Path(reference), kind=kind)
