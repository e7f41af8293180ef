"""
Lossless reassembly of segments with ffmpeg's concat demuxer.

Segment order is the caller's array order, never the filesystem's: the
manifest is written exactly in that order and ffmpeg copies the streams
without re-encoding.
"""

import logging
import os
from pathlib import Path
from typing import Sequence

import aiofiles

from chunkflow.configs import settings
from chunkflow.exceptions import SegmentNotFoundError, StitchError
from chunkflow.media.source import MediaSource, ReferenceKind, is_remote_reference
from chunkflow.utils import http_utils
from chunkflow.utils.base64_utils import encode_data_uri
from chunkflow.utils.process import ProcessRunner
from chunkflow.utils.workspace import Workspace, remove_quietly

logger = logging.getLogger(__name__)


async def release_all(sources: Sequence[MediaSource]) -> None:
    for source in sources:
        await source.release()


async def resolve_segments(references: Sequence[str], workspace: Workspace, request_id: str) -> list[MediaSource]:
    """
    Materialize segment references in order.

    Remote references are downloaded to ``temp_chunk_<id>_<index>``; local ones
    must exist. If any reference fails, the temp chunks downloaded so far are
    removed before the error propagates.

    Raises:
        SegmentNotFoundError: If a local reference does not exist.
        DownloadError: If a remote reference cannot be fetched.
    """
    resolved: list[MediaSource] = []
    try:
        for index, reference in enumerate(references):
            if is_remote_reference(reference):
                logger.info(f"Downloading chunk {index + 1}/{len(references)}...")
                destination = workspace.temp_chunk_path(request_id, index)
                await http_utils.download_file(reference, destination)
                resolved.append(MediaSource(reference=reference, path=destination, kind=ReferenceKind.REMOTE))
            elif os.path.isfile(reference):
                resolved.append(MediaSource(reference=reference, path=Path(reference), kind=ReferenceKind.LOCAL))
            else:
                raise SegmentNotFoundError(reference)
    except Exception:
        await release_all(resolved)
        raise
    return resolved


def escape_concat_path(path: Path) -> str:
    """Quote a path for an ffconcat ``file`` directive."""
    return "'" + Path(path).resolve().as_posix().replace("'", "'\\''") + "'"


def build_manifest(paths: Sequence[Path]) -> str:
    return "".join(f"file {escape_concat_path(path)}\n" for path in paths)


async def write_manifest(paths: Sequence[Path], manifest_path: Path) -> None:
    async with aiofiles.open(manifest_path, "w", encoding="utf-8") as f:
        await f.write(build_manifest(paths))


def build_concat_command(manifest_path: Path, output_path: Path) -> list[str]:
    return [
        settings.ffmpeg_path,
        "-f",
        "concat",
        "-safe",
        "0",
        "-i",
        str(manifest_path),
        "-c",
        "copy",
        str(output_path),
    ]


async def stitch_segments(
    references: Sequence[str],
    workspace: Workspace,
    request_id: str,
    runner: ProcessRunner,
) -> Path:
    """
    Concatenate segments, in the given order, into a single output file.

    The manifest and every downloaded temp chunk are removed after ffmpeg exits,
    whether it succeeded or not. A partial output is removed when ffmpeg fails,
    times out or cannot be launched.

    Returns:
        Path: The stitched file inside the output directory.

    Raises:
        SegmentNotFoundError: If a local reference does not exist.
        DownloadError: If a remote reference cannot be fetched.
        StitchError: If ffmpeg exits with a non-zero status.
        ProcessTimeoutError: If ffmpeg runs past the process timeout.
    """
    sources = await resolve_segments(references, workspace, request_id)
    manifest_path = workspace.manifest_path(request_id)
    output_path = workspace.output_path(request_id)

    try:
        await write_manifest([source.path for source in sources], manifest_path)
        logger.info(f"Stitching {len(sources)} chunks into {output_path}")
        result = await runner.run(build_concat_command(manifest_path, output_path))
    except Exception:
        await remove_quietly(output_path)
        raise
    finally:
        await remove_quietly(manifest_path)
        await release_all(sources)

    if not result.ok:
        logger.error(f"FFmpeg stitching failed: {result.stderr}")
        await remove_quietly(output_path)
        raise StitchError("Stitching failed", details=result.stderr)

    logger.info(f"Stitched: {output_path}")
    return output_path


async def encode_output_inline(output_path: Path) -> tuple[str, int]:
    """
    Read a stitched file into a base64 data URI and delete it.

    The whole file is held in memory and the encoded payload is a third larger
    than the file, so response size grows with the output.

    Returns:
        tuple[str, int]: The data URI and the size of the raw file in bytes.
    """
    try:
        async with aiofiles.open(output_path, "rb") as f:
            data = await f.read()
    finally:
        await remove_quietly(output_path)
    return encode_data_uri(data), len(data)
