import logging
from typing import Union

from fastapi import Request
from fastapi.responses import JSONResponse

from .exceptions import ChunkflowError, DownloadError, ValidationError
from .media.planner import build_plan, expected_chunk_count
from .media.probe import detect_frame_rate, probe_duration
from .media.segmenter import segment_video
from .media.source import resolve_source
from .media.stitcher import encode_output_inline, stitch_segments
from .schemas import ChunkRequest, DurationRequest, StitchRequest
from .utils.process import ProcessRunner
from .utils.workspace import Workspace, new_request_id, request_timestamp

logger = logging.getLogger(__name__)


def handle_exceptions(exception: Exception) -> JSONResponse:
    """
    Handle exceptions and return appropriate JSON responses.

    Args:
        exception (Exception): The exception that was raised.

    Returns:
        JSONResponse: An error payload with the status code matching the exception type.
    """
    if isinstance(exception, DownloadError):
        logger.error(f"Error downloading content: {exception}")
        content = exception.to_dict()
        content["upstreamStatus"] = exception.upstream_status
        return JSONResponse(status_code=exception.status_code, content=content)
    elif isinstance(exception, ChunkflowError):
        if exception.status_code >= 500:
            logger.error(f"Request failed: {exception}")
        else:
            logger.info(f"Rejected request: {exception}")
        return JSONResponse(status_code=exception.status_code, content=exception.to_dict())
    else:
        logger.exception(f"Internal server error while handling request: {exception}")
        return JSONResponse(status_code=500, content={"success": False, "error": str(exception)})


def compact_number(value: float) -> Union[int, float]:
    """Echo whole numbers back as integers (5 rather than 5.0)."""
    return int(value) if float(value).is_integer() else value


async def handle_get_duration(params: DurationRequest, workspace: Workspace, runner: ProcessRunner) -> dict:
    """
    Report duration, frame rate and the number of chunks a video would be split into.

    Args:
        params (DurationRequest): The video reference and chunk size.
        workspace (Workspace): Service directories.
        runner (ProcessRunner): Runner for ffprobe.

    Returns:
        dict: duration, fps, chunkSize and expectedChunks.
    """
    if not params.video:
        raise ValidationError("video parameter required (URL or path)")

    request_id = new_request_id()
    source = await resolve_source(params.video, workspace, request_id, role="duration_check", allow_inline=False)
    try:
        duration = await probe_duration(source.path, runner)
        fps = await detect_frame_rate(source.path, runner)
    finally:
        await source.release()

    expected_chunks = expected_chunk_count(duration, params.chunk_size)
    logger.info(f"Duration: {duration:.2f}s, Expected chunks: {expected_chunks}")
    return {
        "success": True,
        "duration": duration,
        "fps": fps,
        "chunkSize": compact_number(params.chunk_size),
        "expectedChunks": expected_chunks,
    }


async def handle_chunk(params: ChunkRequest, request: Request, workspace: Workspace, runner: ProcessRunner) -> dict:
    """
    Split a video into keyframe-aligned chunks.

    Args:
        params (ChunkRequest): The video reference, chunk size and optional encoding marker.
        request (Request): The incoming request, used to build absolute chunk URLs.
        workspace (Workspace): Service directories.
        runner (ProcessRunner): Runner for ffprobe and ffmpeg.

    Returns:
        dict: The chunk paths and URLs in temporal order, with the fps and GOP size used.
    """
    if not params.video:
        raise ValidationError("video parameter required (URL or base64)")

    request_id = new_request_id()
    source = await resolve_source(params.video, workspace, request_id, encoding=params.video_encoding)
    try:
        fps = await detect_frame_rate(source.path, runner)
        plan = build_plan(params.chunk_size, fps)
    except Exception:
        await source.release()
        raise

    segments = await segment_video(source, plan, workspace, request_id, runner)
    return {
        "success": True,
        "count": len(segments),
        "chunks": [str(path) for path in segments],
        "chunkUrls": [str(request.url_for("chunks", path=path.name)) for path in segments],
        "fps": plan.fps,
        "gopSize": plan.gop_size,
        "timestamp": request_timestamp(request_id),
        "requestId": request_id,
    }


async def handle_stitch(
    params: StitchRequest, request: Request, workspace: Workspace, runner: ProcessRunner, inline: bool = False
) -> dict:
    """
    Concatenate chunks, in the given order, into one file.

    Args:
        params (StitchRequest): Ordered chunk references.
        request (Request): The incoming request, used to build the download URL.
        workspace (Workspace): Service directories.
        runner (ProcessRunner): Runner for ffmpeg.
        inline (bool): Return the file as a base64 data URI and delete it instead of keeping it on disk.

    Returns:
        dict: Either output/downloadUrl or base64/size.
    """
    if not params.chunks:
        raise ValidationError("chunks array required")

    request_id = new_request_id()
    output_path = await stitch_segments(params.chunks, workspace, request_id, runner)

    if inline:
        data_uri, size = await encode_output_inline(output_path)
        logger.info(f"Stitched {len(params.chunks)} chunks to base64 ({size} bytes)")
        return {"success": True, "base64": data_uri, "size": size}

    return {
        "success": True,
        "output": str(output_path),
        "downloadUrl": str(request.url_for("output", path=output_path.name)),
        "timestamp": request_timestamp(request_id),
        "requestId": request_id,
    }
