from fastapi import APIRouter, Depends, Request

from chunkflow.handlers import handle_chunk, handle_exceptions, handle_get_duration, handle_stitch
from chunkflow.schemas import ChunkRequest, DurationRequest, StitchRequest
from chunkflow.utils.process import ProcessRunner, get_process_runner
from chunkflow.utils.workspace import Workspace, get_workspace

media_router = APIRouter()


@media_router.post(
    "/get-duration",
    description="Get the duration, frame rate and expected chunk count of a video",
    response_description="Returns duration, fps, chunkSize and expectedChunks",
)
async def get_duration(
    params: DurationRequest,
    workspace: Workspace = Depends(get_workspace),
    runner: ProcessRunner = Depends(get_process_runner),
):
    try:
        return await handle_get_duration(params, workspace, runner)
    except Exception as e:
        return handle_exceptions(e)


@media_router.post(
    "/chunk",
    description="Split a video into keyframe-aligned chunks",
    response_description="Returns the chunk paths and URLs in playback order",
)
async def chunk(
    params: ChunkRequest,
    request: Request,
    workspace: Workspace = Depends(get_workspace),
    runner: ProcessRunner = Depends(get_process_runner),
):
    try:
        return await handle_chunk(params, request, workspace, runner)
    except Exception as e:
        return handle_exceptions(e)


@media_router.post(
    "/stitch",
    description="Combine chunks back together",
    response_description="Returns the stitched file path and download URL",
)
async def stitch(
    params: StitchRequest,
    request: Request,
    workspace: Workspace = Depends(get_workspace),
    runner: ProcessRunner = Depends(get_process_runner),
):
    try:
        return await handle_stitch(params, request, workspace, runner)
    except Exception as e:
        return handle_exceptions(e)


@media_router.post(
    "/stitch-base64",
    description="Combine chunks and return the result as a base64 data URI",
    response_description="Returns the stitched video as a data URI and its size in bytes",
)
async def stitch_base64(
    params: StitchRequest,
    request: Request,
    workspace: Workspace = Depends(get_workspace),
    runner: ProcessRunner = Depends(get_process_runner),
):
    try:
        return await handle_stitch(params, request, workspace, runner, inline=True)
    except Exception as e:
        return handle_exceptions(e)
