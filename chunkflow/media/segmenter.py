"""
Keyframe-aligned segmentation through ffmpeg's segment muxer.

The video is re-encoded with a keyframe forced every ``segment_seconds`` so
that every segment starts on a keyframe and can later be concatenated with
stream copy. Segment numbers are zero-padded, which is what makes the
lexicographic listing in ``list_segments`` equal to temporal order.
"""

import logging
import os
from pathlib import Path

from chunkflow.configs import settings
from chunkflow.exceptions import SegmentationError
from chunkflow.media.planner import SegmentationPlan
from chunkflow.media.source import MediaSource
from chunkflow.utils.process import ProcessRunner
from chunkflow.utils.workspace import Workspace

logger = logging.getLogger(__name__)


def build_segment_command(input_path: Path, output_pattern: Path, plan: SegmentationPlan) -> list[str]:
    gop_size = str(plan.gop_size)
    return [
        settings.ffmpeg_path,
        "-i",
        str(input_path),
        "-c:v",
        settings.video_codec,
        "-preset",
        settings.video_preset,
        "-g",
        gop_size,
        "-keyint_min",
        gop_size,
        "-force_key_frames",
        plan.force_key_frames,
        "-sc_threshold",
        "0",
        "-c:a",
        settings.audio_codec,
        "-b:a",
        settings.audio_bitrate,
        "-ar",
        str(settings.audio_sample_rate),
        "-f",
        "segment",
        "-segment_time",
        plan.segment_time,
        "-segment_start_number",
        "0",
        "-break_non_keyframes",
        "1",
        "-reset_timestamps",
        "1",
        "-avoid_negative_ts",
        "make_zero",
        str(output_pattern),
    ]


def list_segments(workspace: Workspace, request_id: str) -> list[Path]:
    """Segments produced for a request, in temporal order."""
    prefix = workspace.segment_prefix(request_id)
    names = sorted(name for name in os.listdir(workspace.chunks_dir) if name.startswith(prefix))
    return [workspace.chunks_dir / name for name in names]


async def segment_video(
    source: MediaSource,
    plan: SegmentationPlan,
    workspace: Workspace,
    request_id: str,
    runner: ProcessRunner,
) -> list[Path]:
    """
    Split ``source`` into segments of ``plan.segment_seconds``.

    The scratch input is released once ffmpeg exits, whatever the outcome.
    Segments written before a failure are left in place.

    Raises:
        SegmentationError: If ffmpeg exits with a non-zero status.
    """
    command = build_segment_command(source.path, workspace.segment_pattern(request_id), plan)
    logger.info(f"Segmenting {source.path}: GOP {plan.gop_size} frames ({plan.fps}fps x {plan.segment_time}s)")

    try:
        result = await runner.run(command)
    finally:
        await source.release()

    if not result.ok:
        logger.error(f"FFmpeg segmenting failed: {result.stderr}")
        raise SegmentationError("Chunking failed", details=result.stderr)

    segments = list_segments(workspace, request_id)
    logger.info(f"Created {len(segments)} chunks for request {request_id}")
    return segments
