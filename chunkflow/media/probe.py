import logging
import math
from pathlib import Path

from chunkflow.configs import settings
from chunkflow.exceptions import ChunkflowError, ProbeError
from chunkflow.utils.process import ProcessRunner

logger = logging.getLogger(__name__)


def build_frame_rate_command(path: Path) -> list[str]:
    return [
        settings.ffprobe_path,
        "-v",
        "error",
        "-select_streams",
        "v:0",
        "-show_entries",
        "stream=r_frame_rate",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(path),
    ]


def build_duration_command(path: Path) -> list[str]:
    return [
        settings.ffprobe_path,
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(path),
    ]


def parse_frame_rate(text: str) -> int:
    """
    Parse an ffprobe frame rate rational such as ``30000/1001``.

    Args:
        text (str): ``numerator/denominator`` or a bare number.

    Returns:
        int: The frame rate rounded to the nearest whole frame per second.

    Raises:
        ValueError: If the text is empty, malformed, has a zero denominator or is not positive.
    """
    value = text.strip().splitlines()[0].strip() if text.strip() else ""
    if not value:
        raise ValueError("empty frame rate")

    numerator, _, denominator = value.partition("/")
    try:
        # Halves round up, e.g. 47/2 -> 24.
        rounded = math.floor(float(numerator) / float(denominator or 1) + 0.5)
    except (ZeroDivisionError, OverflowError, ValueError) as e:
        raise ValueError(f"invalid frame rate: {value}") from e
    if rounded <= 0:
        raise ValueError(f"non-positive frame rate: {value}")
    return rounded


def parse_duration(text: str) -> float:
    value = text.strip()
    duration = float(value)
    if duration < 0 or duration != duration:
        raise ValueError(f"invalid duration: {value}")
    return duration


async def detect_frame_rate(path: Path, runner: ProcessRunner) -> int:
    """
    Detect the frame rate of the first video stream.

    Probing is best effort: any failure falls back to ``settings.default_fps``.
    """
    try:
        result = await runner.run(build_frame_rate_command(path), timeout=settings.probe_timeout)
        if not result.ok:
            raise ValueError(result.stderr.strip() or f"ffprobe exited with {result.returncode}")
        fps = parse_frame_rate(result.stdout)
    except (ChunkflowError, ValueError) as e:
        logger.warning(f"Could not detect framerate of {path} ({e}), defaulting to {settings.default_fps}fps")
        return settings.default_fps

    logger.info(f"Detected framerate: {fps} fps ({result.stdout.strip()})")
    return fps


async def probe_duration(path: Path, runner: ProcessRunner) -> float:
    """
    Read the container duration of a media file in seconds.

    Raises:
        ProbeError: If ffprobe fails or reports no usable duration.
    """
    result = await runner.run(build_duration_command(path), timeout=settings.probe_timeout)
    if not result.ok:
        logger.error(f"ffprobe failed on {path}: {result.stderr}")
        raise ProbeError("Failed to read video duration", details=result.stderr)

    try:
        return parse_duration(result.stdout)
    except ValueError:
        raise ProbeError(f"ffprobe reported no usable duration: {result.stdout.strip()!r}", details=result.stderr)
