import math
from dataclasses import dataclass

from chunkflow.exceptions import InvalidParameterError


def format_seconds(value: float) -> str:
    """Render a duration for the command line without a trailing ``.0``."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def plan_gop_size(segment_seconds: float, fps: int) -> int:
    """
    Number of frames between forced keyframes: ``floor(segment_seconds * fps)``.

    Raises:
        InvalidParameterError: If an input is not positive or the result is below one frame.
    """
    if segment_seconds <= 0:
        raise InvalidParameterError(f"chunkSize must be positive, got {segment_seconds}")
    if fps <= 0:
        raise InvalidParameterError(f"Frame rate must be positive, got {fps}")

    gop_size = math.floor(segment_seconds * fps)
    if gop_size < 1:
        raise InvalidParameterError(
            f"chunkSize {format_seconds(segment_seconds)}s is shorter than one frame at {fps}fps"
        )
    return gop_size


def expected_chunk_count(duration: float, segment_seconds: float) -> int:
    if segment_seconds <= 0:
        raise InvalidParameterError(f"chunkSize must be positive, got {segment_seconds}")
    return math.ceil(duration / segment_seconds)


@dataclass(frozen=True)
class SegmentationPlan:
    fps: int
    gop_size: int
    segment_seconds: float

    @property
    def segment_time(self) -> str:
        return format_seconds(self.segment_seconds)

    @property
    def force_key_frames(self) -> str:
        return f"expr:gte(t,n_forced*{self.segment_time})"


def build_plan(segment_seconds: float, fps: int) -> SegmentationPlan:
    return SegmentationPlan(fps=fps, gop_size=plan_gop_size(segment_seconds, fps), segment_seconds=segment_seconds)
