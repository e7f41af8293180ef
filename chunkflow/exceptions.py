from typing import Optional


class ChunkflowError(Exception):
    """Base exception for all request-level failures."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict:
        content = {"success": False, "error": self.message}
        if self.details:
            content["details"] = self.details
        return content


class ValidationError(ChunkflowError):
    """Missing or malformed request fields."""

    status_code = 400


class InvalidParameterError(ValidationError):
    """Parameters that would make the external tool run with a meaningless configuration."""


class NotFoundError(ChunkflowError):
    """A caller-supplied local file does not exist."""

    status_code = 400


class SegmentNotFoundError(NotFoundError):
    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Chunk not found: {reference}")


class DownloadError(ChunkflowError):
    """Fetching a remote video or chunk failed.

    ``upstream_status`` keeps the remote status code (or the synthetic one used for
    timeouts and transport errors); the request itself always fails with 500.
    """

    def __init__(self, upstream_status: int, message: str):
        self.upstream_status = upstream_status
        super().__init__(message)


class ProbeError(ChunkflowError):
    pass


class SegmentationError(ChunkflowError):
    pass


class StitchError(ChunkflowError):
    pass


class ProcessLaunchError(ChunkflowError):
    pass


class ProcessTimeoutError(ChunkflowError):
    status_code = 504
