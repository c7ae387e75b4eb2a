"""Errors raised while loading media and capturing frames."""

from __future__ import annotations


class InvalidMedia(ValueError):
    """The media has no usable duration/dimensions or is not a video."""


class RenderSurfaceUnavailable(RuntimeError):
    """No raster surface (or decoder) is available to snapshot a frame."""


class SeekError(RuntimeError):
    """The player could not reach or decode the requested timestamp."""


class FrameCaptureError(RuntimeError):
    def __init__(self, timestamp: float, cause: BaseException | str) -> None:
        self.timestamp = timestamp
        self.cause = cause
        super().__init__(f"Failed to capture frame at {timestamp:.3f}s: {cause}")


class NoFramesExtracted(RuntimeError):
    def __init__(self, attempted: int) -> None:
        self.attempted = attempted
        super().__init__(
            f"Could not extract any frames from the video ({attempted} attempted). "
            "Please try a different video."
        )
