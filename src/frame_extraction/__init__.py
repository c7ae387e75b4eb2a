"""Package for extracting still frames from product videos."""

from .capture import capture_at
from .errors import FrameCaptureError, InvalidMedia, NoFramesExtracted, RenderSurfaceUnavailable, SeekError
from .extractor import extract_frames
from .models import EncodedImage, ExtractionRequest, Frame, MediaInfo, TimestampPolicy, VideoSource
from .player import FfmpegPlayer, MediaPlayer
from .timestamps import compute_timestamps

__all__ = [
    "capture_at",
    "compute_timestamps",
    "extract_frames",
    "EncodedImage",
    "ExtractionRequest",
    "FfmpegPlayer",
    "Frame",
    "FrameCaptureError",
    "InvalidMedia",
    "MediaInfo",
    "MediaPlayer",
    "NoFramesExtracted",
    "RenderSurfaceUnavailable",
    "SeekError",
    "TimestampPolicy",
    "VideoSource",
]
