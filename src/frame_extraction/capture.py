"""Seek-and-capture of a single frame."""

from __future__ import annotations

import logging

from PIL import Image

from .errors import FrameCaptureError, InvalidMedia, RenderSurfaceUnavailable, SeekError
from .models import JPEG_QUALITY, EncodedImage, Frame
from .player import MediaPlayer


logger = logging.getLogger(__name__)


def clamp_timestamp(timestamp: float, duration: float, frame_interval: float) -> float:
    """Keep seeks at least one frame interval away from end-of-stream."""

    if timestamp > duration - frame_interval:
        return max(0.0, duration - frame_interval)
    return timestamp


def _rasterize(frame: Image.Image, width: int, height: int) -> Image.Image:
    try:
        surface = Image.new("RGB", (width, height))
    except (ValueError, MemoryError) as exc:
        raise RenderSurfaceUnavailable(f"Could not create a {width}x{height} raster surface: {exc}") from exc
    if frame.mode != "RGB":
        frame = frame.convert("RGB")
    if frame.size != (width, height):
        frame = frame.resize((width, height), Image.Resampling.LANCZOS)
    surface.paste(frame, (0, 0))
    return surface


async def capture_at(
    player: MediaPlayer,
    timestamp: float,
    *,
    index: int,
    quality: int = JPEG_QUALITY,
) -> Frame:
    """Seek ``player`` to ``timestamp`` and snapshot the displayed frame as JPEG.

    The player's playback position is mutated; callers must not run two
    captures against the same player at once.
    """

    info = player.info
    if info is None:
        raise InvalidMedia("Media metadata has not been loaded.")
    if not 0 <= timestamp < info.duration:
        raise ValueError(f"timestamp {timestamp} outside [0, {info.duration})")

    target = clamp_timestamp(timestamp, info.duration, info.frame_interval)
    try:
        await player.seek(target)
    except SeekError as exc:
        raise FrameCaptureError(timestamp, exc) from exc

    displayed = player.current_frame()
    if displayed is None:
        raise RenderSurfaceUnavailable(f"No frame is displayed after seeking to {target:.3f}s")

    surface = _rasterize(displayed, info.width, info.height)
    image = EncodedImage.from_pil(surface, fmt="JPEG", quality=quality)
    logger.debug("Captured frame %d at %.3fs (%dx%d)", index, timestamp, info.width, info.height)
    return Frame(index=index, timestamp=timestamp, image=image, width=info.width, height=info.height)


__all__ = ["capture_at", "clamp_timestamp"]
