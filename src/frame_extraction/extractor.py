"""Best-effort extraction of representative frames from a video."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List

from .capture import capture_at
from .errors import FrameCaptureError, NoFramesExtracted, RenderSurfaceUnavailable
from .models import ExtractionRequest, Frame, VideoSource
from .player import FfmpegPlayer, MediaPlayer
from .timestamps import compute_timestamps


logger = logging.getLogger(__name__)

PlayerFactory = Callable[[Path], MediaPlayer]


async def extract_frames(
    source: VideoSource,
    request: ExtractionRequest | None = None,
    *,
    player_factory: PlayerFactory = FfmpegPlayer,
) -> List[Frame]:
    """Capture up to ``request.frame_count`` frames from ``source``.

    Captures run one after another in increasing time order since the player
    has a single playback position. Individual failures are skipped; only an
    empty result is an error. The source's temporary handle is released on
    every exit path.
    """

    request = request or ExtractionRequest()
    handle = source.acquire_handle()
    player: MediaPlayer | None = None
    try:
        player = player_factory(handle)
        info = await player.load()
        source.info = info
        timestamps = compute_timestamps(info.duration, request)
        logger.info(
            "Extracting %d frame(s) from %s (duration=%.2fs, %dx%d)",
            len(timestamps),
            source.name,
            info.duration,
            info.width,
            info.height,
        )

        frames: List[Frame] = []
        for index, ts in enumerate(timestamps):
            try:
                frame = await capture_at(player, ts, index=index)
            except (FrameCaptureError, RenderSurfaceUnavailable) as exc:
                logger.warning("Skipping frame %d at %.3fs: %s", index, ts, exc)
                continue
            frames.append(frame)

        if not frames:
            raise NoFramesExtracted(attempted=len(timestamps))
        return frames
    finally:
        if player is not None:
            await player.close()
        source.release_handle(handle)


__all__ = ["extract_frames", "PlayerFactory"]
