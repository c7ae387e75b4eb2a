"""Seekable media player backed by ffprobe/ffmpeg subprocesses."""

from __future__ import annotations

import asyncio
import io
import json
import logging
import math
import os
import shutil
from pathlib import Path
from typing import Any, Dict, Protocol

from PIL import Image

from .errors import InvalidMedia, RenderSurfaceUnavailable, SeekError
from .models import DEFAULT_FPS, MediaInfo


logger = logging.getLogger(__name__)

FFMPEG_BIN = os.environ.get("VIDSTORE_FFMPEG", "ffmpeg")
FFPROBE_BIN = os.environ.get("VIDSTORE_FFPROBE", "ffprobe")


class MediaPlayer(Protocol):
    """What the capture unit needs from the media runtime.

    A player owns a single playback position: ``seek`` moves it and
    ``current_frame`` returns the picture displayed there.
    """

    info: MediaInfo | None

    async def load(self) -> MediaInfo: ...

    async def seek(self, timestamp: float) -> None: ...

    def current_frame(self) -> Image.Image | None: ...

    async def close(self) -> None: ...


def _parse_rate(rate: str | None) -> float:
    if not rate or rate in ("0/0", "N/A"):
        return DEFAULT_FPS
    num, _, den = rate.partition("/")
    try:
        value = float(num) / float(den or 1)
    except (ValueError, ZeroDivisionError):
        return DEFAULT_FPS
    return value if math.isfinite(value) and value > 0 else DEFAULT_FPS


def _rotation(stream: Dict[str, Any]) -> float:
    """Display rotation in degrees from the display matrix side data or the legacy ``rotate`` tag."""

    for side_data in stream.get("side_data_list") or []:
        if "rotation" in side_data:
            try:
                return float(side_data["rotation"])
            except (TypeError, ValueError):
                break
    try:
        return float((stream.get("tags") or {}).get("rotate") or 0)
    except (TypeError, ValueError):
        return 0.0


def parse_probe_output(payload: Dict[str, Any]) -> MediaInfo:
    """Turn ffprobe's JSON into :class:`MediaInfo`.

    ffmpeg auto-rotates on decode, so dimensions are reported as displayed:
    a quarter-turn rotation swaps width and height.
    """

    streams = payload.get("streams") or []
    if not streams:
        raise InvalidMedia("No video stream found.")
    stream = streams[0]
    fmt = payload.get("format") or {}

    raw_duration = stream.get("duration") or fmt.get("duration")
    try:
        duration = float(raw_duration)
    except (TypeError, ValueError):
        raise InvalidMedia(f"Video has no usable duration ({raw_duration!r}).") from None
    if not math.isfinite(duration) or duration <= 0:
        raise InvalidMedia(f"Video has no usable duration ({duration!r}).")

    width = int(stream.get("width") or 0)
    height = int(stream.get("height") or 0)
    if width <= 0 or height <= 0:
        raise InvalidMedia(f"Video has no usable dimensions ({width}x{height}).")
    if round(abs(_rotation(stream))) % 180 == 90:
        width, height = height, width

    return MediaInfo(
        duration=duration,
        width=width,
        height=height,
        fps=_parse_rate(stream.get("avg_frame_rate") or stream.get("r_frame_rate")),
    )


async def _run(cmd: list[str]) -> tuple[int, bytes, bytes]:
    if shutil.which(cmd[0]) is None:
        raise RenderSurfaceUnavailable(f"{cmd[0]} is not installed or not on PATH.")
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    out, err = await process.communicate()
    return process.returncode, out, err


class FfmpegPlayer:
    """Plays a local file by decoding single frames on demand.

    Seeking decodes the frame at the target position and keeps it as the
    "displayed" picture until the next seek.
    """

    def __init__(self, path: Path | str, *, ffmpeg: str | None = None, ffprobe: str | None = None) -> None:
        self.path = Path(path)
        self.ffmpeg = ffmpeg or FFMPEG_BIN
        self.ffprobe = ffprobe or FFPROBE_BIN
        self.info: MediaInfo | None = None
        self.position = 0.0
        self._frame: Image.Image | None = None

    async def load(self) -> MediaInfo:
        cmd = [
            self.ffprobe,
            "-v",
            "error",
            "-select_streams",
            "v:0",
            "-show_entries",
            "stream=width,height,avg_frame_rate,r_frame_rate,duration:stream_side_data=rotation:stream_tags=rotate:format=duration",
            "-of",
            "json",
            str(self.path),
        ]
        code, out, err = await _run(cmd)
        if code != 0:
            raise InvalidMedia(f"Failed to load video metadata: {err.decode(errors='replace').strip()}")
        try:
            payload = json.loads(out.decode("utf-8") or "{}")
        except json.JSONDecodeError as exc:
            raise InvalidMedia(f"Unreadable ffprobe output: {exc}") from exc
        self.info = parse_probe_output(payload)
        logger.debug("Loaded %s: %s", self.path.name, self.info)
        return self.info

    async def seek(self, timestamp: float) -> None:
        ts_str = f"{timestamp:.3f}"
        cmd = [
            self.ffmpeg,
            "-v",
            "error",
            "-ss",
            ts_str,
            "-i",
            str(self.path),
            "-frames:v",
            "1",
            "-f",
            "image2pipe",
            "-vcodec",
            "png",
            "-",
        ]
        self.position = timestamp
        self._frame = None
        code, out, err = await _run(cmd)
        if code != 0:
            raise SeekError(f"ffmpeg exited with {code}: {err.decode(errors='replace').strip()}")
        if not out:
            # ffmpeg exits cleanly with no output when seeking past the last frame.
            raise SeekError(f"No frame decoded at {ts_str}s")
        try:
            frame = Image.open(io.BytesIO(out))
            frame.load()
        except OSError as exc:
            raise SeekError(f"Undecodable frame at {ts_str}s: {exc}") from exc
        self._frame = frame

    def current_frame(self) -> Image.Image | None:
        return self._frame

    async def close(self) -> None:
        self._frame = None


__all__ = ["FfmpegPlayer", "MediaPlayer", "parse_probe_output", "FFMPEG_BIN", "FFPROBE_BIN"]
