"""Value types shared by the extraction pipeline and the generation gateway."""

from __future__ import annotations

import base64
import enum
import io
import math
import mimetypes
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from PIL import Image

from .errors import InvalidMedia


DEFAULT_FPS = 30.0
JPEG_QUALITY = 80

_IMAGE_EXTENSIONS = {"image/jpeg": ".jpg", "image/png": ".png", "image/webp": ".webp"}


@dataclass(frozen=True)
class EncodedImage:
    """A compressed image buffer plus its media type."""

    data: bytes
    mime_type: str = "image/jpeg"

    @classmethod
    def from_pil(cls, image: Image.Image, *, fmt: str = "JPEG", quality: int = JPEG_QUALITY) -> "EncodedImage":
        if fmt.upper() == "JPEG" and image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        buf = io.BytesIO()
        image.save(buf, format=fmt, quality=quality)
        return cls(data=buf.getvalue(), mime_type=f"image/{fmt.lower()}")

    @classmethod
    def from_data_url(cls, url: str) -> "EncodedImage":
        header, _, payload = url.partition(",")
        if not header.startswith("data:") or not payload:
            raise ValueError("Invalid image data URL provided.")
        mime_type = header[5:].split(";", 1)[0] or "image/jpeg"
        return cls(data=base64.b64decode(payload), mime_type=mime_type)

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"

    def to_pil(self) -> Image.Image:
        return Image.open(io.BytesIO(self.data))

    @property
    def size(self) -> tuple[int, int]:
        with self.to_pil() as img:
            return img.size

    @property
    def extension(self) -> str:
        return _IMAGE_EXTENSIONS.get(self.mime_type) or mimetypes.guess_extension(self.mime_type) or ".img"


@dataclass(frozen=True)
class MediaInfo:
    duration: float
    width: int
    height: int
    fps: float = DEFAULT_FPS

    @property
    def frame_interval(self) -> float:
        fps = self.fps if self.fps and math.isfinite(self.fps) and self.fps > 0 else DEFAULT_FPS
        return 1.0 / fps


@dataclass(frozen=True)
class Frame:
    """A still captured at ``timestamp`` seconds; ``index`` is its ordinal in the run."""

    index: int
    timestamp: float
    image: EncodedImage
    width: int
    height: int


class TimestampPolicy(str, enum.Enum):
    EVEN = "even"
    ANCHORS = "anchors"


MIN_FRAME_COUNT = 1
MAX_FRAME_COUNT = 12


@dataclass(frozen=True)
class ExtractionRequest:
    """Parameters for one extraction run.

    ``edge_margin`` is the fraction of the duration skipped at both ends by the
    even policy, ``seconds_per_frame`` caps the count on short clips and
    ``min_spacing`` is the de-duplication floor between two timestamps.
    """

    frame_count: int = 3
    policy: TimestampPolicy = TimestampPolicy.EVEN
    min_spacing: float = 0.1
    edge_margin: float = 0.1
    seconds_per_frame: float = 1.0

    def __post_init__(self) -> None:
        if not MIN_FRAME_COUNT <= self.frame_count <= MAX_FRAME_COUNT:
            raise ValueError(
                f"frame_count must be between {MIN_FRAME_COUNT} and {MAX_FRAME_COUNT}, got {self.frame_count}"
            )
        if not 0 <= self.edge_margin < 0.5:
            raise ValueError("edge_margin must be in [0, 0.5)")
        if self.min_spacing <= 0 or self.seconds_per_frame <= 0:
            raise ValueError("min_spacing and seconds_per_frame must be > 0")


class VideoSource:
    """A user-supplied video blob.

    ``info`` is filled in once a player has loaded the metadata. Each
    :meth:`acquire_handle` writes ``content`` to its own temporary file, so two
    extraction runs over the same source never share one; :meth:`release_handle`
    removes a handle (or every open handle when called without one).
    """

    def __init__(self, content: bytes, mime_type: str = "video/mp4", name: str = "video") -> None:
        if not mime_type.startswith("video/"):
            raise InvalidMedia(f"Please select a valid video file (got {mime_type!r}).")
        if not content:
            raise InvalidMedia("The selected video file is empty.")
        self.content = content
        self.mime_type = mime_type
        self.name = name
        self.info: MediaInfo | None = None
        self.handles_acquired = 0
        self.handles_released = 0
        self._handles: List[Path] = []

    @classmethod
    def from_path(cls, path: Path | str) -> "VideoSource":
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(path.read_bytes(), mime_type=mime_type or "application/octet-stream", name=path.name)

    @property
    def open_handles(self) -> Tuple[Path, ...]:
        return tuple(self._handles)

    def acquire_handle(self) -> Path:
        suffix = Path(self.name).suffix or mimetypes.guess_extension(self.mime_type) or ".mp4"
        fd, tmp = tempfile.mkstemp(prefix="vidstore_", suffix=suffix)
        with os.fdopen(fd, "wb") as fh:
            fh.write(self.content)
        handle = Path(tmp)
        self._handles.append(handle)
        self.handles_acquired += 1
        return handle

    def release_handle(self, handle: Path | None = None) -> None:
        """Remove ``handle``, or all open handles. Releasing twice is a no-op."""

        targets = list(self._handles) if handle is None else [h for h in self._handles if h == handle]
        for target in targets:
            target.unlink(missing_ok=True)
            self._handles.remove(target)
            self.handles_released += 1

    def __repr__(self) -> str:
        return f"VideoSource(name={self.name!r}, mime_type={self.mime_type!r}, bytes={len(self.content)})"
