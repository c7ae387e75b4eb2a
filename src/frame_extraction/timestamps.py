"""Timestamp planning for frame extraction."""

from __future__ import annotations

import math
from typing import Iterable, List

from .errors import InvalidMedia
from .models import ExtractionRequest, TimestampPolicy


def _even_timestamps(duration: float, request: ExtractionRequest) -> List[float]:
    # Short clips get fewer frames rather than near-duplicates.
    n = min(request.frame_count, max(1, math.floor(duration / request.seconds_per_frame)))
    if n == 1:
        return [duration / 2]
    lo = duration * request.edge_margin
    hi = duration * (1 - request.edge_margin)
    step = (hi - lo) / (n - 1)
    return [lo + step * i for i in range(n)]


def _anchor_timestamps(duration: float, request: ExtractionRequest) -> List[float]:
    """1s, middle and 90% through, as long as the clip is long enough."""

    anchors = [1.0]
    if duration > 2:
        anchors.append(duration / 2)
    if duration > 3:
        anchors.append(duration * 0.9)
    upper = max(0.0, duration - request.min_spacing)
    return [min(upper, max(0.0, t)) for t in anchors][: request.frame_count]


def dedupe_timestamps(timestamps: Iterable[float], duration: float, min_spacing: float) -> List[float]:
    """Sort, drop out-of-range points and points within ``min_spacing`` of the last kept one."""

    kept: List[float] = []
    for ts in sorted(timestamps):
        if not 0 <= ts < duration:
            continue
        if kept and ts - kept[-1] < min_spacing:
            continue
        kept.append(ts)
    return kept


def compute_timestamps(duration: float, request: ExtractionRequest | None = None) -> List[float]:
    """Return strictly increasing capture timestamps inside ``[0, duration)``."""

    request = request or ExtractionRequest()
    if duration is None or not math.isfinite(duration) or duration <= 0:
        raise InvalidMedia(f"Video has no usable duration ({duration!r}).")

    if request.policy is TimestampPolicy.ANCHORS:
        raw = _anchor_timestamps(duration, request)
    else:
        raw = _even_timestamps(duration, request)
    return dedupe_timestamps(raw, duration, request.min_spacing)


__all__ = ["compute_timestamps", "dedupe_timestamps"]
