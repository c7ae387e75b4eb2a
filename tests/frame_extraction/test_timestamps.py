import math

import pytest

from frame_extraction import ExtractionRequest, InvalidMedia, TimestampPolicy, compute_timestamps
from frame_extraction.timestamps import dedupe_timestamps


def test_ten_second_clip_three_frames_is_interior_biased():
    assert compute_timestamps(10.0, ExtractionRequest(frame_count=3)) == pytest.approx([1.0, 5.0, 9.0])


def test_half_second_clip_reduces_to_single_frame():
    assert compute_timestamps(0.5, ExtractionRequest(frame_count=6)) == pytest.approx([0.25])


def test_count_reduced_on_short_clip():
    ts = compute_timestamps(2.5, ExtractionRequest(frame_count=6))
    assert len(ts) == 2


@pytest.mark.parametrize("duration", [0.05, 0.3, 1.0, 2.5, 7.0, 10.0, 61.3, 3600.0])
@pytest.mark.parametrize("count", [1, 2, 3, 6, 12])
@pytest.mark.parametrize("policy", list(TimestampPolicy))
def test_timestamps_are_increasing_in_range_and_bounded(duration, count, policy):
    request = ExtractionRequest(frame_count=count, policy=policy)
    ts = compute_timestamps(duration, request)

    assert 1 <= len(ts) <= count
    assert all(0 <= t < duration for t in ts)
    assert all(b - a >= request.min_spacing for a, b in zip(ts, ts[1:]))


@pytest.mark.parametrize("duration", [0, -1.0, math.nan, math.inf, None])
def test_unusable_duration_is_invalid_media(duration):
    with pytest.raises(InvalidMedia):
        compute_timestamps(duration)


def test_anchor_policy_uses_one_second_middle_and_ninety_percent():
    request = ExtractionRequest(policy=TimestampPolicy.ANCHORS)
    assert compute_timestamps(10.0, request) == pytest.approx([1.0, 5.0, 9.0])
    assert compute_timestamps(2.0, request) == pytest.approx([1.0])
    assert compute_timestamps(2.5, request) == pytest.approx([1.0, 1.25])


def test_anchor_policy_clamps_inside_short_clip():
    ts = compute_timestamps(0.5, ExtractionRequest(policy=TimestampPolicy.ANCHORS))
    assert ts == pytest.approx([0.4])


def test_dedupe_drops_close_and_out_of_range_points():
    assert dedupe_timestamps([3.0, 1.0, 1.05, 2.0, 5.0, -0.1], duration=5.0, min_spacing=0.1) == [1.0, 2.0, 3.0]


@pytest.mark.parametrize("count", [0, 13])
def test_request_rejects_out_of_range_count(count):
    with pytest.raises(ValueError):
        ExtractionRequest(frame_count=count)
