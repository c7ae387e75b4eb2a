import asyncio

import pytest

from frame_extraction import FrameCaptureError, InvalidMedia, RenderSurfaceUnavailable, capture_at
from frame_extraction.capture import clamp_timestamp


def _loaded(player):
    asyncio.run(player.load())
    return player


def test_capture_returns_jpeg_at_source_dimensions(player_factory):
    player = _loaded(player_factory(size=(64, 48))("video.mp4"))

    frame = asyncio.run(capture_at(player, 5.0, index=2))

    assert frame.index == 2
    assert frame.timestamp == 5.0
    assert (frame.width, frame.height) == (64, 48)
    assert frame.image.mime_type == "image/jpeg"
    assert frame.image.data[:2] == b"\xff\xd8"
    assert frame.image.size == (64, 48)


def test_capture_rescales_when_decoder_returns_other_size(player_factory):
    player = _loaded(player_factory(size=(64, 48), decoded_size=(32, 24))("video.mp4"))

    frame = asyncio.run(capture_at(player, 1.0, index=0))

    assert frame.image.size == (64, 48)


def test_capture_near_end_is_clamped_before_seeking(player_factory):
    player = _loaded(player_factory(duration=10.0, fps=25.0)("video.mp4"))

    frame = asyncio.run(capture_at(player, 9.99, index=0))

    assert player.seeks == [pytest.approx(10.0 - 1 / 25)]
    assert frame.timestamp == 9.99


def test_seek_error_becomes_frame_capture_error(player_factory):
    player = _loaded(player_factory(fail_at=[5.0])("video.mp4"))

    with pytest.raises(FrameCaptureError) as excinfo:
        asyncio.run(capture_at(player, 5.0, index=1))

    assert excinfo.value.timestamp == 5.0
    assert "corrupt segment" in str(excinfo.value.cause)


def test_missing_displayed_frame_is_render_surface_unavailable(player_factory):
    player = _loaded(player_factory(blank=True)("video.mp4"))

    with pytest.raises(RenderSurfaceUnavailable):
        asyncio.run(capture_at(player, 1.0, index=0))


def test_capture_requires_loaded_metadata(player_factory):
    player = player_factory()("video.mp4")

    with pytest.raises(InvalidMedia):
        asyncio.run(capture_at(player, 1.0, index=0))


def test_capture_rejects_timestamp_outside_duration(player_factory):
    player = _loaded(player_factory(duration=10.0)("video.mp4"))

    with pytest.raises(ValueError):
        asyncio.run(capture_at(player, 10.0, index=0))


def test_clamp_timestamp():
    assert clamp_timestamp(5.0, 10.0, 0.04) == 5.0
    assert clamp_timestamp(9.97, 10.0, 0.04) == pytest.approx(9.96)
    assert clamp_timestamp(0.01, 0.02, 0.04) == 0.0
