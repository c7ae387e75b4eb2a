import asyncio
from pathlib import Path
from typing import Callable, List

import pytest
from PIL import Image

from frame_extraction import EncodedImage, Frame, MediaInfo, SeekError, VideoSource
from product_generation import GeneratedProduct, GenerationError
from product_generation.models import new_product_id


class FakePlayer:
    """In-memory stand-in for FfmpegPlayer."""

    def __init__(
        self,
        path,
        *,
        duration: float = 10.0,
        size=(64, 48),
        fps: float = 30.0,
        fail_at=(),
        decoded_size=None,
        load_error: Exception | None = None,
        blank: bool = False,
        require_file: bool = False,
        seek_gate: asyncio.Event | None = None,
    ):
        self.path = path
        self._info = MediaInfo(duration=duration, width=size[0], height=size[1], fps=fps)
        self.info = None
        self.fail_at = list(fail_at)
        self.decoded_size = decoded_size or size
        self.load_error = load_error
        self.blank = blank
        self.require_file = require_file
        self.seek_gate = seek_gate
        self.seeks: List[float] = []
        self.active = 0
        self.max_active = 0
        self.closed = False
        self._displayed = None

    async def load(self):
        await asyncio.sleep(0)
        if self.load_error is not None:
            raise self.load_error
        self.info = self._info
        return self.info

    async def seek(self, timestamp):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0)
            if self.seek_gate is not None:
                await self.seek_gate.wait()
            self.seeks.append(timestamp)
            if self.require_file and not Path(self.path).exists():
                raise SeekError(f"{self.path} is gone")
            if any(abs(timestamp - t) < 1e-6 for t in self.fail_at):
                raise SeekError(f"corrupt segment at {timestamp}")
            shade = int(timestamp * 10) % 256
            self._displayed = None if self.blank else Image.new("RGB", self.decoded_size, (shade, 0, 0))
        finally:
            self.active -= 1

    def current_frame(self):
        return self._displayed

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_player_cls():
    return FakePlayer


@pytest.fixture
def player_factory():
    """``player_factory(**kwargs)`` returns a factory; created players are on ``factory.created``."""

    def make(**kwargs):
        created = []

        def factory(path):
            player = FakePlayer(path, **kwargs)
            created.append(player)
            return player

        factory.created = created
        return factory

    return make


@pytest.fixture
def video_source():
    return VideoSource(b"not-really-an-mp4", mime_type="video/mp4", name="demo.mp4")


def _jpeg(color=(10, 20, 30), size=(8, 8)) -> EncodedImage:
    return EncodedImage.from_pil(Image.new("RGB", size, color))


@pytest.fixture
def make_frames() -> Callable[..., List[Frame]]:
    def make(timestamps=(1.0, 5.0, 9.0)):
        return [
            Frame(index=i, timestamp=ts, image=_jpeg((i * 40, 0, 0)), width=8, height=8)
            for i, ts in enumerate(timestamps)
        ]

    return make


@pytest.fixture
def make_product() -> Callable[..., GeneratedProduct]:
    def make(title="Ceramic Mug", price=499.0, image=None, **kwargs):
        image = image or _jpeg()
        return GeneratedProduct(
            id=kwargs.pop("id", new_product_id()),
            title=title,
            description=kwargs.pop("description", f"A lovely {title.lower()}."),
            price=price,
            image=image,
            source_image=image,
            **kwargs,
        )

    return make


class FakeGateway:
    """Scriptable gateway. Set the ``*_result`` attributes to values, exceptions or callables."""

    def __init__(self, products=None):
        self.products = products
        self.describe_error: Exception | None = None
        self.describe_gate: asyncio.Event | None = None
        self.synth_gate: asyncio.Event | None = None
        self.synth_fail_titles: set = set()
        self.edit_error: Exception | None = None
        self.edit_gate: asyncio.Event | None = None
        self.edit_result = EncodedImage(b"edited-image", "image/png")
        self.describe_calls: List[EncodedImage] = []
        self.synth_prompts: List[str] = []
        self.synth_started = 0
        self.edit_calls = []

    async def describe_products(self, image):
        self.describe_calls.append(image)
        if self.describe_gate is not None:
            await self.describe_gate.wait()
        if self.describe_error is not None:
            raise self.describe_error
        return list(self.products or [])

    async def synthesize_image(self, prompt):
        self.synth_started += 1
        self.synth_prompts.append(prompt)
        if self.synth_gate is not None:
            await self.synth_gate.wait()
        for title in self.synth_fail_titles:
            if title in prompt:
                raise GenerationError(f"no image for {title}")
        return EncodedImage(f"photo:{prompt[:40]}".encode(), "image/png")

    async def edit_image(self, image, instruction):
        self.edit_calls.append((image, instruction))
        await asyncio.sleep(0)
        if self.edit_gate is not None:
            await self.edit_gate.wait()
        if self.edit_error is not None:
            raise self.edit_error
        return self.edit_result


@pytest.fixture
def gateway_cls():
    return FakeGateway
