"""Controller that drives video -> frames -> listings -> storefront."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Awaitable, Callable, List, Protocol, Sequence, Tuple

from frame_extraction import EncodedImage, ExtractionRequest, Frame, VideoSource, extract_frames
from product_generation import GeneratedProduct, build_product_image_prompt

from .errors import ExtractionFailed, GenerationFailed, ImageEditFailed, InvalidTransition, NoProductsIdentified
from .states import (
    Extracting,
    Failed,
    FrameSelection,
    GeneratingDetails,
    GeneratingImages,
    Idle,
    Phase,
    Ready,
    WorkflowState,
)


logger = logging.getLogger(__name__)

Extractor = Callable[[VideoSource, ExtractionRequest], Awaitable[List[Frame]]]
Listener = Callable[[WorkflowState], None]


class ProductGateway(Protocol):
    async def describe_products(self, image: EncodedImage) -> List[GeneratedProduct]: ...

    async def synthesize_image(self, prompt: str) -> EncodedImage: ...

    async def edit_image(self, image: EncodedImage, instruction: str) -> EncodedImage: ...


class StorefrontWorkflow:
    """Single source of truth for the generation workflow.

    Views read :attr:`state` and dispatch intents; they never mutate state.
    Each intent that starts a new run (or abandons one) bumps an epoch, and
    async stages drop their result if the epoch moved while they were waiting.
    """

    def __init__(
        self,
        gateway: ProductGateway,
        *,
        request: ExtractionRequest | None = None,
        synthesize_images: bool = True,
        extractor: Extractor = extract_frames,
        on_generation_start: Callable[[], None] | None = None,
    ) -> None:
        self.gateway = gateway
        self.request = request or ExtractionRequest()
        self.synthesize_images = synthesize_images
        self._extractor = extractor
        self._on_generation_start = on_generation_start
        self._state: WorkflowState = Idle()
        self._epoch = 0
        self._source: VideoSource | None = None
        self._listeners: List[Listener] = []

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def source(self) -> VideoSource | None:
        return self._source

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(self, new_state: WorkflowState) -> None:
        logger.info("Workflow %s -> %s", type(self._state).__name__, type(new_state).__name__)
        self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)

    def _is_current(self, epoch: int, stage: str) -> bool:
        if epoch == self._epoch:
            return True
        logger.info("Discarding stale %s result (run %d, current %d)", stage, epoch, self._epoch)
        return False

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------
    async def select_video(self, source: VideoSource) -> WorkflowState:
        """Adopt ``source`` as the current video and extract frames from it."""

        if self._source is not None and self._source is not source:
            self._source.release_handle()
        self._source = source
        return await self._run_extraction()

    async def begin_generation(self) -> WorkflowState:
        """Re-extract frames from the already selected video."""

        if self._source is None:
            raise InvalidTransition("Select a video before starting generation.")
        if not isinstance(self._state, (Idle, Failed)):
            raise InvalidTransition(f"Cannot start generation while {type(self._state).__name__}.")
        return await self._run_extraction()

    async def _run_extraction(self) -> WorkflowState:
        source = self._source
        if source is None:
            raise InvalidTransition("Select a video before extracting frames.")
        self._epoch += 1
        epoch = self._epoch
        self._transition(Extracting(source.name))

        try:
            frames = await self._extractor(source, self.request)
        except Exception as exc:  # noqa: BLE001
            if self._is_current(epoch, "extraction"):
                logger.warning("Frame extraction failed for %s: %s", source.name, exc)
                self._transition(Failed(Phase.EXTRACTING, ExtractionFailed(str(exc) or None), recoverable=True))
            return self._state

        if not self._is_current(epoch, "extraction"):
            return self._state
        if not frames:
            self._transition(Failed(Phase.EXTRACTING, ExtractionFailed(), recoverable=True))
            return self._state
        self._transition(FrameSelection(tuple(frames)))
        return self._state

    def cancel_selection(self) -> WorkflowState:
        """Leave frame selection. The video stays selected; its frames are dropped."""

        if not isinstance(self._state, FrameSelection):
            raise InvalidTransition(f"Nothing to cancel while {type(self._state).__name__}.")
        self._epoch += 1
        self._transition(Idle())
        return self._state

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    async def select_frame(self, frame: Frame) -> WorkflowState:
        """Generate listings from ``frame``, then (optionally) product photos."""

        state = self._state
        if not isinstance(state, FrameSelection):
            raise InvalidTransition(f"Cannot select a frame while {type(state).__name__}.")
        if frame not in state.frames:
            raise ValueError(f"Frame {frame.index} is not part of the current selection.")

        frames = state.frames
        epoch = self._epoch
        self._transition(GeneratingDetails(frame))
        if self._on_generation_start is not None:
            self._on_generation_start()

        try:
            products = await self.gateway.describe_products(frame.image)
        except Exception as exc:  # noqa: BLE001
            if self._is_current(epoch, "detail generation"):
                logger.warning("Detail generation failed: %s", exc)
                self._transition(
                    Failed(Phase.GENERATING_DETAILS, GenerationFailed(str(exc) or None), recoverable=True, frames=frames)
                )
            return self._state

        if not self._is_current(epoch, "detail generation"):
            return self._state
        if not products:
            self._transition(Failed(Phase.GENERATING_DETAILS, NoProductsIdentified(), recoverable=True, frames=frames))
            return self._state

        products = tuple(products)
        if self.synthesize_images:
            self._transition(GeneratingImages(products))
            products = await self._synthesize_images(products)
            if not self._is_current(epoch, "image synthesis"):
                return self._state

        self._transition(Ready(products))
        return self._state

    async def _synthesize_images(self, products: Sequence[GeneratedProduct]) -> Tuple[GeneratedProduct, ...]:
        """Request a photo per product concurrently and wait for all of them.

        A product whose request fails keeps its frame image.
        """

        results = await asyncio.gather(
            *(self.gateway.synthesize_image(build_product_image_prompt(p)) for p in products),
            return_exceptions=True,
        )
        updated: List[GeneratedProduct] = []
        for product, result in zip(products, results):
            if isinstance(result, BaseException):
                logger.warning("Keeping frame image for %r: %s", product.title, result)
                updated.append(product)
            else:
                updated.append(product.with_image(result))
        return tuple(updated)

    async def request_image_edit(self, product_id: str, instruction: str) -> WorkflowState:
        """Replace one product's image with an edited version, staying in Ready."""

        state = self._state
        if not isinstance(state, Ready):
            raise InvalidTransition(f"Images can only be edited once the storefront is ready, not while {type(state).__name__}.")
        if state.editing is not None:
            raise InvalidTransition(f"An edit of product {state.editing} is already in progress.")
        product = state.product(product_id)

        epoch = self._epoch
        self._transition(replace(state, editing=product_id, edit_error=None))
        try:
            image = await self.gateway.edit_image(product.image, instruction)
        except Exception as exc:  # noqa: BLE001
            if self._is_current(epoch, "image edit"):
                logger.warning("Image edit failed for %s: %s", product_id, exc)
                self._transition(replace(self._state, editing=None, edit_error=ImageEditFailed(str(exc) or None)))
            return self._state

        if not self._is_current(epoch, "image edit"):
            return self._state
        current = self._state
        if not isinstance(current, Ready):
            raise InvalidTransition(f"Edit finished while {type(current).__name__}.")
        products = tuple(p.with_image(image) if p.id == product_id else p for p in current.products)
        self._transition(Ready(products))
        return self._state

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------
    async def retry_from_failure(self) -> WorkflowState:
        state = self._state
        if not isinstance(state, Failed):
            raise InvalidTransition(f"Nothing to retry while {type(state).__name__}.")

        if state.phase is Phase.GENERATING_DETAILS and state.frames:
            self._transition(FrameSelection(state.frames))
        elif state.phase is Phase.EXTRACTING and self._source is not None:
            await self._run_extraction()
        else:
            self._transition(Idle())
        return self._state

    def reset_workflow(self) -> WorkflowState:
        """Drop the video, frames and products and return to Idle."""

        self._epoch += 1
        if self._source is not None:
            self._source.release_handle()
        self._source = None
        self._transition(Idle())
        return self._state


__all__ = ["ProductGateway", "StorefrontWorkflow"]
