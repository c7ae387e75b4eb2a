"""Workflow state variants. Exactly one is current at any time."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Tuple, Union

from frame_extraction import Frame
from product_generation import GeneratedProduct

from .errors import ImageEditFailed, WorkflowError


class Phase(str, enum.Enum):
    EXTRACTING = "extracting"
    GENERATING_DETAILS = "generating_details"
    GENERATING_IMAGES = "generating_images"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Extracting:
    source_name: str


@dataclass(frozen=True)
class FrameSelection:
    frames: Tuple[Frame, ...]


@dataclass(frozen=True)
class GeneratingDetails:
    frame: Frame


@dataclass(frozen=True)
class GeneratingImages:
    products: Tuple[GeneratedProduct, ...]


@dataclass(frozen=True)
class Ready:
    products: Tuple[GeneratedProduct, ...]
    edit_error: ImageEditFailed | None = None
    editing: str | None = None

    def product(self, product_id: str) -> GeneratedProduct:
        for product in self.products:
            if product.id == product_id:
                return product
        raise KeyError(product_id)


@dataclass(frozen=True)
class Failed:
    phase: Phase
    error: WorkflowError
    recoverable: bool
    frames: Tuple[Frame, ...] = ()

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def recovery_actions(self) -> Tuple[str, ...]:
        if self.recoverable and self.frames and self.error.can_go_back:
            return ("try_different_frame", "start_over")
        return ("start_over",)


WorkflowState = Union[Idle, Extracting, FrameSelection, GeneratingDetails, GeneratingImages, Ready, Failed]

BUSY_STATES = (Extracting, GeneratingDetails, GeneratingImages)


__all__ = [
    "BUSY_STATES",
    "Extracting",
    "Failed",
    "FrameSelection",
    "GeneratingDetails",
    "GeneratingImages",
    "Idle",
    "Phase",
    "Ready",
    "WorkflowState",
]
