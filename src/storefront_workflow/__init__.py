"""Package for the video-to-storefront workflow."""

from .cart import Cart, CartItem
from .catalog import PRICE_RANGES, PriceRange, SortOption, filter_products, unique_materials
from .errors import (
    ExtractionFailed,
    GenerationFailed,
    ImageEditFailed,
    InvalidTransition,
    NoProductsIdentified,
    WorkflowError,
)
from .machine import ProductGateway, StorefrontWorkflow
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

__all__ = [
    "Cart",
    "CartItem",
    "Extracting",
    "ExtractionFailed",
    "Failed",
    "filter_products",
    "FrameSelection",
    "GeneratingDetails",
    "GeneratingImages",
    "GenerationFailed",
    "Idle",
    "ImageEditFailed",
    "InvalidTransition",
    "NoProductsIdentified",
    "Phase",
    "PRICE_RANGES",
    "PriceRange",
    "ProductGateway",
    "Ready",
    "SortOption",
    "StorefrontWorkflow",
    "unique_materials",
    "WorkflowError",
    "WorkflowState",
]
