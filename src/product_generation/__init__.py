"""Package for Gemini-backed product listing generation."""

from .assistant import ChatMessage, ShopAssistant
from .errors import GenerationError
from .gemini_client import DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL, ChatHandle, GeminiGateway
from .models import GeneratedProduct, PriceComparison
from .prompt import build_product_image_prompt

__all__ = [
    "build_product_image_prompt",
    "ChatHandle",
    "ChatMessage",
    "DEFAULT_IMAGE_MODEL",
    "DEFAULT_TEXT_MODEL",
    "GeminiGateway",
    "GeneratedProduct",
    "GenerationError",
    "PriceComparison",
    "ShopAssistant",
]
