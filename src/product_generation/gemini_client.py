"""Gemini gateway for product listings, product photography and chat."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

try:
    from google import genai
    from google.genai import types
except ImportError as exc:  # pragma: no cover - handled at runtime
    raise ImportError(
        "google-genai is required for product generation. Install with `pip install google-genai`."
    ) from exc

from frame_extraction import EncodedImage

from .errors import GenerationError
from .models import GeneratedProduct, parse_products
from .prompt import build_assistant_prompt, build_edit_prompt, build_product_prompt


logger = logging.getLogger(__name__)

DEFAULT_TEXT_MODEL = os.environ.get("VIDSTORE_TEXT_MODEL", "gemini-2.5-flash")
DEFAULT_IMAGE_MODEL = os.environ.get("VIDSTORE_IMAGE_MODEL", "gemini-2.5-flash-image")
DEFAULT_CHAT_MODEL = os.environ.get("VIDSTORE_CHAT_MODEL", "gemini-2.5-flash")
MAX_RETRIES = 3
RETRY_DELAY_S = 2


def _load_env_key() -> None:
    """Best-effort load GEMINI_API_KEY/GOOGLE_API_KEY from .env files.

    Checks the project root .env, the cwd .env and HOME/.env. Values already in
    the environment are never overwritten.
    """

    candidates = [
        Path(__file__).resolve().parents[2] / ".env",
        Path.cwd() / ".env",
        Path.home() / ".env",
    ]

    for path in candidates:
        if not path.exists():
            continue
        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            key = key.strip()
            if key in os.environ:
                continue
            os.environ[key] = value.strip().strip('"').strip("'")


PRODUCTS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "products": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "title": types.Schema(type=types.Type.STRING, description="Catchy product title."),
                    "description": types.Schema(type=types.Type.STRING, description="Detailed product description."),
                    "price": types.Schema(type=types.Type.NUMBER, description="Suggested price."),
                    "material": types.Schema(type=types.Type.STRING, nullable=True),
                    "dimensions": types.Schema(type=types.Type.STRING, nullable=True),
                    "features": types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING)),
                    "price_comparisons": types.Schema(
                        type=types.Type.ARRAY,
                        items=types.Schema(
                            type=types.Type.OBJECT,
                            properties={
                                "retailer": types.Schema(type=types.Type.STRING),
                                "price": types.Schema(type=types.Type.NUMBER),
                            },
                            required=["retailer", "price"],
                        ),
                    ),
                },
                required=["title", "description", "price"],
            ),
        )
    },
    required=["products"],
)


def _image_part(image: EncodedImage) -> types.Part:
    return types.Part.from_bytes(data=image.data, mime_type=image.mime_type)


def _block_reason(response: Any) -> Any:
    feedback = getattr(response, "prompt_feedback", None)
    return getattr(feedback, "block_reason", None) if feedback else None


def _extract_images(response: Any) -> List[EncodedImage]:
    """Collect inline image parts from a generate_content response."""

    images: List[EncodedImage] = []

    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and getattr(inline, "data", None):
                images.append(EncodedImage(data=inline.data, mime_type=inline.mime_type or "image/png"))

    if not images:
        for img in getattr(response, "generated_images", None) or []:
            image = getattr(img, "image", None)
            data = getattr(image, "image_bytes", None)
            if data:
                images.append(EncodedImage(data=data, mime_type=getattr(image, "mime_type", None) or "image/png"))

    return images


@dataclass
class ChatHandle:
    """An open Gemini chat session."""

    session: Any
    model: str


class GeminiGateway:
    """Async boundary to Gemini. Construct one and pass it to the workflow."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        text_model: str | None = None,
        image_model: str | None = None,
        chat_model: str | None = None,
        client: Any = None,
    ) -> None:
        if client is None:
            if not api_key:
                raise GenerationError("Set GEMINI_API_KEY (or GOOGLE_API_KEY) before generating products.")
            client = genai.Client(api_key=api_key)
        self.client = client
        self.text_model = text_model or DEFAULT_TEXT_MODEL
        self.image_model = image_model or DEFAULT_IMAGE_MODEL
        self.chat_model = chat_model or DEFAULT_CHAT_MODEL

    @classmethod
    def from_env(cls, **kwargs: Any) -> "GeminiGateway":
        _load_env_key()
        api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        return cls(api_key, **kwargs)

    async def describe_products(self, image: EncodedImage) -> List[GeneratedProduct]:
        """Identify the products in ``image`` and write listings for them.

        Returns an empty list when the model sees nothing it can sell; malformed
        replies raise :class:`GenerationError`.
        """

        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=PRODUCTS_SCHEMA,
        )
        try:
            response = await self.client.aio.models.generate_content(
                model=self.text_model,
                contents=[_image_part(image), build_product_prompt()],
                config=config,
            )
        except Exception as exc:  # noqa: BLE001
            raise GenerationError(f"Gemini API call failed: {exc}") from exc

        reason = _block_reason(response)
        if reason:
            raise GenerationError(f"Product request was blocked by the model: {reason}")

        text = getattr(response, "text", None) or ""
        logger.debug("describe_products raw response: %s", text)
        products = parse_products(text, image)
        logger.info("Model identified %d product(s)", len(products))
        return products

    async def _generate_image(self, contents: list, *, purpose: str) -> EncodedImage:
        config = types.GenerateContentConfig(response_modalities=["IMAGE"])

        last_error: Exception | None = None
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = await self.client.aio.models.generate_content(
                    model=self.image_model,
                    contents=contents,
                    config=config,
                )
            except Exception as exc:  # noqa: BLE001
                raise GenerationError(f"Gemini {purpose} call failed: {exc}") from exc

            reason = _block_reason(response)
            if reason:
                raise GenerationError(f"{purpose.capitalize()} request was blocked by the model: {reason}")

            images = _extract_images(response)
            if images:
                return images[0]

            cand_count = len(getattr(response, "candidates", None) or [])
            last_error = GenerationError(
                f"{purpose.capitalize()} model returned no image. "
                f"resp_id={getattr(response, 'response_id', None)} candidates={cand_count}"
            )
            logger.warning("%s (attempt %d/%d)", last_error, attempt, MAX_RETRIES)
            if attempt < MAX_RETRIES:
                await asyncio.sleep(RETRY_DELAY_S * attempt)

        raise last_error or GenerationError(f"{purpose.capitalize()} failed after retries")

    async def synthesize_image(self, prompt: str) -> EncodedImage:
        return await self._generate_image([prompt], purpose="image synthesis")

    async def edit_image(self, image: EncodedImage, instruction: str) -> EncodedImage:
        if not instruction.strip():
            raise GenerationError("Describe the edit you want to make.")
        return await self._generate_image(
            [_image_part(image), build_edit_prompt(instruction)],
            purpose="image edit",
        )

    def open_chat_session(self, system_instruction: str | None = None) -> ChatHandle:
        session = self.client.aio.chats.create(
            model=self.chat_model,
            config=types.GenerateContentConfig(
                system_instruction=system_instruction or build_assistant_prompt(),
            ),
        )
        return ChatHandle(session=session, model=self.chat_model)

    async def send_chat_message(self, handle: ChatHandle, text: str) -> str:
        try:
            response = await handle.session.send_message(text)
        except Exception as exc:  # noqa: BLE001
            raise GenerationError(f"Chat request failed: {exc}") from exc
        reply = getattr(response, "text", None)
        if not reply:
            raise GenerationError("Chat model returned an empty reply.")
        return reply


__all__ = [
    "ChatHandle",
    "GeminiGateway",
    "DEFAULT_CHAT_MODEL",
    "DEFAULT_IMAGE_MODEL",
    "DEFAULT_TEXT_MODEL",
    "PRODUCTS_SCHEMA",
]
