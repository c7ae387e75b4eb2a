"""Generated product listings and parsing of the model's JSON payload."""

from __future__ import annotations

import json
import math
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Tuple

from frame_extraction import EncodedImage

from .errors import GenerationError


@dataclass(frozen=True)
class PriceComparison:
    retailer: str
    price: float


@dataclass(frozen=True)
class GeneratedProduct:
    """One product listing. ``id`` stays fixed for the product's lifetime."""

    id: str
    title: str
    description: str
    price: float
    image: EncodedImage
    material: str | None = None
    dimensions: str | None = None
    features: Tuple[str, ...] = ()
    price_comparisons: Tuple[PriceComparison, ...] = ()
    source_image: EncodedImage | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.price, bool) or not isinstance(self.price, (int, float)):
            raise ValueError(f"price must be a number, got {self.price!r}")
        if not math.isfinite(self.price) or self.price < 0:
            raise ValueError(f"price must be finite and non-negative, got {self.price!r}")

    def with_image(self, image: EncodedImage) -> "GeneratedProduct":
        return replace(self, image=image)


def new_product_id() -> str:
    return uuid.uuid4().hex[:12]


def strip_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```) if present."""

    text = (text or "").strip()
    if text.startswith("```"):
        text = text.strip("`").strip()
        if text.lower().startswith("json"):
            text = text[4:]
    return text.strip()


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_product(raw: Dict[str, Any], image: EncodedImage) -> GeneratedProduct:
    title = raw.get("title")
    description = raw.get("description")
    price = raw.get("price")
    if not isinstance(title, str) or not isinstance(description, str) or isinstance(price, bool) or not isinstance(price, (int, float)):
        raise GenerationError(
            "The AI model returned data in an unexpected format. "
            f"Required fields might be missing or have the wrong type: {raw!r}"
        )

    comparisons: List[PriceComparison] = []
    for item in raw.get("price_comparisons") or []:
        if not isinstance(item, dict):
            continue
        retailer = _optional_str(item.get("retailer"))
        other = item.get("price")
        if retailer and isinstance(other, (int, float)) and not isinstance(other, bool) and math.isfinite(other) and other >= 0:
            comparisons.append(PriceComparison(retailer=retailer, price=float(other)))

    features = tuple(str(f).strip() for f in raw.get("features") or [] if str(f).strip())

    try:
        return GeneratedProduct(
            id=new_product_id(),
            title=title.strip(),
            description=description.strip(),
            price=float(price),
            image=image,
            material=_optional_str(raw.get("material")),
            dimensions=_optional_str(raw.get("dimensions")),
            features=features,
            price_comparisons=tuple(comparisons),
            source_image=image,
        )
    except ValueError as exc:
        raise GenerationError(f"Invalid product from model: {exc}") from exc


def parse_products(text: str, image: EncodedImage) -> List[GeneratedProduct]:
    """Parse the model's JSON reply into products that all point at ``image``."""

    cleaned = strip_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise GenerationError(
            f"The AI model returned a response that was not valid JSON: {exc}\nRaw: {text}"
        ) from exc

    if isinstance(data, dict):
        items = data.get("products")
    else:
        items = data
    if not isinstance(items, list):
        raise GenerationError(f"Unexpected response schema: {data!r}")

    products: List[GeneratedProduct] = []
    for raw in items:
        if not isinstance(raw, dict):
            raise GenerationError(f"Unexpected product entry: {raw!r}")
        products.append(_parse_product(raw, image))
    return products


__all__ = ["GeneratedProduct", "PriceComparison", "new_product_id", "parse_products", "strip_fences"]
