"""Search, filter and sort helpers for the storefront grid."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Iterable, List

from product_generation import GeneratedProduct


class SortOption(str, enum.Enum):
    PRICE_ASC = "price-asc"
    PRICE_DESC = "price-desc"
    TITLE_ASC = "title-asc"
    TITLE_DESC = "title-desc"


@dataclass(frozen=True)
class PriceRange:
    label: str
    min: float
    max: float

    def __contains__(self, price: float) -> bool:
        return self.min <= price < self.max


PRICE_RANGES = (
    PriceRange("Under ₹1000", 0, 1000),
    PriceRange("₹1000 to ₹5000", 1000, 5000),
    PriceRange("₹5000 to ₹10000", 5000, 10000),
    PriceRange("Over ₹10000", 10000, math.inf),
)


def unique_materials(products: Iterable[GeneratedProduct]) -> List[str]:
    return sorted({p.material for p in products if p.material})


def filter_products(
    products: Iterable[GeneratedProduct],
    *,
    search: str = "",
    price_range: PriceRange | None = None,
    material: str | None = None,
    sort: SortOption = SortOption.TITLE_ASC,
) -> List[GeneratedProduct]:
    needle = search.strip().lower()

    def matches(product: GeneratedProduct) -> bool:
        if needle and needle not in product.title.lower() and needle not in product.description.lower():
            return False
        if price_range is not None and product.price not in price_range:
            return False
        if material and product.material != material:
            return False
        return True

    selected = [p for p in products if matches(p)]
    sort = SortOption(sort)
    if sort in (SortOption.PRICE_ASC, SortOption.PRICE_DESC):
        selected.sort(key=lambda p: p.price, reverse=sort is SortOption.PRICE_DESC)
    else:
        selected.sort(key=lambda p: p.title.casefold(), reverse=sort is SortOption.TITLE_DESC)
    return selected


__all__ = ["PRICE_RANGES", "PriceRange", "SortOption", "filter_products", "unique_materials"]
