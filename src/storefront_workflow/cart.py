"""In-memory shopping cart with a mock checkout."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from product_generation import GeneratedProduct


@dataclass
class CartItem:
    product: GeneratedProduct
    quantity: int = 1

    @property
    def line_total(self) -> float:
        return self.product.price * self.quantity


class Cart:
    def __init__(self) -> None:
        self._items: Dict[str, CartItem] = {}

    @property
    def items(self) -> List[CartItem]:
        return list(self._items.values())

    def add(self, product: GeneratedProduct) -> CartItem:
        item = self._items.get(product.id)
        if item is None:
            item = self._items[product.id] = CartItem(product)
        else:
            item.quantity += 1
        return item

    def update_quantity(self, product_id: str, quantity: int) -> None:
        if quantity < 1:
            self.remove(product_id)
            return
        self._items[product_id].quantity = quantity

    def refresh(self, products: Iterable[GeneratedProduct]) -> None:
        """Point items at the latest version of their product, e.g. after an image edit."""

        for product in products:
            item = self._items.get(product.id)
            if item is not None:
                item.product = product

    def remove(self, product_id: str) -> None:
        self._items.pop(product_id, None)

    def clear(self) -> None:
        self._items.clear()

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items.values())

    @property
    def subtotal(self) -> float:
        return round(sum(item.line_total for item in self._items.values()), 2)

    def checkout(self) -> Dict[str, Any]:
        """Mock checkout: summarise the order and empty the cart. No payment is taken."""

        if not self._items:
            raise ValueError("Your cart is empty.")
        summary = {
            "items": [
                {"id": i.product.id, "title": i.product.title, "quantity": i.quantity, "price": i.product.price}
                for i in self._items.values()
            ],
            "item_count": self.item_count,
            "subtotal": self.subtotal,
        }
        self.clear()
        return summary


__all__ = ["Cart", "CartItem"]
