# backend/services/cart.py
from decimal import Decimal
from typing import Dict, List, Optional

from schemas.cart import CartLine, CartOut
from schemas.product import ProductOut


class Cart:
    """Products picked for the order being built at the till.

    Lines are keyed by product and kept in the order they were first added.
    Totals are always computed from the current lines.
    """

    def __init__(self):
        self._lines: Dict[str, CartLine] = {}
        self.notes = ""

    @property
    def lines(self) -> List[CartLine]:
        return [line.model_copy() for line in self._lines.values()]

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    @property
    def total_amount(self) -> Decimal:
        return sum((line.price * line.quantity for line in self._lines.values()), Decimal("0"))

    def get_line(self, product_id: str) -> Optional[CartLine]:
        line = self._lines.get(product_id)
        return line.model_copy() if line else None

    def add_product(self, product: ProductOut) -> CartLine:
        line = self._lines.get(product.id)
        if line:
            line.quantity += 1
        else:
            # Price is copied now and is what the order will be charged
            line = CartLine(
                product_id=product.id,
                name=product.name,
                price=product.price,
                quantity=1,
                image_url=product.image_url,
            )
            self._lines[product.id] = line
        return line.model_copy()

    def set_quantity(self, product_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_product(product_id)
            return
        line = self._lines.get(product_id)
        if line:
            line.quantity = quantity

    def remove_product(self, product_id: str) -> None:
        self._lines.pop(product_id, None)

    def set_notes(self, text: Optional[str]) -> None:
        self.notes = text or ""

    def set_line_notes(self, product_id: str, notes: Optional[str]) -> None:
        line = self._lines.get(product_id)
        if line:
            line.notes = notes or None

    def clear(self) -> None:
        self._lines.clear()
        self.notes = ""

    def snapshot(self) -> CartOut:
        return CartOut(
            items=self.lines,
            notes=self.notes,
            total_items=self.total_items,
            total_amount=self.total_amount,
        )
