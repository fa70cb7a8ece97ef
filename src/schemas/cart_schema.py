"""Cart session models and the read-only context passed to the resolver."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Priority(str, Enum):
    NORMAL = "normal"
    URGENT = "urgent"


def matches_cart_line(query: str, name: str, sku: str = "") -> bool:
    """
    Case-insensitive substring match of ``query`` against a line's name or SKU.

    A trailing plural "s" is tolerated, so "screws" finds "Wood Screw".
    """
    needle = query.strip().lower()
    if not needle:
        return False
    candidates = {needle}
    if needle.endswith("s") and len(needle) > 3:
        candidates.add(needle[:-1])
    fields = (name.lower(), sku.lower())
    return any(c in field for c in candidates for field in fields)


class CartItem(BaseModel):
    """One cart line. Unique by product_id within a cart."""
    product_id: str
    name: str
    sku: str
    quantity: int = Field(ge=1)
    price_per_unit: int = Field(ge=0)
    unit: str

    @property
    def line_total_cents(self) -> int:
        return self.price_per_unit * self.quantity

    def matches(self, query: str) -> bool:
        return matches_cart_line(query, self.name, self.sku)


class CartState(BaseModel):
    """Persisted cart contents, note, and priority."""
    items: list[CartItem] = Field(default_factory=list)
    note: Optional[str] = None
    priority: Priority = Priority.NORMAL


class CartContextItem(BaseModel):
    name: str
    quantity: int
    price_per_unit: int
    sku: str = ""

    def matches(self, query: str) -> bool:
        return matches_cart_line(query, self.name, self.sku)


class CartContext(BaseModel):
    """Snapshot of the cart handed to the intent resolver."""
    items: list[CartContextItem] = Field(default_factory=list)
    total_cents: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.items
