"""
Cart engine: the single owned, persisted cart of a worker's session.

Every mutation is synchronous and builds the next snapshot, writes it to
storage, and only then adopts it, so a failed write leaves the previous
state in place. Name lookups are case-insensitive substring matches
against the line's name or SKU, tolerating a plural "s"; the first line in
insertion order wins.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from src.schemas.cart_schema import CartContext, CartContextItem, CartItem, CartState, Priority
from src.session.storage import Storage

logger = logging.getLogger(__name__)

CART_KEY = "cart"


class CartEngine:
    """Owns one ``CartState`` and its persisted snapshot."""

    def __init__(self, storage: Storage, key: str = CART_KEY) -> None:
        self._storage = storage
        self._key = key
        self._project_id: Optional[str] = None
        self._state = CartState()
        self._load()

    def _load(self) -> None:
        snapshot = self._storage.load(self._key)
        if snapshot is None:
            return
        try:
            self._state = CartState.model_validate(snapshot.get("cart", {}))
            self._project_id = snapshot.get("project_id")
        except (AttributeError, ValidationError) as exc:
            logger.warning("Stored cart is corrupt, starting empty: %s", exc)
            self._state = CartState()
            self._project_id = None

    def _commit(self, state: CartState, project_id: Optional[str] = None) -> None:
        """Persist ``state`` and adopt it once the write succeeded."""
        project_id = project_id if project_id is not None else self._project_id
        self._storage.save(self._key, {
            "project_id": project_id,
            "cart": state.model_dump(mode="json"),
        })
        self._state = state
        self._project_id = project_id

    def _with_items(self, items: list[CartItem]) -> CartState:
        return self._state.model_copy(update={"items": items})

    @property
    def state(self) -> CartState:
        return self._state.model_copy(deep=True)

    @property
    def items(self) -> list[CartItem]:
        return [item.model_copy() for item in self._state.items]

    @property
    def project_id(self) -> Optional[str]:
        return self._project_id

    # --- Project ---

    def switch_project(self, project_id: str) -> bool:
        """Make ``project_id`` active, clearing the cart if it changed. Returns True on change."""
        if project_id == self._project_id:
            return False
        if self._project_id is not None and self._state.items:
            logger.info("Project changed %s -> %s, clearing cart", self._project_id, project_id)
        self._commit(CartState(), project_id=project_id)
        return True

    # --- Line items ---

    def add_item(self, item: CartItem, quantity: Optional[int] = None) -> CartItem:
        """
        Add ``quantity`` of a product, merging with an existing line.

        ``quantity`` defaults to the item's own quantity.

        Raises:
            ValueError: If the quantity is below 1.
        """
        quantity = item.quantity if quantity is None else quantity
        if quantity < 1:
            raise ValueError(f"Quantity must be at least 1, got {quantity}")

        items = list(self._state.items)
        for index, line in enumerate(items):
            if line.product_id == item.product_id:
                merged = line.model_copy(update={"quantity": line.quantity + quantity})
                items[index] = merged
                self._commit(self._with_items(items))
                return merged.model_copy()

        added = item.model_copy(update={"quantity": quantity})
        items.append(added)
        self._commit(self._with_items(items))
        return added.model_copy()

    def update_quantity(self, product_id: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            self.remove_item(product_id)
            return
        items = list(self._state.items)
        for index, line in enumerate(items):
            if line.product_id == product_id:
                items[index] = line.model_copy(update={"quantity": quantity})
                self._commit(self._with_items(items))
                return

    def remove_item(self, product_id: str) -> None:
        remaining = [line for line in self._state.items if line.product_id != product_id]
        if len(remaining) != len(self._state.items):
            self._commit(self._with_items(remaining))

    def clear_items(self) -> None:
        """Empty the cart, keeping note and priority."""
        self._commit(self._with_items([]))

    def clear(self) -> None:
        """Empty the cart and reset note and priority."""
        self._commit(CartState())

    # --- Name lookups ---

    def find_item_by_name(self, name: str) -> Optional[CartItem]:
        for line in self._state.items:
            if line.matches(name):
                return line.model_copy()
        return None

    def remove_by_name(self, name: str) -> Optional[CartItem]:
        """Remove the first line matching ``name``. Returns the removed line, if any."""
        line = self.find_item_by_name(name)
        if line is not None:
            self.remove_item(line.product_id)
        return line

    def update_quantity_by_name(self, name: str, quantity: int) -> Optional[CartItem]:
        """Set the quantity of the first line matching ``name``. Returns that line as it was."""
        line = self.find_item_by_name(name)
        if line is not None:
            self.update_quantity(line.product_id, quantity)
        return line

    # --- Order metadata ---

    def set_note(self, note: Optional[str]) -> None:
        note = note.strip() if note else None
        self._commit(self._state.model_copy(update={"note": note or None}))

    def set_priority(self, priority) -> None:
        """Set order priority from a ``Priority`` or its string value.

        Raises:
            ValueError: If the value is not a known priority.
        """
        self._commit(self._state.model_copy(update={"priority": Priority(priority)}))

    # --- Read-only views ---

    def get_total_cents(self) -> int:
        return sum(line.line_total_cents for line in self._state.items)

    def get_item_count(self) -> int:
        return sum(line.quantity for line in self._state.items)

    def to_cart_context(self) -> CartContext:
        return CartContext(
            items=[
                CartContextItem(
                    name=line.name,
                    sku=line.sku,
                    quantity=line.quantity,
                    price_per_unit=line.price_per_unit,
                )
                for line in self._state.items
            ],
            total_cents=self.get_total_cents(),
        )
