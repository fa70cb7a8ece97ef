"""Conversation context and the tagged union of resolved intents.

Each intent carries only the payload that makes sense for it; the
``intent`` literal is the discriminator.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from src.schemas.cart_schema import Priority


class IntentType(str, Enum):
    """Closed set of turn intents."""
    NEW_SEARCH = "new_search"
    SELECT_PRODUCT = "select_product"
    ADD_ALL = "add_all"
    CLEAR = "clear"
    CART_QUERY = "cart_query"
    CART_TOTAL = "cart_total"
    CART_REMOVE = "cart_remove"
    CART_UPDATE = "cart_update"
    CART_CLEAR = "cart_clear"
    REORDER_FAVORITES = "reorder_favorites"
    REORDER_PAST = "reorder_past"
    ORDER_HISTORY = "order_history"
    ADD_NOTE = "add_note"
    SET_PRIORITY = "set_priority"


class ContextProduct(BaseModel):
    """A product currently shown to the worker, addressable by index."""
    index: int = Field(ge=1)
    product_id: str
    product_name: str
    sku: str
    price_per_unit: int = Field(ge=0)
    unit: str


class ConversationContext(BaseModel):
    products: list[ContextProduct] = Field(default_factory=list)

    @property
    def has_products(self) -> bool:
        return bool(self.products)

    @property
    def max_index(self) -> int:
        return max((p.index for p in self.products), default=0)

    def get(self, index: int) -> Optional[ContextProduct]:
        for product in self.products:
            if product.index == index:
                return product
        return None


class SearchItem(BaseModel):
    """One product need extracted from an utterance."""
    description: str
    quantity: int = Field(default=1, ge=1)
    search_terms: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class _IntentBase(BaseModel):
    raw_utterance: str
    confidence: float = Field(default=0.9, ge=0.0, le=1.0)
    fallback_reason: Optional[str] = None


class NewSearchIntent(_IntentBase):
    intent: Literal["new_search"] = "new_search"
    items: list[SearchItem] = Field(min_length=1)


class SelectProductIntent(_IntentBase):
    intent: Literal["select_product"] = "select_product"
    index: Optional[int] = None
    quantity: int = Field(default=1, ge=1)


class AddAllIntent(_IntentBase):
    intent: Literal["add_all"] = "add_all"


class ClearIntent(_IntentBase):
    intent: Literal["clear"] = "clear"


class CartQueryIntent(_IntentBase):
    intent: Literal["cart_query"] = "cart_query"


class CartTotalIntent(_IntentBase):
    intent: Literal["cart_total"] = "cart_total"


class CartRemoveIntent(_IntentBase):
    intent: Literal["cart_remove"] = "cart_remove"
    item_name: Optional[str] = None


class CartUpdateIntent(_IntentBase):
    intent: Literal["cart_update"] = "cart_update"
    item_name: Optional[str] = None
    new_quantity: Optional[int] = None


class CartClearIntent(_IntentBase):
    intent: Literal["cart_clear"] = "cart_clear"


class ReorderFavoritesIntent(_IntentBase):
    intent: Literal["reorder_favorites"] = "reorder_favorites"


class ReorderPastIntent(_IntentBase):
    intent: Literal["reorder_past"] = "reorder_past"
    date_reference: Optional[str] = None


class OrderHistoryIntent(_IntentBase):
    intent: Literal["order_history"] = "order_history"


class AddNoteIntent(_IntentBase):
    intent: Literal["add_note"] = "add_note"
    note: Optional[str] = None


class SetPriorityIntent(_IntentBase):
    intent: Literal["set_priority"] = "set_priority"
    priority: Optional[Priority] = None


ResolvedIntent = Annotated[
    Union[
        NewSearchIntent,
        SelectProductIntent,
        AddAllIntent,
        ClearIntent,
        CartQueryIntent,
        CartTotalIntent,
        CartRemoveIntent,
        CartUpdateIntent,
        CartClearIntent,
        ReorderFavoritesIntent,
        ReorderPastIntent,
        OrderHistoryIntent,
        AddNoteIntent,
        SetPriorityIntent,
    ],
    Field(discriminator="intent"),
]

# Intents that carry no payload beyond the raw utterance.
PAYLOADLESS_INTENTS: dict[IntentType, type[_IntentBase]] = {
    IntentType.ADD_ALL: AddAllIntent,
    IntentType.CLEAR: ClearIntent,
    IntentType.CART_QUERY: CartQueryIntent,
    IntentType.CART_TOTAL: CartTotalIntent,
    IntentType.CART_CLEAR: CartClearIntent,
    IntentType.REORDER_FAVORITES: ReorderFavoritesIntent,
    IntentType.ORDER_HISTORY: OrderHistoryIntent,
}
