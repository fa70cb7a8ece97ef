"""Turn results returned to the caller, one variant per intent."""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from src.schemas.cart_schema import Priority
from src.schemas.catalog_schema import FavoriteRecord, PastOrder, ProductMatch, SupplierSuggestion
from src.schemas.intent_schema import SearchItem


class _TurnBase(BaseModel):
    transcription: str
    message: str = ""


class Recommendation(BaseModel):
    for_item: str
    quantity: int
    products: list[ProductMatch] = Field(default_factory=list)


class NewSearchResult(_TurnBase):
    intent_type: Literal["new_search"] = "new_search"
    items: list[SearchItem]
    recommendations: list[Recommendation] = Field(default_factory=list)
    no_match_message: Optional[str] = None
    supplier_suggestions: Optional[list[SupplierSuggestion]] = None


class AddedProduct(BaseModel):
    product_id: str
    product_name: str
    sku: str
    price_per_unit: int
    unit: str
    quantity: int


class AddedToCart(AddedProduct):
    confirmation_message: str


class SelectProductResult(_TurnBase):
    intent_type: Literal["select_product"] = "select_product"
    added_to_cart: AddedToCart
    applied: bool = False


class AddAllResult(_TurnBase):
    intent_type: Literal["add_all"] = "add_all"
    added_products: list[AddedProduct]
    confirmation_message: str
    applied: bool = False


class ClearResult(_TurnBase):
    intent_type: Literal["clear"] = "clear"


class CartQueryResult(_TurnBase):
    intent_type: Literal["cart_query"] = "cart_query"
    cart_summary: str


class CartTotalResult(_TurnBase):
    intent_type: Literal["cart_total"] = "cart_total"
    total_message: str


class CartRemoveResult(_TurnBase):
    intent_type: Literal["cart_remove"] = "cart_remove"
    item_name: str
    confirmation_message: str
    applied: bool = False


class CartUpdateResult(_TurnBase):
    intent_type: Literal["cart_update"] = "cart_update"
    item_name: str
    new_quantity: int
    confirmation_message: str
    applied: bool = False


class CartClearResult(_TurnBase):
    intent_type: Literal["cart_clear"] = "cart_clear"
    confirmation_message: str
    applied: bool = False


class AddNoteResult(_TurnBase):
    intent_type: Literal["add_note"] = "add_note"
    note: str
    confirmation_message: str
    applied: bool = False


class SetPriorityResult(_TurnBase):
    intent_type: Literal["set_priority"] = "set_priority"
    priority: Priority
    confirmation_message: str
    applied: bool = False


class ReorderFavoritesResult(_TurnBase):
    intent_type: Literal["reorder_favorites"] = "reorder_favorites"
    favorites: list[FavoriteRecord] = Field(default_factory=list)


class ReorderPastResult(_TurnBase):
    intent_type: Literal["reorder_past"] = "reorder_past"
    date_reference: str
    order: Optional[PastOrder] = None


class OrderHistoryResult(_TurnBase):
    intent_type: Literal["order_history"] = "order_history"
    orders: list[PastOrder] = Field(default_factory=list)
    summary: str


class ErrorResult(_TurnBase):
    intent_type: Literal["error"] = "error"
    error_message: str


TurnResult = Annotated[
    Union[
        NewSearchResult,
        SelectProductResult,
        AddAllResult,
        ClearResult,
        CartQueryResult,
        CartTotalResult,
        CartRemoveResult,
        CartUpdateResult,
        CartClearResult,
        AddNoteResult,
        SetPriorityResult,
        ReorderFavoritesResult,
        ReorderPastResult,
        OrderHistoryResult,
        ErrorResult,
    ],
    Field(discriminator="intent_type"),
]
