"""Catalogue, supplier, and ranking result models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CatalogProduct(BaseModel):
    """A product assigned to a project's catalogue."""
    id: str
    supplier_id: str
    name: str
    sku: str
    description: Optional[str] = None
    unit: str = "piece"
    price_per_unit: int = Field(ge=0)
    category_name: Optional[str] = None
    subcategory_name: Optional[str] = None


class SupplierRecord(BaseModel):
    """Supplier with an optional external catalogue link."""
    id: str
    name: str
    shop_url: Optional[str] = None
    description: Optional[str] = None


class FavoriteRecord(BaseModel):
    """A worker's order history for one product within a project."""
    product_id: str
    product_name: str
    sku: str
    price_per_unit: int = Field(ge=0)
    unit: str
    usage_count: int = 1
    default_quantity: int = Field(default=1, ge=1)


class ProductMatch(BaseModel):
    """Ranked catalogue candidate for a free-text need."""
    id: str
    name: str
    sku: str
    description: Optional[str] = None
    unit: str
    price_per_unit: int = Field(ge=0)
    category_name: Optional[str] = None
    subcategory_name: Optional[str] = None
    match_score: float = Field(ge=0.0, le=1.0)
    match_reason: str
    supplier_id: Optional[str] = None
    usual_quantity: Optional[int] = None
    order_count: Optional[int] = None


class SupplierSuggestion(BaseModel):
    """External supplier catalogue offered when nothing in-catalogue matched."""
    id: str
    name: str
    shop_url: str
    description: str
    match_score: float = Field(ge=0.0, le=1.0)
    match_reason: str


class SearchResult(BaseModel):
    """Outcome of searching a project catalogue for one need."""
    query: str
    products: list[ProductMatch] = Field(default_factory=list)
    total_found: int = 0
    supplier_suggestions: list[SupplierSuggestion] = Field(default_factory=list)


class PastOrderItem(BaseModel):
    product_id: Optional[str] = None
    product_name: str
    sku: str
    quantity: int = Field(ge=1)
    price_per_unit: int = Field(ge=0)
    unit: str = "unit"


class PastOrder(BaseModel):
    """A previously placed order, as returned by the history store."""
    order_id: str
    created_at: datetime
    total_cents: int = Field(ge=0)
    status: str
    items: list[PastOrderItem] = Field(default_factory=list)
