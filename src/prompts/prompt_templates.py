"""Dynamic prompt construction for context-aware inference calls."""

import json
from typing import Optional

from src.schemas.cart_schema import CartContext
from src.schemas.catalog_schema import CatalogProduct, SupplierRecord
from src.schemas.intent_schema import ConversationContext, IntentType
from src.utils import format_cents

_INTENT_NAMES = ", ".join(intent.value for intent in IntentType)


def _describe_shown_products(conversation: Optional[ConversationContext]) -> str:
    if conversation is None or not conversation.has_products:
        return "No products are currently shown. Never choose select_product or add_all."
    lines = ["Products currently shown to the worker:"]
    for product in conversation.products:
        lines.append(
            f"  {product.index}. {product.product_name} (SKU {product.sku}) "
            f"- {format_cents(product.price_per_unit)} per {product.unit}"
        )
    return "\n".join(lines)


def _describe_cart(cart: Optional[CartContext]) -> str:
    if cart is None or cart.is_empty:
        return "The cart is empty."
    lines = ["Current cart:"]
    for item in cart.items:
        sku = f" (SKU {item.sku})" if item.sku else ""
        lines.append(f"  {item.quantity} x {item.name}{sku}")
    lines.append(f"  Total: {format_cents(cart.total_cents)}")
    return "\n".join(lines)


def build_intent_prompt(
    utterance: str,
    conversation: Optional[ConversationContext],
    cart: Optional[CartContext],
) -> str:
    """Build the classification prompt for one worker utterance."""
    return f"""Classify what the worker wants in this turn.

Utterance: "{utterance}"

{_describe_shown_products(conversation)}

{_describe_cart(cart)}

Return JSON:
{{
  "intentType": one of [{_INTENT_NAMES}],
  "items": [{{"description": "product words", "quantity": 1}}],
  "productSelection": {{"index": 2, "quantity": 1}},
  "cartAction": {{"itemName": "gloves", "newQuantity": 5}},
  "note": "text",
  "priority": "normal" or "urgent",
  "dateReference": "last tuesday",
  "confidence": 0.0-1.0
}}

Rules:
- new_search: the worker asks for products. "items" keeps the worker's words
  ("safety gloves" stays "safety gloves"). Quantity: number said, default 1,
  "couple"=2, "few"=3, "some"=1, "a box of"=1. Several products -> several items.
- select_product: the worker picks a shown product by position ("the second
  one", "number 3"). Only when products are shown. Numbers next to units
  ("4mm", "3/4 inch") are specifications, not positions.
- cart_remove / cart_update: the worker removes or changes the quantity of
  something already in the cart. These win over a search when the named
  item is in the cart.
- cart_clear empties the cart; clear only dismisses the shown products.
- Only include keys relevant to the chosen intent.

Examples:
- "give me 5 screws and some tape" -> {{"intentType": "new_search", "items": [{{"description": "screws", "quantity": 5}}, {{"description": "tape", "quantity": 1}}]}}
- "order 10 of the second one" -> {{"intentType": "select_product", "productSelection": {{"index": 2, "quantity": 10}}}}
- "change the screws to 20" -> {{"intentType": "cart_update", "cartAction": {{"itemName": "screws", "newQuantity": 20}}}}"""


def build_product_ranking_prompt(
    need: str,
    products: list[CatalogProduct],
    max_results: int,
    min_score: float,
) -> str:
    """Build the catalogue ranking prompt for one free-text need."""
    catalogue = [
        {
            "id": p.id,
            "name": p.name,
            "sku": p.sku,
            "description": p.description or "",
            "category": p.category_name or "",
            "unit": p.unit,
        }
        for p in products
    ]
    return f"""A worker needs: "{need}"

Catalogue entries:
{json.dumps(catalogue, ensure_ascii=False)}

Return a JSON array of at most {max_results} entries, best first:
[{{"id": "catalogue id", "score": 0.0-1.0, "reason": "short reason"}}]

Only include entries with score >= {min_score}. Return [] if nothing fits."""


def build_supplier_ranking_prompt(need: str, suppliers: list[SupplierRecord]) -> str:
    """Build the prompt scoring external supplier catalogues against a need."""
    listing = [
        {"id": s.id, "name": s.name, "description": s.description or ""}
        for s in suppliers
    ]
    return f"""A worker needs: "{need}". It is not in their project catalogue.

External suppliers:
{json.dumps(listing, ensure_ascii=False)}

Return a JSON array of suppliers likely to stock it, best first:
[{{"id": "supplier id", "score": 0.0-1.0, "reason": "short reason"}}]

Return [] if none fit."""
