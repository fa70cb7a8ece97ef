"""Spoken reply text for turn results."""

from typing import Optional

from src.config import settings
from src.schemas.catalog_schema import ProductMatch
from src.schemas.turn_schema import (
    ClearResult,
    ErrorResult,
    NewSearchResult,
    Recommendation,
)
from src.utils import format_cents, pluralize, truncate_for_speech

SPOKEN_OPTIONS_PER_ITEM = 3


def flatten_recommendations(recommendations: list[Recommendation]) -> list[ProductMatch]:
    """Shown products in display order, each product once. Position i+1 is its spoken number."""
    seen: set[str] = set()
    shown = []
    for recommendation in recommendations:
        for product in recommendation.products:
            if product.id not in seen:
                seen.add(product.id)
                shown.append(product)
    return shown


def _describe_search(result: NewSearchResult) -> str:
    positions = {p.id: i for i, p in enumerate(flatten_recommendations(result.recommendations), 1)}
    parts = []
    for recommendation in result.recommendations:
        if not recommendation.products:
            continue
        count = len(recommendation.products)
        options = ", ".join(
            f"number {positions[p.id]} is {p.name} at {format_cents(p.price_per_unit)} per {p.unit}"
            for p in recommendation.products[:SPOKEN_OPTIONS_PER_ITEM]
        )
        parts.append(
            f"For {recommendation.for_item} I found {count} {pluralize(count, 'option')}: {options}."
        )
    if result.no_match_message:
        parts.append(result.no_match_message)
    if result.supplier_suggestions:
        names = ", ".join(s.name for s in result.supplier_suggestions)
        parts.append(f"You could try {names}.")
    return " ".join(parts)


def render_reply(result, limit: Optional[int] = None) -> str:
    """
    Text to speak for a turn result, at most ``limit`` characters.

    Results that carry a confirmation speak it; search results list the
    first few options per item with their spoken numbers.
    """
    limit = limit or settings.ordering.max_spoken_chars
    if isinstance(result, NewSearchResult):
        text = _describe_search(result)
    elif isinstance(result, ErrorResult):
        text = result.error_message
    elif isinstance(result, ClearResult):
        text = "Okay, cleared. What do you need?"
    elif getattr(result, "added_to_cart", None) is not None:
        text = result.added_to_cart.confirmation_message
    elif getattr(result, "confirmation_message", None):
        text = result.confirmation_message
    elif getattr(result, "cart_summary", None):
        text = result.cart_summary
    elif getattr(result, "total_message", None):
        text = result.total_message
    elif getattr(result, "summary", None):
        text = result.summary
    else:
        text = result.message
    return truncate_for_speech(text, limit)


def pending_orders_reply(pending_count: int, abandoned_count: int = 0) -> str:
    """What to tell the worker about saved orders, dropped ones first."""
    parts = []
    if abandoned_count:
        if abandoned_count == 1:
            parts.append("1 order could not be sent and was dropped. Please place it again.")
        else:
            parts.append(
                f"{abandoned_count} orders could not be sent and were dropped. Please place them again."
            )
    if pending_count:
        plural = "order is" if pending_count == 1 else "orders are"
        parts.append(f"{pending_count} {plural} saved and will be sent when the connection returns.")
    if not parts:
        return "All your orders have been sent."
    return " ".join(parts)
