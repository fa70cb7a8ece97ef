"""
Natural-language date references and spoken summaries for order history.

Workers say things like "what I ordered last Tuesday" or "two weeks ago".
``parse_date_reference`` turns that into a datetime window for the history
store; ``summarize_orders`` produces the short reply read back by voice.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from src.config import settings
from src.schemas.catalog_schema import FavoriteRecord, PastOrder
from src.tools.catalog import CatalogStore

logger = logging.getLogger(__name__)

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

_WEEK_WORDS = {"one": 1, "two": 2, "three": 3, "four": 4}

_DAYS_AGO = re.compile(r"(\d+)\s*days?\s*ago")
_WEEKS_AGO = re.compile(r"(\d+|one|two|three|four)\s*weeks?\s*ago")

SUMMARY_ITEM_LIMIT = 3


def _day_window(day: datetime) -> tuple[datetime, datetime]:
    return day, day + timedelta(days=1) - timedelta(microseconds=1)


def parse_date_reference(
    date_ref: str, now: Optional[datetime] = None
) -> Optional[tuple[datetime, datetime]]:
    """
    Resolve a spoken date reference to an inclusive (start, end) window.

    Returns None when the reference means "most recent" ("last time",
    "previous order") or is not understood; callers then fetch the newest
    orders without a window.
    """
    now = now or datetime.now(timezone.utc)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    ref = date_ref.lower().strip()

    for day_index, day_name in enumerate(DAY_NAMES):
        if day_name in ref:
            days_ago = today.weekday() - day_index
            if days_ago <= 0:
                days_ago += 7
            if "last" in ref and days_ago < 7:
                days_ago += 7
            return _day_window(today - timedelta(days=days_ago))

    if "yesterday" in ref:
        return _day_window(today - timedelta(days=1))

    if "today" in ref:
        return _day_window(today)

    match = _DAYS_AGO.search(ref)
    if match:
        return _day_window(today - timedelta(days=int(match.group(1))))

    if "last week" in ref:
        # Calendar week before the current one, Sunday through Saturday.
        days_since_sunday = (today.weekday() + 1) % 7
        start = today - timedelta(days=days_since_sunday + 7)
        return start, start + timedelta(days=7) - timedelta(microseconds=1)

    match = _WEEKS_AGO.search(ref)
    if match:
        raw = match.group(1)
        weeks = _WEEK_WORDS[raw] if raw in _WEEK_WORDS else int(raw)
        start = today - timedelta(weeks=weeks)
        return start, start + timedelta(days=7) - timedelta(microseconds=1)

    if "last time" in ref or "previous" in ref or "last order" in ref:
        return None

    logger.debug("Unrecognised date reference: %r", date_ref)
    return None


def _format_order_date(created_at: datetime) -> str:
    return f"{created_at.strftime('%A')}, {created_at.strftime('%b')} {created_at.day}"


def summarize_order(order: PastOrder) -> str:
    """One-sentence spoken description of a single order."""
    names = ", ".join(
        f"{item.quantity} {item.product_name}" for item in order.items[:SUMMARY_ITEM_LIMIT]
    )
    extra = len(order.items) - SUMMARY_ITEM_LIMIT
    more = f" and {extra} more items" if extra > 0 else ""
    return f"Your order from {_format_order_date(order.created_at)} had {names}{more}."


def summarize_orders(orders: list[PastOrder], date_ref: Optional[str] = None) -> str:
    """Spoken summary of an order history lookup."""
    if not orders:
        if date_ref:
            return f"I couldn't find any orders from {date_ref}."
        return "You haven't placed any orders yet."
    if len(orders) == 1:
        return summarize_order(orders[0])
    return f"Found {len(orders)} orders. The most recent had {len(orders[0].items)} items."


async def lookup_orders(
    catalog: CatalogStore,
    user_id: str,
    project_id: str,
    date_ref: Optional[str] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
) -> list[PastOrder]:
    """Past orders for a date reference, newest first. Store failures read as no orders."""
    limit = limit or settings.ordering.order_history_limit
    window = parse_date_reference(date_ref, now) if date_ref else None
    start, end = window if window else (None, None)
    try:
        return await catalog.list_orders(user_id, project_id, start=start, end=end, limit=limit)
    except Exception as exc:
        logger.warning("Order history unavailable for %s: %s", user_id, exc)
        return []


async def lookup_favorites(
    catalog: CatalogStore,
    user_id: str,
    project_id: str,
    limit: Optional[int] = None,
) -> list[FavoriteRecord]:
    """A worker's most used products in a project. Store failures read as none."""
    limit = limit or settings.ordering.max_favorites
    try:
        favorites = await catalog.list_favorites(user_id, project_id)
    except Exception as exc:
        logger.warning("Favourites unavailable for %s: %s", user_id, exc)
        return []
    return favorites[:limit]
