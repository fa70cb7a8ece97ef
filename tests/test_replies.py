"""Tests for spoken reply rendering."""

from src.conversation.replies import flatten_recommendations, pending_orders_reply, render_reply
from src.schemas.catalog_schema import ProductMatch
from src.schemas.intent_schema import SearchItem
from src.schemas.turn_schema import (
    CartTotalResult,
    NewSearchResult,
    Recommendation,
    ReorderFavoritesResult,
)


def _match(product_id: str, name: str, price: int = 1000) -> ProductMatch:
    return ProductMatch(
        id=product_id, name=name, sku=product_id.upper(), unit="box",
        price_per_unit=price, match_score=0.9, match_reason="test",
    )


def _search(*recommendations: Recommendation) -> NewSearchResult:
    return NewSearchResult(
        transcription="t",
        items=[SearchItem(description=r.for_item) for r in recommendations],
        recommendations=list(recommendations),
    )


class TestFlatten:
    def test_shared_product_is_shown_once(self):
        screws = _match("p1", "Wood Screws")
        recs = [
            Recommendation(for_item="screws", quantity=1, products=[screws, _match("p2", "Drywall Screws")]),
            Recommendation(for_item="wood screws", quantity=1, products=[screws, _match("p3", "Deck Screws")]),
        ]
        assert [p.id for p in flatten_recommendations(recs)] == ["p1", "p2", "p3"]


class TestRenderReply:
    def test_only_first_three_options_are_spoken(self):
        products = [_match(f"p{i}", f"Screw {i}") for i in range(1, 6)]
        text = render_reply(_search(Recommendation(for_item="screws", quantity=1, products=products)))
        assert text.startswith("For screws I found 5 options: number 1 is Screw 1 at 10.00 per box")
        assert "Screw 3" in text
        assert "Screw 4" not in text

    def test_spoken_numbers_follow_shared_positions(self):
        screws = _match("p1", "Wood Screws")
        text = render_reply(_search(
            Recommendation(for_item="screws", quantity=1, products=[screws]),
            Recommendation(for_item="deck screws", quantity=1, products=[_match("p2", "Deck Screws"), screws]),
        ))
        assert "For deck screws I found 2 options: number 2 is Deck Screws" in text
        assert "number 1 is Wood Screws" in text.split("For deck screws")[1]

    def test_reply_is_truncated(self):
        result = CartTotalResult(transcription="t", total_message="word " * 100)
        text = render_reply(result, limit=40)
        assert len(text) <= 40
        assert text.endswith("...")

    def test_message_fallback(self):
        result = ReorderFavoritesResult(transcription="t", message="Your usual items: number 1 is 5 Gloves.")
        assert render_reply(result) == "Your usual items: number 1 is 5 Gloves."


class TestPendingOrdersReply:
    def test_all_sent(self):
        assert pending_orders_reply(0) == "All your orders have been sent."

    def test_pending_only(self):
        assert pending_orders_reply(2) == "2 orders are saved and will be sent when the connection returns."

    def test_dropped_orders_come_first(self):
        assert pending_orders_reply(1, 2) == (
            "2 orders could not be sent and were dropped. Please place them again. "
            "1 order is saved and will be sent when the connection returns."
        )
