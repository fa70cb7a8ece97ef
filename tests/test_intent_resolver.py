"""Tests for intent resolution over rules plus inference."""

import pytest

from src.conversation.intent_resolver import FALLBACK_CONFIDENCE, IntentResolver, fallback_search
from src.inference.gateway import InferenceError
from src.schemas.cart_schema import Priority
from tests.conftest import FakeGateway, make_cart_context, make_conversation


class TestRulesFirst:
    @pytest.mark.asyncio
    async def test_rule_match_skips_inference(self):
        gateway = FakeGateway([{"intentType": "new_search"}])
        intent = await IntentResolver(gateway).resolve("the second one", make_conversation(3))
        assert intent.intent == "select_product"
        assert intent.index == 2
        assert gateway.prompts == []


class TestInference:
    @pytest.mark.asyncio
    async def test_multi_item_search(self):
        gateway = FakeGateway([{
            "intentType": "new_search",
            "confidence": 0.9,
            "items": [
                {"description": "screws", "quantity": 5, "searchTerms": ["screw"], "confidence": 0.9},
                {"description": "tape", "searchTerms": ["tape", "duct"]},
            ],
        }])
        intent = await IntentResolver(gateway).resolve("give me 5 screws and some tape")
        assert intent.intent == "new_search"
        assert [(i.description, i.quantity) for i in intent.items] == [("screws", 5), ("tape", 1)]
        assert intent.items[1].search_terms == ["tape", "duct"]
        assert intent.confidence == 0.9

    @pytest.mark.asyncio
    async def test_prompt_carries_utterance(self):
        gateway = FakeGateway([{"intentType": "new_search", "items": []}])
        await IntentResolver(gateway).resolve("a box of wood screws")
        assert "a box of wood screws" in gateway.prompts[0]

    @pytest.mark.asyncio
    async def test_search_without_items_uses_utterance(self):
        gateway = FakeGateway([{"intentType": "new_search"}])
        intent = await IntentResolver(gateway).resolve("safety helmets")
        assert intent.items[0].description == "safety helmets"
        assert intent.items[0].quantity == 1

    @pytest.mark.asyncio
    async def test_select_without_context_becomes_search(self):
        gateway = FakeGateway([{"intentType": "select_product", "productSelection": {"index": 1}}])
        intent = await IntentResolver(gateway).resolve("that green thing")
        assert intent.intent == "new_search"

    @pytest.mark.asyncio
    async def test_unit_number_is_never_a_selection(self):
        gateway = FakeGateway([{
            "intentType": "select_product",
            "productSelection": {"index": 4, "quantity": 1},
        }])
        intent = await IntentResolver(gateway).resolve("the 4mm ones", make_conversation(5))
        assert intent.intent == "new_search"

    @pytest.mark.asyncio
    async def test_select_with_context(self):
        gateway = FakeGateway([{
            "intentType": "select_product",
            "productSelection": {"index": "2", "quantity": 0},
        }])
        intent = await IntentResolver(gateway).resolve("the cheaper one", make_conversation(3))
        assert intent.intent == "select_product"
        assert intent.index == 2
        assert intent.quantity == 1

    @pytest.mark.asyncio
    async def test_unknown_intent_becomes_search(self):
        gateway = FakeGateway([{"intentType": "dance", "items": [{"description": "gloves"}]}])
        intent = await IntentResolver(gateway).resolve("gloves maybe")
        assert intent.intent == "new_search"
        assert intent.items[0].description == "gloves"

    @pytest.mark.asyncio
    async def test_cart_update_payload(self):
        gateway = FakeGateway([{
            "intentType": "cart_update",
            "cartAction": {"itemName": "screws", "newQuantity": 12},
        }])
        cart = make_cart_context(("Wood Screws 4x40mm", 5, 1290))
        intent = await IntentResolver(gateway).resolve("bump those screws up to a dozen", cart=cart)
        assert intent.intent == "cart_update"
        assert intent.item_name == "screws"
        assert intent.new_quantity == 12

    @pytest.mark.asyncio
    async def test_payloadless_intent(self):
        gateway = FakeGateway([{"intentType": "cart_query", "confidence": 0.8}])
        intent = await IntentResolver(gateway).resolve("run me through it")
        assert intent.intent == "cart_query"
        assert intent.confidence == 0.8

    @pytest.mark.asyncio
    async def test_reorder_date_reference(self):
        gateway = FakeGateway([{"intentType": "reorder_past", "dateReference": "last friday"}])
        intent = await IntentResolver(gateway).resolve("same stuff as friday before last")
        assert intent.date_reference == "last friday"

    @pytest.mark.asyncio
    async def test_priority_is_normalised(self):
        gateway = FakeGateway([
            {"intentType": "set_priority", "priority": "URGENT"},
            {"intentType": "set_priority", "priority": "asap"},
        ])
        resolver = IntentResolver(gateway)
        assert (await resolver.resolve("we need it yesterday")).priority == Priority.URGENT
        assert (await resolver.resolve("we need it asap")).priority is None

    @pytest.mark.asyncio
    async def test_out_of_range_confidence_is_clamped(self):
        gateway = FakeGateway([{"intentType": "clear", "confidence": 7}])
        intent = await IntentResolver(gateway).resolve("scrap these results")
        assert intent.confidence == 1.0

    @pytest.mark.asyncio
    async def test_non_finite_quantity_defaults_to_one(self):
        gateway = FakeGateway([
            '{"intentType": "new_search", "items": [{"description": "screws", "quantity": NaN}]}',
            '{"intentType": "new_search", "items": [{"description": "tape", "quantity": Infinity}]}',
        ])
        resolver = IntentResolver(gateway)
        first = await resolver.resolve("some screws")
        second = await resolver.resolve("loads of tape")
        assert [(i.description, i.quantity) for i in first.items] == [("screws", 1)]
        assert [(i.description, i.quantity) for i in second.items] == [("tape", 1)]

    @pytest.mark.asyncio
    async def test_non_finite_selection_and_confidence(self):
        gateway = FakeGateway([
            '{"intentType": "select_product", "confidence": NaN, '
            '"productSelection": {"index": NaN, "quantity": -Infinity}}',
        ])
        intent = await IntentResolver(gateway).resolve("that one please", make_conversation(3))
        assert intent.intent == "select_product"
        assert intent.index is None
        assert intent.quantity == 1
        assert intent.confidence == 0.5


class TestFallback:
    @pytest.mark.asyncio
    async def test_unconfigured_gateway(self, offline_gateway):
        intent = await IntentResolver(offline_gateway).resolve("wood screws")
        assert intent.intent == "new_search"
        assert intent.confidence == FALLBACK_CONFIDENCE
        assert intent.fallback_reason == "inference not configured"
        assert offline_gateway.prompts == []

    @pytest.mark.asyncio
    async def test_gateway_error(self):
        gateway = FakeGateway([InferenceError("timeout")])
        intent = await IntentResolver(gateway).resolve("wood screws")
        assert intent.intent == "new_search"
        assert intent.confidence == FALLBACK_CONFIDENCE
        assert "timeout" in intent.fallback_reason

    @pytest.mark.asyncio
    async def test_unparseable_response(self):
        gateway = FakeGateway(["I think they want screws"])
        intent = await IntentResolver(gateway).resolve("wood screws")
        assert intent.confidence == FALLBACK_CONFIDENCE
        assert intent.items[0].description == "wood screws"

    @pytest.mark.asyncio
    async def test_missing_intent_type(self):
        gateway = FakeGateway([{"items": []}])
        intent = await IntentResolver(gateway).resolve("wood screws")
        assert intent.fallback_reason == "missing keys: intentType"

    def test_fallback_search_terms(self):
        intent = fallback_search("a box of wood screws", "test")
        assert intent.items[0].search_terms == ["box", "wood", "screws"]
