"""Shared test fixtures and helpers."""

import json
from typing import Any, Optional

import pytest

from src.conversation.intent_resolver import IntentResolver
from src.conversation.orchestrator import VoiceTurnOrchestrator
from src.inference.gateway import InferenceError
from src.matching.product_matcher import ProductMatcher
from src.schemas.cart_schema import CartContext, CartContextItem, CartItem
from src.schemas.intent_schema import ContextProduct, ConversationContext
from src.schemas.order_schema import OrderConfirmation
from src.session.cart_engine import CartEngine
from src.session.storage import MemoryStorage
from src.sync.offline_queue import OfflineSyncQueue
from src.sync.submitter import SubmissionError
from src.tools.catalog import DEMO_PROJECT_ID, DEMO_USER_ID, InMemoryCatalogStore


class FakeGateway:
    """Scripted stand-in for the inference gateway.

    Each ``complete`` call pops the next scripted response. Dicts and lists
    are JSON-encoded, exceptions are raised, strings are returned as-is.
    """

    def __init__(self, responses: Optional[list[Any]] = None, configured: bool = True) -> None:
        self._responses = list(responses or [])
        self._configured = configured
        self.prompts: list[str] = []

    @property
    def is_configured(self) -> bool:
        return self._configured

    async def complete(self, prompt: str, system_prompt: Optional[str] = None,
                       max_tokens: Optional[int] = None) -> str:
        self.prompts.append(prompt)
        if not self._responses:
            raise InferenceError("no scripted response left")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, (dict, list)):
            return json.dumps(response)
        return response


class FakeSubmitter:
    """Order submitter that fails while ``fail`` is set."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.submitted: list[str] = []

    async def submit(self, order) -> OrderConfirmation:
        self.submitted.append(order.id)
        if self.fail:
            raise SubmissionError("network unavailable")
        return OrderConfirmation(order_id=f"srv-{order.id[:8]}", is_auto_approved=True, total_cents=0)


class FailingStorage(MemoryStorage):
    """Memory storage whose writes raise ``OSError`` while ``fail`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.fail = False

    def save(self, key, value) -> None:
        if self.fail:
            raise OSError("disk full")
        super().save(key, value)


def make_cart_item(
    product_id: str = "prod-gloves-nitrile",
    name: str = "Nitrile Work Gloves",
    sku: str = "GL-NIT-9",
    quantity: int = 1,
    price_per_unit: int = 500,
    unit: str = "pair",
) -> CartItem:
    return CartItem(
        product_id=product_id, name=name, sku=sku,
        quantity=quantity, price_per_unit=price_per_unit, unit=unit,
    )


def make_conversation(count: int) -> ConversationContext:
    """Shown products 1..count with predictable ids and names."""
    return ConversationContext(products=[
        ContextProduct(
            index=i,
            product_id=f"prod-{i}",
            product_name=f"Product {i}",
            sku=f"SKU-{i}",
            price_per_unit=100 * i,
            unit="piece",
        )
        for i in range(1, count + 1)
    ])


def make_cart_context(*items: tuple[str, int, int]) -> CartContext:
    """Cart context from (name, quantity, price_per_unit) tuples."""
    lines = [CartContextItem(name=n, quantity=q, price_per_unit=p) for n, q, p in items]
    return CartContext(items=lines, total_cents=sum(q * p for _, q, p in items))


@pytest.fixture
def catalog():
    return InMemoryCatalogStore()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def cart(storage):
    engine = CartEngine(storage)
    engine.switch_project(DEMO_PROJECT_ID)
    return engine


@pytest.fixture
def offline_gateway():
    """A gateway with no API key: rules and keyword matching only."""
    return FakeGateway(configured=False)


@pytest.fixture
def submitter():
    return FakeSubmitter()


@pytest.fixture
def queue(submitter):
    return OfflineSyncQueue(submitter, MemoryStorage())


def build_test_orchestrator(
    gateway,
    catalog,
    cart: Optional[CartEngine] = None,
    queue: Optional[OfflineSyncQueue] = None,
    user_id: Optional[str] = DEMO_USER_ID,
) -> VoiceTurnOrchestrator:
    return VoiceTurnOrchestrator(
        resolver=IntentResolver(gateway),
        matcher=ProductMatcher(gateway, catalog),
        catalog=catalog,
        cart=cart,
        queue=queue,
        project_id=DEMO_PROJECT_ID,
        user_id=user_id,
    )
