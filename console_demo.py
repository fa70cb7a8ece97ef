"""
Offline console demo: runs voice ordering turns without any API keys.

Uses the real rule layer, keyword matching, cart engine, and offline queue
over the in-memory demo catalogue. Order submission goes to a local mock
endpoint, and connectivity can be toggled to show queued orders being
delivered when the site comes back online.

Usage:
    python console_demo.py
    python console_demo.py --scenario ordering
    python console_demo.py --scenario offline
    python console_demo.py --scenario history
"""

import argparse
import asyncio
import json
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import httpx

from src.config import settings
from src.conversation.factory import build_orchestrator
from src.inference.gateway import InferenceGateway
from src.schemas.catalog_schema import FavoriteRecord, PastOrder, PastOrderItem
from src.schemas.session_schema import SessionData
from src.schemas.turn_schema import ErrorResult
from src.session.storage import MemoryStorage
from src.sync.offline_queue import SyncEvent
from src.sync.submitter import OrderSubmitter
from src.tools.catalog import DEMO_PROJECT_ID, DEMO_USER_ID, InMemoryCatalogStore
from src.utils import format_cents

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


def _demo_catalog() -> InMemoryCatalogStore:
    """Demo catalogue with one usual item and an order placed yesterday."""
    catalog = InMemoryCatalogStore()
    catalog.add_favorite(DEMO_USER_ID, DEMO_PROJECT_ID, FavoriteRecord(
        product_id="prod-gloves-nitrile", product_name="Nitrile Work Gloves", sku="GL-NIT-9",
        price_per_unit=500, unit="pair", usage_count=7, default_quantity=5,
    ))
    catalog.add_favorite(DEMO_USER_ID, DEMO_PROJECT_ID, FavoriteRecord(
        product_id="prod-tape-duct", product_name="Duct Tape 50mm", sku="DT-50",
        price_per_unit=750, unit="roll", usage_count=3, default_quantity=2,
    ))
    catalog.add_order(DEMO_USER_ID, DEMO_PROJECT_ID, PastOrder(
        order_id="ord-1001",
        created_at=datetime.now(timezone.utc) - timedelta(days=1),
        total_cents=3480,
        status="delivered",
        items=[
            PastOrderItem(product_id="prod-anchor-8", product_name="Nylon Wall Anchors 8mm",
                          sku="NA-8", quantity=2, price_per_unit=890, unit="pack"),
            PastOrderItem(product_id="prod-helmet", product_name="Safety Helmet White",
                          sku="HM-W", quantity=1, price_per_unit=1990, unit="piece"),
        ],
    ))
    return catalog


def _mock_order_endpoint(request: httpx.Request) -> httpx.Response:
    """Stands in for the ordering backend: confirms every order."""
    body = json.loads(request.content)
    return httpx.Response(201, json={
        "orderId": f"ord-{uuid.uuid4().hex[:6]}",
        "orderNumber": f"SV-{uuid.uuid4().hex[:4].upper()}",
        "isAutoApproved": len(body["items"]) <= 3,
        "totalCents": 0,
    })


class ConsoleSession:
    """Runs ordering turns in the terminal against the demo catalogue."""

    def __init__(self) -> None:
        self.online = True
        self.session = SessionData(project_id=DEMO_PROJECT_ID, user_id=DEMO_USER_ID)
        self.orchestrator = build_orchestrator(
            project_id=DEMO_PROJECT_ID,
            user_id=DEMO_USER_ID,
            catalog=_demo_catalog(),
            gateway=InferenceGateway(replace(settings.model, llm_api_key="")),
            cart_storage=MemoryStorage(),
            queue_storage=MemoryStorage(),
            submitter=OrderSubmitter(transport=httpx.MockTransport(self._endpoint)),
            connectivity_probe=lambda: self.online,
        )

    def _endpoint(self, request: httpx.Request) -> httpx.Response:
        if not self.online:
            raise httpx.ConnectError("Site network is down", request=request)
        return _mock_order_endpoint(request)

    def agent_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[Assistant]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "ordering": [
            "wood screws and duct tape",
            "order 10 of the first one",
            "add 2 of number 3",
            "what's in my cart",
            "change the screws to 20",
            "mark it urgent",
            "add a note: deliver to the north gate",
            "what's my total",
            "submit",
        ],
        "offline": [
            "nitrile gloves",
            "the first one",
            "go offline",
            "submit",
            "what's pending",
            "go online",
            "what's pending",
        ],
        "history": [
            "show my past orders",
            "reorder what I ordered yesterday",
            "add them all",
            "my usual",
            "number 1",
            "what's in my cart",
        ],
    }

    MAX_INPUT_LENGTH = 500

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        self.agent_say("Hi, what do you need for the site today?")

        for step in steps:
            print(f"\n{BLUE}[Worker] {RESET}{step}")
            self._process_input(step)

        self._summary(f"Scenario '{scenario}' complete.")

    def run(self) -> None:
        self._banner("Console Demo", "Type 'quit' to exit, 'submit' to place the order")
        self.agent_say("Hi, what do you need for the site today?")

        while True:
            user_input = input(f"\n{BLUE}[Worker] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                break

            if len(user_input) > self.MAX_INPUT_LENGTH:
                self.agent_say("That was quite long. Could you keep it brief for me?")
                continue

            self._process_input(user_input)

        self._summary("Session ended.")

    def _banner(self, title: str, subtitle: str = "") -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  SITE VOICE ORDERING - {title}{RESET}")
        print(f"{BOLD}  Project: {DEMO_PROJECT_ID}  Worker: {DEMO_USER_ID}{RESET}")
        if subtitle:
            print(f"{BOLD}  {subtitle}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def _summary(self, title: str) -> None:
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {title}{RESET}")
        print(f"{DIM}  Turns: {self.session.turn_count}, errors: {self.session.error_count}{RESET}")
        print(f"{DIM}  Confirmed orders: {self.session.confirmed_order_ids}{RESET}")
        print(f"{DIM}  Orders still queued: {self.orchestrator.queue.pending_count}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _process_input(self, text: str) -> None:
        command = text.lower().strip()
        if command in ("submit", "place the order", "that's all"):
            asyncio.run(self._submit())
        elif command == "go offline":
            self.online = False
            self.orchestrator.queue.handle_event(SyncEvent.OFFLINE)
            self.system_log("Network: offline")
        elif command == "go online":
            self.online = True
            self.system_log("Network: online")
            report = asyncio.run(self.orchestrator.queue.dispatch(SyncEvent.ONLINE))
            if report is not None:
                self.system_log(
                    f"Drain: {len(report.delivered)} delivered, {len(report.retried)} retried, "
                    f"{len(report.abandoned)} abandoned"
                )
        elif command == "what's pending":
            self.agent_say(self.orchestrator.review_pending_orders(self.session))
        else:
            asyncio.run(self._turn(text))

    async def _turn(self, text: str) -> None:
        result = await self.orchestrator.process_turn(text)
        self.session.turn_count += 1
        self.session.last_intent = result.intent_type
        if isinstance(result, ErrorResult):
            self.session.error_count += 1
        self.system_log(f"Intent: {result.intent_type}")
        self.agent_say(result.message)
        cart = self.orchestrator.cart
        if cart is not None and cart.items:
            self.system_log(
                f"Cart: {cart.get_item_count()} items, "
                f"{format_cents(cart.get_total_cents())} {settings.ordering.currency_label}"
            )

    async def _submit(self) -> None:
        outcome = await self.orchestrator.submit_cart()
        if outcome is None:
            self.agent_say("Your cart is empty, so there's nothing to order yet.")
        elif outcome.is_queued:
            self.session.queued_order_ids.append(outcome.queued_order_id)
            self.agent_say("No connection right now. I've saved your order and will send it later.")
            self.system_log(f"{YELLOW}Queued order {outcome.queued_order_id}{RESET}")
        else:
            confirmation = outcome.confirmation
            self.session.confirmed_order_ids.append(confirmation.order_id)
            status = "approved" if confirmation.is_auto_approved else "waiting for approval"
            self.agent_say(f"Order {confirmation.order_number} placed and {status}.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
