"""
Ordering agent: the worker's voice interface to the ordering pipeline.

The LLM never decides products or quantities itself: every request is
passed unchanged to ``process_order_request``, which runs a full
orchestrator turn and returns the reply to speak.
"""

import logging
from typing import Optional

from livekit.agents import Agent, RunContext, function_tool

from src.config import settings
from src.conversation.orchestrator import VoiceTurnOrchestrator
from src.logging_context import get_turn_id
from src.prompts.system_prompts import ORDERING_AGENT_PROMPT
from src.schemas.session_schema import SessionData
from src.schemas.turn_schema import ErrorResult
from src.utils import format_cents, truncate_for_speech

logger = logging.getLogger(__name__)


class OrderingAgent(Agent):
    """Voice ordering assistant backed by a ``VoiceTurnOrchestrator``."""

    def __init__(self, orchestrator: VoiceTurnOrchestrator) -> None:
        super().__init__(
            instructions=ORDERING_AGENT_PROMPT,
        )
        self._orchestrator = orchestrator

    def _speak(self, text: str) -> str:
        return truncate_for_speech(text, settings.ordering.max_spoken_chars)

    @function_tool()
    async def process_order_request(self, context: RunContext[SessionData], request: str) -> str:
        """Handle anything the worker says about products, their cart, or past orders.

        Pass the worker's words unchanged.
        """
        result = await self._orchestrator.process_turn(request)
        session = context.userdata
        session.turn_count += 1
        session.last_intent = result.intent_type
        if isinstance(result, ErrorResult):
            session.error_count += 1
        logger.info("Turn %s handled as %s", get_turn_id(), result.intent_type)
        return result.message

    @function_tool()
    async def submit_order(
        self, context: RunContext[SessionData], kit_name: Optional[str] = None
    ) -> str:
        """Place the order for everything in the cart.

        Only call AFTER the worker confirms they are done. kit_name is set
        only when the worker is ordering a named kit.
        """
        outcome = await self._orchestrator.submit_cart(kit_name=kit_name)
        if outcome is None:
            return "Your cart is empty, so there's nothing to order yet."

        if outcome.is_queued:
            context.userdata.queued_order_ids.append(outcome.queued_order_id)
            return self._speak(
                "I can't reach the ordering system right now, so I've saved your order. "
                "It will be sent automatically when the connection returns."
            )

        confirmation = outcome.confirmation
        context.userdata.confirmed_order_ids.append(confirmation.order_id)
        reference = confirmation.order_number or confirmation.order_id
        approval = (
            "It's approved."
            if confirmation.is_auto_approved
            else "It's waiting for your manager's approval."
        )
        return self._speak(
            f"Order {reference} placed, total {format_cents(confirmation.total_cents)} "
            f"{settings.ordering.currency_label}. {approval}"
        )

    @function_tool()
    async def check_pending_orders(self, context: RunContext[SessionData]) -> str:
        """Tell the worker whether saved orders are still waiting or were dropped."""
        return self._speak(self._orchestrator.review_pending_orders(context.userdata))
