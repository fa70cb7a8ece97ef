"""
Intent resolution for one worker utterance.

Deterministic rules run first. Everything else is classified by the
inference gateway and then post-validated, so a model can never pick a
product that isn't shown or read "4mm" as a list position. Any gateway or
parsing failure degrades to a plain search for the whole utterance.
"""

import logging
import math
from typing import Any, Optional

from src.conversation.intent_rules import has_selection_reference, has_unit_number, match_rules
from src.inference.gateway import InferenceGateway
from src.inference.response_parser import ParseFallback, parse_json_object
from src.prompts.prompt_templates import build_intent_prompt
from src.prompts.system_prompts import INTENT_SYSTEM_PROMPT
from src.schemas.cart_schema import CartContext, Priority
from src.schemas.intent_schema import (
    PAYLOADLESS_INTENTS,
    AddNoteIntent,
    CartRemoveIntent,
    CartUpdateIntent,
    ConversationContext,
    IntentType,
    NewSearchIntent,
    ReorderPastIntent,
    SearchItem,
    SelectProductIntent,
    SetPriorityIntent,
)
from src.utils import clamp_score

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.3
DEFAULT_CONFIDENCE = 0.5


def _coerce_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _coerce_confidence(value: Any, default: float = DEFAULT_CONFIDENCE) -> float:
    try:
        return clamp_score(value)
    except (TypeError, ValueError):
        return default


def _optional_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def fallback_search(utterance: str, reason: str) -> NewSearchIntent:
    """Plain search for the whole utterance, used whenever classification fails."""
    terms = [word for word in utterance.split() if len(word) > 2]
    return NewSearchIntent(
        raw_utterance=utterance,
        items=[SearchItem(
            description=utterance,
            quantity=1,
            search_terms=terms,
            confidence=FALLBACK_CONFIDENCE,
        )],
        confidence=FALLBACK_CONFIDENCE,
        fallback_reason=reason,
    )


class IntentResolver:
    """Maps an utterance plus shown products and cart to one resolved intent."""

    def __init__(self, gateway: InferenceGateway) -> None:
        self._gateway = gateway

    async def resolve(
        self,
        utterance: str,
        conversation: Optional[ConversationContext] = None,
        cart: Optional[CartContext] = None,
    ):
        """
        Resolve one utterance. Never raises on gateway or parsing trouble.

        Returns:
            One of the intent models in ``src.schemas.intent_schema``.
        """
        utterance = utterance.strip()

        ruled = match_rules(utterance, conversation, cart)
        if ruled is not None:
            logger.debug("Rule matched %s for %r", ruled.intent, utterance)
            return ruled

        if not self._gateway.is_configured:
            return fallback_search(utterance, "inference not configured")

        prompt = build_intent_prompt(utterance, conversation, cart)
        try:
            text = await self._gateway.complete(prompt, system_prompt=INTENT_SYSTEM_PROMPT)
        except Exception as exc:
            logger.warning("Intent inference failed, searching raw utterance: %s", exc)
            return fallback_search(utterance, f"inference failed: {exc}")

        parsed = parse_json_object(text, required_keys=("intentType",))
        if isinstance(parsed, ParseFallback):
            logger.warning("Unusable intent response (%s), searching raw utterance", parsed.reason)
            return fallback_search(utterance, parsed.reason)

        return self._build_intent(parsed.value, utterance, conversation)

    def _build_intent(
        self,
        data: dict,
        utterance: str,
        conversation: Optional[ConversationContext],
    ):
        confidence = _coerce_confidence(data.get("confidence"))
        try:
            intent_type = IntentType(data.get("intentType"))
        except ValueError:
            logger.info("Unknown intent %r coerced to new_search", data.get("intentType"))
            return self._search(data, utterance, confidence)

        if intent_type == IntentType.NEW_SEARCH:
            return self._search(data, utterance, confidence)

        if intent_type == IntentType.SELECT_PRODUCT:
            if conversation is None or not conversation.has_products:
                logger.info("select_product without shown products coerced to new_search")
                return self._search(data, utterance, confidence)
            if has_unit_number(utterance) and not has_selection_reference(utterance):
                logger.info("Only specification numbers in %r, treating as new_search", utterance)
                return self._search(data, utterance, confidence)
            selection = data.get("productSelection")
            selection = selection if isinstance(selection, dict) else {}
            quantity = _coerce_int(selection.get("quantity"))
            return SelectProductIntent(
                raw_utterance=utterance,
                index=_coerce_int(selection.get("index")),
                quantity=quantity if quantity and quantity >= 1 else 1,
                confidence=confidence,
            )

        if intent_type in PAYLOADLESS_INTENTS:
            return PAYLOADLESS_INTENTS[intent_type](raw_utterance=utterance, confidence=confidence)

        action = data.get("cartAction")
        action = action if isinstance(action, dict) else {}

        if intent_type == IntentType.CART_REMOVE:
            return CartRemoveIntent(
                raw_utterance=utterance,
                item_name=_optional_text(action.get("itemName")),
                confidence=confidence,
            )
        if intent_type == IntentType.CART_UPDATE:
            return CartUpdateIntent(
                raw_utterance=utterance,
                item_name=_optional_text(action.get("itemName")),
                new_quantity=_coerce_int(action.get("newQuantity")),
                confidence=confidence,
            )
        if intent_type == IntentType.REORDER_PAST:
            return ReorderPastIntent(
                raw_utterance=utterance,
                date_reference=_optional_text(data.get("dateReference")),
                confidence=confidence,
            )
        if intent_type == IntentType.ADD_NOTE:
            return AddNoteIntent(
                raw_utterance=utterance,
                note=_optional_text(data.get("note")),
                confidence=confidence,
            )
        # SET_PRIORITY is the only remaining member of the closed set.
        try:
            priority = Priority(str(data.get("priority", "")).lower())
        except ValueError:
            priority = None
        return SetPriorityIntent(raw_utterance=utterance, priority=priority, confidence=confidence)

    def _search(self, data: dict, utterance: str, confidence: float) -> NewSearchIntent:
        items = []
        raw_items = data.get("items")
        for raw in raw_items if isinstance(raw_items, list) else []:
            if not isinstance(raw, dict):
                continue
            description = _optional_text(raw.get("description"))
            if description is None:
                continue
            quantity = _coerce_int(raw.get("quantity"))
            terms = raw.get("searchTerms")
            items.append(SearchItem(
                description=description,
                quantity=max(quantity or 1, 1),
                search_terms=[t for t in terms if isinstance(t, str)] if isinstance(terms, list) else [],
                confidence=_coerce_confidence(raw.get("confidence")),
            ))
        if not items:
            items = [SearchItem(description=utterance, quantity=1)]
        return NewSearchIntent(raw_utterance=utterance, items=items, confidence=confidence)
