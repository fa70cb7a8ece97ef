"""
Voice turn orchestrator.

Owns what the worker currently sees (the numbered product list) and runs
one utterance end to end: resolve the intent, search or look up history,
apply the structured action to the attached cart, and produce the turn
result with its spoken reply.

Usage:
    orchestrator = VoiceTurnOrchestrator(resolver, matcher, catalog, cart=cart,
                                         project_id="proj-demo", user_id="worker-demo")
    result = await orchestrator.process_turn("give me 5 screws and some tape")
    print(result.message)
"""

from typing import Optional

from src.config import OrderingConfig, settings
from src.conversation.intent_resolver import IntentResolver, fallback_search
from src.conversation.replies import flatten_recommendations, pending_orders_reply, render_reply
from src.logging_context import get_turn_logger, new_turn_id
from src.matching.product_matcher import ProductMatcher
from src.schemas.cart_schema import CartContext, CartItem, Priority
from src.schemas.intent_schema import ContextProduct, ConversationContext, IntentType
from src.schemas.order_schema import SubmissionOutcome
from src.schemas.session_schema import SessionData
from src.schemas.turn_schema import (
    AddAllResult,
    AddedProduct,
    AddedToCart,
    AddNoteResult,
    CartClearResult,
    CartQueryResult,
    CartRemoveResult,
    CartTotalResult,
    CartUpdateResult,
    ClearResult,
    ErrorResult,
    NewSearchResult,
    OrderHistoryResult,
    Recommendation,
    ReorderFavoritesResult,
    ReorderPastResult,
    SelectProductResult,
    SetPriorityResult,
)
from src.session.cart_engine import CartEngine
from src.sync.offline_queue import OfflineSyncQueue
from src.tools.catalog import CatalogStore
from src.tools.order_history import lookup_favorites, lookup_orders, summarize_order, summarize_orders
from src.utils import format_cents

logger = get_turn_logger(__name__)

SELECTION_UNCLEAR = (
    "I couldn't understand which product you want. "
    "Try saying the number, like 'the first one' or 'number 2'."
)
NOTHING_TO_ADD = "There are no products to add. Try searching for something first."
REMOVE_UNCLEAR = "I couldn't understand which item to remove. Try saying something like 'remove the gloves'."
UPDATE_UNCLEAR = "I couldn't understand the update. Try saying something like 'change screws to 20'."
EMPTY_CART = "Your cart is empty."
NEEDS_WORKER = "I need to know who you are to look that up. Please sign in first."


def out_of_range_message(max_index: int) -> str:
    plural = "" if max_index == 1 else "s"
    return f"I only see {max_index} product{plural}. Try saying a number from 1 to {max_index}."


class VoiceTurnOrchestrator:
    """Runs voice turns for one worker in one project."""

    def __init__(
        self,
        resolver: IntentResolver,
        matcher: ProductMatcher,
        catalog: CatalogStore,
        cart: Optional[CartEngine] = None,
        queue: Optional[OfflineSyncQueue] = None,
        project_id: Optional[str] = None,
        user_id: Optional[str] = None,
        config: Optional[OrderingConfig] = None,
    ) -> None:
        self._resolver = resolver
        self._matcher = matcher
        self._catalog = catalog
        self._cart = cart
        self._queue = queue
        self._config = config or settings.ordering
        self.user_id = user_id
        self.conversation: Optional[ConversationContext] = None
        self.project_id: Optional[str] = None
        if project_id:
            self.set_project(project_id)

        self._handlers = {
            IntentType.NEW_SEARCH: self._handle_new_search,
            IntentType.SELECT_PRODUCT: self._handle_select_product,
            IntentType.ADD_ALL: self._handle_add_all,
            IntentType.CLEAR: self._handle_clear,
            IntentType.CART_QUERY: self._handle_cart_query,
            IntentType.CART_TOTAL: self._handle_cart_total,
            IntentType.CART_REMOVE: self._handle_cart_remove,
            IntentType.CART_UPDATE: self._handle_cart_update,
            IntentType.CART_CLEAR: self._handle_cart_clear,
            IntentType.ADD_NOTE: self._handle_add_note,
            IntentType.SET_PRIORITY: self._handle_set_priority,
            IntentType.REORDER_FAVORITES: self._handle_reorder_favorites,
            IntentType.REORDER_PAST: self._handle_reorder_past,
            IntentType.ORDER_HISTORY: self._handle_order_history,
        }

    @property
    def cart(self) -> Optional[CartEngine]:
        return self._cart

    @property
    def queue(self) -> Optional[OfflineSyncQueue]:
        return self._queue

    def set_project(self, project_id: str) -> None:
        """Switch the active project. Shown products are dropped; the cart follows the project."""
        if project_id != self.project_id:
            self.conversation = None
        self.project_id = project_id
        if self._cart is not None:
            self._cart.switch_project(project_id)

    def cart_context(self) -> Optional[CartContext]:
        return self._cart.to_cart_context() if self._cart is not None else None

    async def process_turn(self, transcription: str):
        """
        Run one utterance through resolution and handling.

        Returns:
            One of the turn result models in ``src.schemas.turn_schema``,
            with ``message`` holding the text to speak.

        Raises:
            ValueError: If no project is active.
        """
        if not self.project_id:
            raise ValueError("No active project; call set_project() first")

        turn_id = new_turn_id()
        logger.info("Turn %s: %r", turn_id, transcription)

        intent = await self._resolver.resolve(transcription, self.conversation, self.cart_context())
        logger.info(
            "Resolved %s (confidence %.2f%s)",
            intent.intent, intent.confidence,
            f", fallback: {intent.fallback_reason}" if intent.fallback_reason else "",
        )

        handler = self._handlers[IntentType(intent.intent)]
        result = await handler(intent, transcription)
        result.message = render_reply(result, self._config.max_spoken_chars)
        return result

    # --- Search and selection ---

    async def _handle_new_search(self, intent, transcription: str) -> NewSearchResult:
        recommendations = []
        suggestions = []
        seen_suppliers: set[str] = set()
        for item in intent.items:
            search = await self._matcher.search_project_products(
                self.project_id,
                item.description,
                item.search_terms,
                user_id=self.user_id,
            )
            recommendations.append(Recommendation(
                for_item=item.description,
                quantity=item.quantity,
                products=search.products,
            ))
            for suggestion in search.supplier_suggestions:
                if suggestion.id not in seen_suppliers:
                    seen_suppliers.add(suggestion.id)
                    suggestions.append(suggestion)
        suggestions = suggestions[: self._matcher.config.max_supplier_suggestions]

        missing = [r.for_item for r in recommendations if not r.products]
        no_match_message = None
        if missing and len(missing) == len(recommendations):
            if suggestions:
                no_match_message = (
                    "No matching products in your project catalogue. "
                    "Try browsing an external supplier catalog below."
                )
            else:
                no_match_message = (
                    f'I couldn\'t find "{", ".join(missing)}" in your project catalogue. '
                    "Try using different words, or browse the main catalogue to find what you need."
                )
        elif missing:
            no_match_message = (
                f"No matches found for: {', '.join(missing)}. "
                "Try different words or check the main catalogue."
            )

        shown = flatten_recommendations(recommendations)
        self.conversation = ConversationContext(products=[
            ContextProduct(
                index=i,
                product_id=p.id,
                product_name=p.name,
                sku=p.sku,
                price_per_unit=p.price_per_unit,
                unit=p.unit,
            )
            for i, p in enumerate(shown, 1)
        ]) if shown else None

        return NewSearchResult(
            transcription=transcription,
            items=intent.items,
            recommendations=recommendations,
            no_match_message=no_match_message,
            supplier_suggestions=suggestions or None,
        )

    async def _handle_select_product(self, intent, transcription: str):
        if self.conversation is None or not self.conversation.has_products:
            fallback = fallback_search(transcription, "selection without shown products")
            return await self._handle_new_search(fallback, transcription)
        if intent.index is None:
            return ErrorResult(transcription=transcription, error_message=SELECTION_UNCLEAR)

        product = self.conversation.get(intent.index)
        if product is None:
            return ErrorResult(
                transcription=transcription,
                error_message=out_of_range_message(self.conversation.max_index),
            )

        applied = self._add_to_cart(product, intent.quantity)
        return SelectProductResult(
            transcription=transcription,
            added_to_cart=AddedToCart(
                product_id=product.product_id,
                product_name=product.product_name,
                sku=product.sku,
                price_per_unit=product.price_per_unit,
                unit=product.unit,
                quantity=intent.quantity,
                confirmation_message=f"Adding {intent.quantity} {product.product_name} to your cart.",
            ),
            applied=applied,
        )

    async def _handle_add_all(self, intent, transcription: str):
        if self.conversation is None or not self.conversation.has_products:
            return ErrorResult(transcription=transcription, error_message=NOTHING_TO_ADD)

        added = []
        applied = self._cart is not None
        for product in self.conversation.products:
            applied = self._add_to_cart(product, 1) and applied
            added.append(AddedProduct(
                product_id=product.product_id,
                product_name=product.product_name,
                sku=product.sku,
                price_per_unit=product.price_per_unit,
                unit=product.unit,
                quantity=1,
            ))
        return AddAllResult(
            transcription=transcription,
            added_products=added,
            confirmation_message=f"Adding {len(added)} products to your cart.",
            applied=applied,
        )

    def _add_to_cart(self, product: ContextProduct, quantity: int) -> bool:
        if self._cart is None:
            return False
        self._cart.add_item(CartItem(
            product_id=product.product_id,
            name=product.product_name,
            sku=product.sku,
            quantity=quantity,
            price_per_unit=product.price_per_unit,
            unit=product.unit,
        ))
        return True

    async def _handle_clear(self, intent, transcription: str) -> ClearResult:
        self.conversation = None
        return ClearResult(transcription=transcription)

    # --- Cart ---

    async def _handle_cart_query(self, intent, transcription: str) -> CartQueryResult:
        cart = self.cart_context()
        if cart is None or cart.is_empty:
            summary = EMPTY_CART
        else:
            lines = ", ".join(f"{item.quantity} {item.name}" for item in cart.items)
            summary = f"Your cart has {lines}."
        return CartQueryResult(transcription=transcription, cart_summary=summary)

    async def _handle_cart_total(self, intent, transcription: str) -> CartTotalResult:
        cart = self.cart_context()
        if cart is None or cart.is_empty:
            message = EMPTY_CART
        else:
            message = f"Your total is {format_cents(cart.total_cents)} {self._config.currency_label}."
        return CartTotalResult(transcription=transcription, total_message=message)

    async def _handle_cart_remove(self, intent, transcription: str):
        if not intent.item_name:
            return ErrorResult(transcription=transcription, error_message=REMOVE_UNCLEAR)
        applied = False
        message = f"Removing {intent.item_name} from your cart."
        if self._cart is not None:
            applied = self._cart.remove_by_name(intent.item_name) is not None
            if not applied:
                message = f"I couldn't find {intent.item_name} in your cart."
        return CartRemoveResult(
            transcription=transcription,
            item_name=intent.item_name,
            confirmation_message=message,
            applied=applied,
        )

    async def _handle_cart_update(self, intent, transcription: str):
        if not intent.item_name or intent.new_quantity is None:
            return ErrorResult(transcription=transcription, error_message=UPDATE_UNCLEAR)
        applied = False
        message = f"Updating {intent.item_name} to {intent.new_quantity}."
        if self._cart is not None:
            applied = self._cart.update_quantity_by_name(intent.item_name, intent.new_quantity) is not None
            if not applied:
                message = f"I couldn't find {intent.item_name} in your cart."
        return CartUpdateResult(
            transcription=transcription,
            item_name=intent.item_name,
            new_quantity=intent.new_quantity,
            confirmation_message=message,
            applied=applied,
        )

    async def _handle_cart_clear(self, intent, transcription: str) -> CartClearResult:
        if self._cart is not None:
            self._cart.clear_items()
        return CartClearResult(
            transcription=transcription,
            confirmation_message="Clearing your cart.",
            applied=self._cart is not None,
        )

    async def _handle_add_note(self, intent, transcription: str) -> AddNoteResult:
        note = intent.note or transcription
        if self._cart is not None:
            self._cart.set_note(note)
        return AddNoteResult(
            transcription=transcription,
            note=note,
            confirmation_message=f"Adding note: {note}",
            applied=self._cart is not None,
        )

    async def _handle_set_priority(self, intent, transcription: str) -> SetPriorityResult:
        priority = intent.priority or Priority.URGENT
        if self._cart is not None:
            self._cart.set_priority(priority)
        message = (
            "Marking your order as urgent."
            if priority == Priority.URGENT
            else "Setting normal priority for your order."
        )
        return SetPriorityResult(
            transcription=transcription,
            priority=priority,
            confirmation_message=message,
            applied=self._cart is not None,
        )

    # --- History ---

    async def _handle_reorder_favorites(self, intent, transcription: str):
        if not self.user_id:
            return ErrorResult(transcription=transcription, error_message=NEEDS_WORKER)
        favorites = await lookup_favorites(self._catalog, self.user_id, self.project_id)
        if not favorites:
            return ReorderFavoritesResult(
                transcription=transcription,
                message="You don't have any usual items in this project yet.",
            )
        self.conversation = ConversationContext(products=[
            ContextProduct(
                index=i,
                product_id=f.product_id,
                product_name=f.product_name,
                sku=f.sku,
                price_per_unit=f.price_per_unit,
                unit=f.unit,
            )
            for i, f in enumerate(favorites, 1)
        ])
        listing = ", ".join(
            f"number {i} is {f.default_quantity} {f.product_name}" for i, f in enumerate(favorites, 1)
        )
        return ReorderFavoritesResult(
            transcription=transcription,
            favorites=favorites,
            message=f"Your usual items: {listing}.",
        )

    async def _handle_reorder_past(self, intent, transcription: str):
        if not self.user_id:
            return ErrorResult(transcription=transcription, error_message=NEEDS_WORKER)
        date_ref = intent.date_reference or "recently"
        orders = await lookup_orders(
            self._catalog, self.user_id, self.project_id,
            date_ref=intent.date_reference, limit=1,
        )
        if not orders:
            return ReorderPastResult(
                transcription=transcription,
                date_reference=date_ref,
                message=summarize_orders([], date_ref),
            )

        order = orders[0]
        reorderable = [item for item in order.items if item.product_id]
        if reorderable:
            self.conversation = ConversationContext(products=[
                ContextProduct(
                    index=i,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    sku=item.sku,
                    price_per_unit=item.price_per_unit,
                    unit=item.unit,
                )
                for i, item in enumerate(reorderable, 1)
            ])
        return ReorderPastResult(
            transcription=transcription,
            date_reference=date_ref,
            order=order,
            message=f"{summarize_order(order)} Say 'add them all' to order them again.",
        )

    async def _handle_order_history(self, intent, transcription: str):
        if not self.user_id:
            return ErrorResult(transcription=transcription, error_message=NEEDS_WORKER)
        orders = await lookup_orders(self._catalog, self.user_id, self.project_id)
        return OrderHistoryResult(
            transcription=transcription,
            orders=orders,
            summary=summarize_orders(orders),
        )

    # --- Submission ---

    async def submit_cart(self, kit_name: Optional[str] = None) -> Optional[SubmissionOutcome]:
        """
        Submit the cart, or queue it when it can't be confirmed.

        The cart is cleared once the order is confirmed or safely queued.
        Returns None when there is nothing to submit.

        Raises:
            RuntimeError: If no cart or queue is attached.
        """
        if self._cart is None or self._queue is None:
            raise RuntimeError("Submitting requires an attached cart and offline queue")
        state = self._cart.state
        if not state.items:
            return None
        outcome = await self._queue.submit_or_queue(
            self.project_id,
            state.items,
            notes=state.note,
            priority=state.priority,
            kit_name=kit_name,
        )
        self._cart.clear()
        self.conversation = None
        return outcome

    def review_pending_orders(self, session: Optional[SessionData] = None) -> str:
        """
        Spoken status of saved orders. Each abandoned order is reported once.

        When ``session`` is given its queued and abandoned order ids are
        brought in line with the queue.
        """
        if self._queue is None:
            return pending_orders_reply(0)
        abandoned = self._queue.take_abandoned()
        pending_ids = {order.id for order in self._queue.pending}
        if session is not None:
            session.reconcile_queue(pending_ids, [order.id for order in abandoned])
        return pending_orders_reply(len(pending_ids), len(abandoned))
