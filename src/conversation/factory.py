"""
Central wiring of the ordering pipeline.

Entry points (voice agent, console demo, tests) build their orchestrator
here instead of assembling gateway, matcher, cart, and queue themselves.
"""

import logging
from typing import Callable, Optional

from src.config import AppConfig, settings
from src.conversation.intent_resolver import IntentResolver
from src.conversation.orchestrator import VoiceTurnOrchestrator
from src.inference.gateway import InferenceGateway
from src.matching.product_matcher import ProductMatcher
from src.schemas.order_schema import QueuedOrder
from src.session.cart_engine import CartEngine
from src.session.storage import JsonFileStorage, Storage
from src.sync.offline_queue import OfflineSyncQueue
from src.sync.submitter import OrderSubmitter
from src.tools.catalog import CatalogStore, InMemoryCatalogStore

logger = logging.getLogger(__name__)


def _log_abandoned(order: QueuedOrder) -> None:
    logger.error(
        "Order %s for %s could not be delivered and was dropped from the queue",
        order.id, order.project_id,
    )


def build_orchestrator(
    project_id: str,
    user_id: Optional[str] = None,
    catalog: Optional[CatalogStore] = None,
    gateway: Optional[InferenceGateway] = None,
    cart_storage: Optional[Storage] = None,
    queue_storage: Optional[Storage] = None,
    submitter: Optional[OrderSubmitter] = None,
    connectivity_probe: Optional[Callable[[], bool]] = None,
    on_abandoned: Optional[Callable[[QueuedOrder], None]] = None,
    config: Optional[AppConfig] = None,
) -> VoiceTurnOrchestrator:
    """Build a fully wired orchestrator. Unset collaborators come from configuration."""
    config = config or settings
    catalog = catalog or InMemoryCatalogStore()
    gateway = gateway or InferenceGateway(config.model)
    if not gateway.is_configured:
        logger.warning("Inference not configured; using rules and keyword matching only")

    queue_kwargs = {}
    if connectivity_probe is not None:
        queue_kwargs["connectivity_probe"] = connectivity_probe
    queue = OfflineSyncQueue(
        submitter or OrderSubmitter(config.sync),
        queue_storage or JsonFileStorage(config.sync.queue_storage_path),
        on_abandoned=on_abandoned or _log_abandoned,
        config=config.sync,
        **queue_kwargs,
    )
    cart = CartEngine(cart_storage or JsonFileStorage(config.ordering.cart_storage_path))

    return VoiceTurnOrchestrator(
        resolver=IntentResolver(gateway),
        matcher=ProductMatcher(gateway, catalog, config.matching),
        catalog=catalog,
        cart=cart,
        queue=queue,
        project_id=project_id,
        user_id=user_id,
        config=config.ordering,
    )
