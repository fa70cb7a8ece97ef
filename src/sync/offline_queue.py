"""
Offline order queue with retry-until-ceiling delivery.

Orders that can't be confirmed are queued and persisted. Environment
signals arrive as explicit ``SyncEvent`` values: ``handle_event`` decides
what to do, ``dispatch`` decides and drains. A drain only runs when no other
drain is in flight and the live connectivity probe reports online.

Usage:
    queue = OfflineSyncQueue(OrderSubmitter(), MemoryStorage(), probe)
    await queue.submit_or_queue(project_id, items)
    report = await queue.dispatch(SyncEvent.ONLINE)
"""

import asyncio
import logging
import uuid
from enum import Enum
from typing import Callable, Optional

from pydantic import ValidationError

from src.config import SyncConfig, settings
from src.schemas.cart_schema import CartItem, Priority
from src.schemas.order_schema import DrainReport, QueuedOrder, SubmissionOutcome
from src.session.storage import Storage
from src.sync.submitter import OrderSubmitter, SubmissionError
from src.sync.sync_state import OrderSyncMachine, OrderSyncState, SyncTrigger

logger = logging.getLogger(__name__)

QUEUE_KEY = "offline_queue"


class SyncEvent(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    VISIBLE = "visible"
    HIDDEN = "hidden"
    TIMER_TICK = "timer_tick"


class SyncAction(str, Enum):
    DRAIN = "drain"
    NONE = "none"


_DRAIN_EVENTS = frozenset({SyncEvent.ONLINE, SyncEvent.VISIBLE, SyncEvent.TIMER_TICK})


def _always_online() -> bool:
    return True


class OfflineSyncQueue:
    """Owns the persisted list of unconfirmed orders and drains it."""

    def __init__(
        self,
        submitter: OrderSubmitter,
        storage: Storage,
        connectivity_probe: Callable[[], bool] = _always_online,
        on_abandoned: Optional[Callable[[QueuedOrder], None]] = None,
        config: Optional[SyncConfig] = None,
        key: str = QUEUE_KEY,
    ) -> None:
        self._submitter = submitter
        self._storage = storage
        self._probe = connectivity_probe
        self._on_abandoned = on_abandoned
        self._config = config or settings.sync
        self._key = key
        self._is_syncing = False
        self.is_online = True
        self._abandoned: list[QueuedOrder] = []
        self._orders: list[QueuedOrder] = self._load()

    def _load(self) -> list[QueuedOrder]:
        snapshot = self._storage.load(self._key)
        if not snapshot:
            return []
        try:
            return [QueuedOrder.model_validate(raw) for raw in snapshot]
        except (TypeError, ValidationError) as exc:
            logger.warning("Stored offline queue is corrupt, starting empty: %s", exc)
            return []

    def _commit(self, orders: list[QueuedOrder]) -> None:
        """Persist ``orders`` and adopt them once the write succeeded."""
        self._storage.save(self._key, [o.model_dump(mode="json") for o in orders])
        self._orders = orders

    @property
    def pending(self) -> list[QueuedOrder]:
        return [o.model_copy(deep=True) for o in self._orders]

    @property
    def pending_count(self) -> int:
        return len(self._orders)

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    def take_abandoned(self) -> list[QueuedOrder]:
        """Orders abandoned since the last call, oldest first. Each is returned once."""
        abandoned, self._abandoned = self._abandoned, []
        return abandoned

    def enqueue(
        self,
        project_id: str,
        items: list[CartItem],
        notes: Optional[str] = None,
        priority: Priority = Priority.NORMAL,
        kit_name: Optional[str] = None,
    ) -> QueuedOrder:
        """Queue an order for later delivery with a fresh id and zero retries."""
        order = QueuedOrder(
            id=str(uuid.uuid4()),
            project_id=project_id,
            items=items,
            notes=notes,
            priority=priority,
            kit_name=kit_name,
        )
        self._add(order)
        return order

    def _add(self, order: QueuedOrder) -> None:
        self._commit([*self._orders, order])
        logger.info("Order %s queued for %s (%d pending)", order.id, order.project_id, len(self._orders))

    async def submit_or_queue(
        self,
        project_id: str,
        items: list[CartItem],
        notes: Optional[str] = None,
        priority: Priority = Priority.NORMAL,
        kit_name: Optional[str] = None,
    ) -> SubmissionOutcome:
        """Submit now when online; otherwise, or on any submission failure, queue it."""
        order = QueuedOrder(
            id=str(uuid.uuid4()),
            project_id=project_id,
            items=items,
            notes=notes,
            priority=priority,
            kit_name=kit_name,
        )
        if self._probe():
            try:
                confirmation = await self._submitter.submit(order)
                return SubmissionOutcome(confirmation=confirmation)
            except SubmissionError as exc:
                logger.warning("Submission failed, queueing order %s: %s", order.id, exc)
        else:
            logger.info("Offline, queueing order %s", order.id)
        self._add(order)
        return SubmissionOutcome(queued_order_id=order.id)

    def handle_event(self, event: SyncEvent) -> SyncAction:
        """Decide whether ``event`` should drain the queue. Updates the cached online flag."""
        if event == SyncEvent.ONLINE:
            self.is_online = True
        elif event == SyncEvent.OFFLINE:
            self.is_online = False
        if event in _DRAIN_EVENTS and self._orders:
            return SyncAction.DRAIN
        return SyncAction.NONE

    async def dispatch(self, event: SyncEvent) -> Optional[DrainReport]:
        """Handle an event and drain when it calls for one."""
        if self.handle_event(event) == SyncAction.DRAIN:
            return await self.process_queue()
        return None

    async def process_queue(self) -> DrainReport:
        """
        Try every queued order once.

        Delivered orders are removed; failed ones keep their place with one
        more retry; an order whose retry count reaches the ceiling is
        abandoned, logged at ERROR, handed to ``on_abandoned``, and kept for
        ``take_abandoned`` so the worker can be told.
        """
        if self._is_syncing:
            return DrainReport(skipped_reason="already syncing")
        if not self._probe():
            return DrainReport(skipped_reason="offline")
        if not self._orders:
            return DrainReport(skipped_reason="queue empty")

        self._is_syncing = True
        report = DrainReport()
        try:
            for order in list(self._orders):
                await self._deliver(order, report)
        finally:
            self._is_syncing = False

        logger.info(
            "Drain finished: %d delivered, %d retried, %d abandoned",
            len(report.delivered), len(report.retried), len(report.abandoned),
        )
        return report

    async def _deliver(self, order: QueuedOrder, report: DrainReport) -> None:
        initial = OrderSyncState.RETRY_SCHEDULED if order.retry_count else OrderSyncState.QUEUED
        machine = OrderSyncMachine(order.id, initial)
        machine.transition(SyncTrigger.DRAIN_STARTED)
        try:
            await self._submitter.submit(order)
        except SubmissionError as exc:
            retry_count = order.retry_count + 1
            if retry_count >= self._config.max_retries:
                machine.transition(SyncTrigger.RETRY_CEILING_REACHED)
                abandoned = order.model_copy(update={"retry_count": retry_count})
                self._remove(order.id)
                report.abandoned.append(abandoned)
                self._abandoned.append(abandoned)
                logger.error(
                    "Order %s abandoned after %d attempts: %s", order.id, retry_count, exc
                )
                if self._on_abandoned is not None:
                    self._on_abandoned(abandoned)
            else:
                machine.transition(SyncTrigger.SUBMIT_FAILED)
                self._replace(order.model_copy(update={"retry_count": retry_count}))
                report.retried.append(order.id)
                logger.warning("Order %s failed (attempt %d): %s", order.id, retry_count, exc)
            return

        machine.transition(SyncTrigger.SUBMIT_SUCCEEDED)
        self._remove(order.id)
        report.delivered.append(order.id)

    def _remove(self, order_id: str) -> None:
        self._commit([o for o in self._orders if o.id != order_id])

    def _replace(self, order: QueuedOrder) -> None:
        self._commit([order if o.id == order.id else o for o in self._orders])

    async def run_periodic(self, stop_event: asyncio.Event) -> None:
        """Send ``TIMER_TICK`` every ``retry_interval_sec`` until ``stop_event`` is set."""
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._config.retry_interval_sec)
            except asyncio.TimeoutError:
                await self.dispatch(SyncEvent.TIMER_TICK)
