"""
Finite state machine for one queued order's delivery lifecycle.

    queued -> syncing -> delivered          (removed from the queue)
                      -> retry_scheduled    (retry_count + 1, kept)
                      -> abandoned          (retry ceiling reached, removed)

Usage:
    machine = OrderSyncMachine("order-1")
    machine.transition(SyncTrigger.DRAIN_STARTED)
    machine.transition(SyncTrigger.SUBMIT_SUCCEEDED)
    assert machine.is_terminal()
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class OrderSyncState(str, Enum):
    QUEUED = "queued"
    SYNCING = "syncing"
    DELIVERED = "delivered"
    RETRY_SCHEDULED = "retry_scheduled"
    ABANDONED = "abandoned"


class SyncTrigger(str, Enum):
    """Events that move an order through its lifecycle."""
    DRAIN_STARTED = "drain_started"
    SUBMIT_SUCCEEDED = "submit_succeeded"
    SUBMIT_FAILED = "submit_failed"
    RETRY_CEILING_REACHED = "retry_ceiling_reached"


@dataclass
class Transition:
    from_state: OrderSyncState
    to_state: OrderSyncState
    trigger: SyncTrigger


@dataclass
class StateEntry:
    state: OrderSyncState
    entered_at: datetime
    trigger: Optional[SyncTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


TERMINAL_STATES = frozenset({OrderSyncState.DELIVERED, OrderSyncState.ABANDONED})


class OrderSyncMachine:
    """Deterministic lifecycle of a single queued order."""

    TRANSITIONS: list[Transition] = [
        Transition(OrderSyncState.QUEUED, OrderSyncState.SYNCING, SyncTrigger.DRAIN_STARTED),
        Transition(OrderSyncState.RETRY_SCHEDULED, OrderSyncState.SYNCING, SyncTrigger.DRAIN_STARTED),
        Transition(OrderSyncState.SYNCING, OrderSyncState.DELIVERED, SyncTrigger.SUBMIT_SUCCEEDED),
        Transition(OrderSyncState.SYNCING, OrderSyncState.RETRY_SCHEDULED, SyncTrigger.SUBMIT_FAILED),
        Transition(OrderSyncState.SYNCING, OrderSyncState.ABANDONED, SyncTrigger.RETRY_CEILING_REACHED),
    ]

    def __init__(self, order_id: str, initial_state: OrderSyncState = OrderSyncState.QUEUED) -> None:
        self.order_id = order_id
        self._current_state = initial_state
        self._history: list[StateEntry] = [
            StateEntry(state=initial_state, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> OrderSyncState:
        return self._current_state

    def transition(self, trigger: SyncTrigger) -> OrderSyncState:
        """
        Execute a lifecycle transition.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state
                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))
                logger.debug(
                    "Order %s: %s -> %s (trigger: %s)",
                    self.order_id, old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[SyncTrigger]:
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_state_trace(self) -> list[str]:
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_state in TERMINAL_STATES
