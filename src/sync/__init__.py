from src.sync.offline_queue import OfflineSyncQueue, SyncAction, SyncEvent
from src.sync.submitter import OrderSubmitter, SubmissionError
from src.sync.sync_state import InvalidTransitionError, OrderSyncMachine, OrderSyncState, SyncTrigger

__all__ = [
    "OfflineSyncQueue",
    "SyncEvent",
    "SyncAction",
    "OrderSubmitter",
    "SubmissionError",
    "OrderSyncMachine",
    "OrderSyncState",
    "SyncTrigger",
    "InvalidTransitionError",
]
