"""Per-session state shared by the voice agent's tools."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class SessionData:
    """
    Per-session structured data for one worker's voice ordering session.

    Persists on `session.userdata` throughout the conversation lifecycle.
    Tools read and write this instead of parsing chat history.
    """
    project_id: Optional[str] = None
    user_id: Optional[str] = None
    last_intent: Optional[str] = None
    turn_count: int = 0
    error_count: int = 0
    queued_order_ids: list[str] = field(default_factory=list)
    confirmed_order_ids: list[str] = field(default_factory=list)
    abandoned_order_ids: list[str] = field(default_factory=list)

    def reconcile_queue(self, pending_ids: set[str], abandoned_ids: list[str]) -> None:
        """Drop queued ids that left the queue and record the ones that were abandoned."""
        self.abandoned_order_ids.extend(abandoned_ids)
        self.queued_order_ids = [i for i in self.queued_order_ids if i in pending_ids]
