"""Order submission and offline queue models."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from src.schemas.cart_schema import CartItem, Priority


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueuedOrder(BaseModel):
    """An order waiting for confirmed delivery to the order endpoint."""
    id: str
    project_id: str
    items: list[CartItem]
    notes: Optional[str] = None
    priority: Priority = Priority.NORMAL
    queued_at: datetime = Field(default_factory=_utcnow)
    retry_count: int = Field(default=0, ge=0)
    kit_name: Optional[str] = None

    def submission_notes(self) -> Optional[str]:
        """Notes as sent to the endpoint; kit orders are prefixed with the kit name."""
        if self.kit_name:
            return f"{self.kit_name} - {self.notes}" if self.notes else self.kit_name
        return self.notes


class OrderConfirmation(BaseModel):
    """Successful response from the order endpoint."""
    order_id: str
    is_auto_approved: bool = False
    total_cents: int = 0
    order_number: Optional[str] = None


class SubmissionOutcome(BaseModel):
    """Result of attempting an immediate submission."""
    confirmation: Optional[OrderConfirmation] = None
    queued_order_id: Optional[str] = None

    @property
    def is_queued(self) -> bool:
        return self.queued_order_id is not None


class DrainReport(BaseModel):
    """Summary of one drain of the offline queue."""
    delivered: list[str] = Field(default_factory=list)
    retried: list[str] = Field(default_factory=list)
    abandoned: list[QueuedOrder] = Field(default_factory=list)
    skipped_reason: Optional[str] = None
