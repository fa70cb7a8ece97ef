"""
Order submission to the ordering backend over HTTP.

Posts one order as JSON and returns the backend's confirmation. The queued
order id travels as the ``Idempotency-Key`` header so a retried order is
never placed twice.
"""

import logging
from typing import Optional

import httpx

from src.config import SyncConfig, settings
from src.schemas.order_schema import OrderConfirmation, QueuedOrder

logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    """Raised when the order endpoint is unreachable or rejects an order."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def build_order_payload(order: QueuedOrder) -> dict:
    """Request body in the backend's camelCase shape."""
    return {
        "projectId": order.project_id,
        "items": [
            {"productId": item.product_id, "quantity": item.quantity}
            for item in order.items
        ],
        "notes": order.submission_notes(),
        "priority": order.priority.value,
    }


class OrderSubmitter:
    """Submits orders to ``ORDER_ENDPOINT_URL``."""

    def __init__(
        self,
        config: Optional[SyncConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or settings.sync
        self._transport = transport

    async def submit(self, order: QueuedOrder) -> OrderConfirmation:
        """
        Submit one order.

        Raises:
            SubmissionError: On transport failure, a non-2xx status, or an
                unreadable response body.
        """
        headers = {"Idempotency-Key": order.id}
        try:
            async with httpx.AsyncClient(
                timeout=self._config.request_timeout_sec,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self._config.order_endpoint_url,
                    json=build_order_payload(order),
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            raise SubmissionError(f"Order endpoint unreachable: {exc}") from exc

        if not response.is_success:
            raise SubmissionError(
                f"Order endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            confirmation = OrderConfirmation(
                order_id=str(data["orderId"]),
                order_number=data.get("orderNumber"),
                is_auto_approved=bool(data.get("isAutoApproved", False)),
                total_cents=int(data.get("totalCents", 0)),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise SubmissionError(
                f"Unreadable order confirmation: {exc}", status_code=response.status_code
            ) from exc

        logger.info("Order %s confirmed as %s", order.id, confirmation.order_id)
        return confirmation
