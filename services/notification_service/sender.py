"""
Order status notifications.

Delivery is best-effort: a failed notification is logged and counted but never
undoes or blocks the status change that triggered it.
"""
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional

import httpx
import structlog

from shared.config.settings import GATEWAY_TIMEOUT_SECONDS, NOTIFICATION_WEBHOOK_URL
from shared.observability import ecomm_notification_failures_total

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OrderStatusChanged:
    order_id: int
    user_id: str
    transition: str
    old_order_status: str
    new_order_status: str
    old_payment_status: str
    new_payment_status: str
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["occurred_at"] = self.occurred_at.isoformat()
        return payload


class NotificationSender(ABC):
    @abstractmethod
    async def order_status_changed(self, event: OrderStatusChanged) -> None:
        ...


class LoggingNotificationSender(NotificationSender):
    """Default sender when no webhook is configured."""

    async def order_status_changed(self, event: OrderStatusChanged) -> None:
        logger.info("order_status_notification", **event.to_dict())


class WebhookNotificationSender(NotificationSender):
    def __init__(
        self,
        url: str,
        timeout: float = GATEWAY_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def order_status_changed(self, event: OrderStatusChanged) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(self.url, json=event.to_dict())
            resp.raise_for_status()


def build_notification_sender(url: Optional[str] = NOTIFICATION_WEBHOOK_URL) -> NotificationSender:
    if url:
        return WebhookNotificationSender(url)
    return LoggingNotificationSender()


async def notify_best_effort(sender: NotificationSender, event: OrderStatusChanged) -> None:
    try:
        await sender.order_status_changed(event)
    except Exception as e:
        # A failing notification MUST NOT fail the transition that already committed
        ecomm_notification_failures_total.inc()
        logger.warning(
            "notification_failed",
            order_id=event.order_id,
            transition=event.transition,
            error=str(e),
        )
