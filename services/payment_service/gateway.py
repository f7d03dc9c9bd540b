"""
Payment gateway port and its HTTP adapter.

The core only relies on three things from a gateway: starting a charge
returns an opaque correlation token, the outcome arrives later through a
confirmation webhook, and refunds are idempotent per idempotency key.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

import httpx
import structlog

from shared.config.settings import (
    GATEWAY_TIMEOUT_SECONDS,
    PAYMENT_GATEWAY_API_KEY,
    PAYMENT_GATEWAY_URL,
)
from shared.exceptions import GatewayError

logger = structlog.get_logger(__name__)


class PaymentOutcome(str, Enum):
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


@dataclass(frozen=True)
class RefundResult:
    success: bool
    refund_id: Optional[str] = None
    failure_reason: Optional[str] = None


def refund_idempotency_key(correlation_token: str) -> str:
    return f"refund-{correlation_token}"


class PaymentGateway(ABC):
    @abstractmethod
    async def initiate_charge(self, order_id: int, amount: Decimal) -> str:
        """Start a charge and return the gateway correlation token."""
        ...

    @abstractmethod
    async def refund(self, correlation_token: str, amount: Decimal, idempotency_key: str) -> RefundResult:
        """Refund the charge behind `correlation_token`.

        Repeating a call with the same idempotency key must not refund twice.
        """
        ...


class HttpPaymentGateway(PaymentGateway):
    def __init__(
        self,
        base_url: str = PAYMENT_GATEWAY_URL,
        api_key: str = PAYMENT_GATEWAY_API_KEY,
        timeout: float = GATEWAY_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = {"X-Internal-API-Key": api_key}
        self.timeout = timeout
        self.transport = transport

    async def initiate_charge(self, order_id: int, amount: Decimal) -> str:
        payload = {"order_id": order_id, "amount": str(amount)}
        data = await self._post("/charges", payload)
        token = data.get("token")
        if not token:
            raise GatewayError("Gateway did not return a correlation token", {"order_id": order_id})
        return token

    async def refund(self, correlation_token: str, amount: Decimal, idempotency_key: str) -> RefundResult:
        payload = {"token": correlation_token, "amount": str(amount)}
        data = await self._post("/refunds", payload, idempotency_key=idempotency_key)
        return RefundResult(
            success=data.get("status") == "succeeded",
            refund_id=data.get("refund_id"),
            failure_reason=data.get("failure_reason"),
        )

    async def _post(self, path: str, payload: dict, idempotency_key: Optional[str] = None) -> dict:
        headers = dict(self.headers)
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        try:
            async with httpx.AsyncClient(headers=headers, timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(f"{self.base_url}{path}", json=payload)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPError as e:
            logger.error("gateway_call_failed", path=path, error=str(e))
            raise GatewayError(f"Payment gateway call to {path} failed: {e}", {"path": path}) from e
